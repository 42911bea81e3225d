"""Achievement progress, completion and the claim-once reward flow."""

import pytest
from sqlalchemy import select

from whiteboard.db.models import CurrencyTransaction, InventoryItem, UserAchievement
from whiteboard.engagement import achievement_service, ledger


async def _user_achievement(db, user_id, achievement_id):
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id, UserAchievement.achievement_id == achievement_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


class TestProgressPercentage:
    def test_rounds(self):
        assert achievement_service.progress_percentage(1, 3) == 33
        assert achievement_service.progress_percentage(2, 3) == 67

    def test_caps_at_hundred(self):
        assert achievement_service.progress_percentage(12, 10) == 100

    def test_zero_requirement_is_complete(self):
        assert achievement_service.progress_percentage(0, 0) == 100


class TestProgress:
    @pytest.mark.asyncio
    async def test_partial_progress(self, db_session, user):
        uid = user.id
        completed = await achievement_service.progress(db_session, uid, "conversationalist", 3)
        await db_session.commit()

        assert completed is False
        ua = await _user_achievement(db_session, uid, "conversationalist")
        assert ua.current_progress == 3
        assert ua.completed is False

    @pytest.mark.asyncio
    async def test_completion_clamps_progress(self, db_session, user):
        """Overshooting stops at required_progress and completes exactly once."""
        uid = user.id
        assert await achievement_service.progress(db_session, uid, "prolific_poster", 5) is False
        assert await achievement_service.progress(db_session, uid, "prolific_poster", 5) is True
        assert await achievement_service.progress(db_session, uid, "prolific_poster", 5) is False
        await db_session.commit()

        ua = await _user_achievement(db_session, uid, "prolific_poster")
        assert ua.current_progress == 7
        assert ua.completed is True
        assert ua.completed_at is not None
        assert ua.reward_claimed is False

    @pytest.mark.asyncio
    async def test_completion_does_not_pay(self, db_session, user):
        uid = user.id
        await achievement_service.progress(db_session, uid, "prolific_poster", 7)
        await db_session.commit()
        assert await ledger.get_balance(db_session, uid) == {"ink_points": 0, "prismatic_ink": 0}

    @pytest.mark.asyncio
    async def test_negative_delta_rejected(self, db_session, user):
        with pytest.raises(ValueError):
            await achievement_service.progress(db_session, user.id, "appreciator", -1)

    @pytest.mark.asyncio
    async def test_unknown_achievement(self, db_session, user):
        with pytest.raises(LookupError):
            await achievement_service.progress(db_session, user.id, "does_not_exist", 1)

    @pytest.mark.asyncio
    async def test_advance_for_event_targets_trigger(self, db_session, user):
        uid = user.id
        completed = await achievement_service.advance_for_event(db_session, uid, "gacha_pull", delta=10)
        await db_session.commit()

        assert completed == ["collector"]
        assert await _user_achievement(db_session, uid, "appreciator") is None

    @pytest.mark.asyncio
    async def test_streak_sync_never_lowers_progress(self, db_session, user):
        uid = user.id
        await achievement_service.sync_streak_achievements(db_session, uid, 5)
        await achievement_service.sync_streak_achievements(db_session, uid, 1)
        await db_session.commit()

        assert (await _user_achievement(db_session, uid, "week_streak")).current_progress == 5
        assert (await _user_achievement(db_session, uid, "month_streak")).current_progress == 5


class TestFirstPost:
    @pytest.mark.asyncio
    async def test_granted_once(self, db_session, user):
        uid = user.id
        assert await achievement_service.grant_first_post_achievement(db_session, uid) is True
        assert await achievement_service.grant_first_post_achievement(db_session, uid) is False
        await db_session.commit()

        ua = await _user_achievement(db_session, uid, achievement_service.FIRST_POST)
        assert ua.completed is True
        assert ua.current_progress == 1
        assert ua.reward_claimed is False


class TestClaim:
    @pytest.mark.asyncio
    async def test_claim_pays_currency_and_flair(self, db_session, user):
        uid = user.id
        await achievement_service.grant_first_post_achievement(db_session, uid)
        await db_session.commit()

        bundle = await achievement_service.claim(db_session, uid, "first_post")

        assert bundle is not None
        assert bundle.ink_points == 50
        assert bundle.prismatic_ink == 0
        assert bundle.flair.id == "pencil_border"
        assert bundle.currency == {"ink_points": 50, "prismatic_ink": 0}

        items = await db_session.execute(select(InventoryItem).where(InventoryItem.user_id == uid))
        assert [i.flair_id for i in items.scalars()] == ["pencil_border"]

    @pytest.mark.asyncio
    async def test_second_claim_rejected(self, db_session, user):
        uid = user.id
        await achievement_service.grant_first_post_achievement(db_session, uid)
        await db_session.commit()

        assert await achievement_service.claim(db_session, uid, "first_post") is not None
        assert await achievement_service.claim(db_session, uid, "first_post") is None
        assert (await ledger.get_balance(db_session, uid))["ink_points"] == 50

    @pytest.mark.asyncio
    async def test_incomplete_cannot_be_claimed(self, db_session, user):
        uid = user.id
        await achievement_service.progress(db_session, uid, "appreciator", 3)
        await db_session.commit()

        assert await achievement_service.claim(db_session, uid, "appreciator") is None
        assert await achievement_service.claim(db_session, uid, "collector") is None
        assert await achievement_service.claim(db_session, uid, "nope") is None

    @pytest.mark.asyncio
    async def test_claim_without_flair_reward(self, db_session, user):
        uid = user.id
        await achievement_service.progress(db_session, uid, "daily_champion", 5)
        await db_session.commit()

        bundle = await achievement_service.claim(db_session, uid, "daily_champion")
        assert bundle.flair is None
        assert bundle.currency == {"ink_points": 200, "prismatic_ink": 2}


class TestConcurrentClaim:
    @pytest.mark.asyncio
    async def test_only_one_claim_pays(self, db_session, second_session, user, monkeypatch):
        """Two claims interleaved: the loser sees the flag already flipped."""
        uid = user.id
        await achievement_service.grant_first_post_achievement(db_session, uid)
        await db_session.commit()

        original = achievement_service.get_definition
        rival = {}

        async def get_definition_then_race(db, achievement_id):
            if not rival:
                rival["bundle"] = None
                rival["bundle"] = await achievement_service.claim(second_session, uid, achievement_id)
            return await original(db, achievement_id)

        monkeypatch.setattr(achievement_service, "get_definition", get_definition_then_race)

        assert await achievement_service.claim(db_session, uid, "first_post") is None
        assert rival["bundle"] is not None
        assert (await ledger.get_balance(db_session, uid))["ink_points"] == 50

        txns = await db_session.execute(
            select(CurrencyTransaction).where(
                CurrencyTransaction.user_id == uid, CurrencyTransaction.source == "achievement"
            )
        )
        assert [t.ink_delta for t in txns.scalars()] == [50]
        items = await db_session.execute(select(InventoryItem).where(InventoryItem.user_id == uid))
        assert [i.flair_id for i in items.scalars()] == ["pencil_border"]


class TestListAchievements:
    @pytest.mark.asyncio
    async def test_catalog_merged_with_progress(self, db_session, user):
        uid = user.id
        await achievement_service.progress(db_session, uid, "conversationalist", 5)
        await db_session.commit()

        items, categories = await achievement_service.list_achievements(db_session, uid)
        by_id = {i["definition"].id: i for i in items}

        assert len(items) == 8
        assert by_id["conversationalist"]["current_progress"] == 5
        assert by_id["conversationalist"]["progress_percentage"] == 50
        assert by_id["first_post"]["current_progress"] == 0
        assert by_id["first_post"]["completed"] is False
        assert len(categories) == len(set(categories))
