"""Daily posts: the one-post-per-day limiter, first-post reward and the feed."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from whiteboard.board import comment_service, post_service
from whiteboard.db.models import Post, UserAchievement
from whiteboard.engagement import activity_service, flair_service

DAY1 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
DAY2 = DAY1 + timedelta(days=1)


async def _post_count(db, user_id):
    result = await db.execute(select(func.count()).select_from(Post).where(Post.user_id == user_id))
    return result.scalar()


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_can_post_until_posted(self, db_session, user):
        uid = user.id
        assert await post_service.can_post_today(db_session, uid, now=DAY1) is True
        await post_service.create_post(db_session, uid, "general", "hello", now=DAY1)
        assert await post_service.can_post_today(db_session, uid, now=DAY1) is False
        assert await post_service.can_post_today(db_session, uid, now=DAY2) is True

    @pytest.mark.asyncio
    async def test_second_post_same_day_rejected(self, db_session, user):
        uid = user.id
        assert await post_service.create_post(db_session, uid, "general", "one", now=DAY1) is not None
        later = DAY1 + timedelta(hours=10)
        assert await post_service.create_post(db_session, uid, "art", "two", now=later) is None
        assert await _post_count(db_session, uid) == 1

    @pytest.mark.asyncio
    async def test_next_day_allowed(self, db_session, user):
        uid = user.id
        await post_service.create_post(db_session, uid, "general", "one", now=DAY1)
        assert await post_service.create_post(db_session, uid, "general", "two", now=DAY2) is not None
        assert await _post_count(db_session, uid) == 2

    @pytest.mark.asyncio
    async def test_racing_insert_hits_unique_constraint(self, db_session, user, monkeypatch):
        """If the pre-check is raced, the (user, day) constraint still admits one post."""
        uid = user.id
        await post_service.create_post(db_session, uid, "general", "one", now=DAY1)
        monkeypatch.setattr(post_service, "can_post_today", AsyncMock(return_value=True))

        assert await post_service.create_post(db_session, uid, "general", "two", now=DAY1) is None
        assert await _post_count(db_session, uid) == 1


class TestCreatePost:
    @pytest.mark.asyncio
    async def test_records_activity_and_first_post(self, db_session, user):
        uid = user.id
        created = await post_service.create_post(db_session, uid, "general", "  hello  ", now=DAY1)

        assert created.post.content == "hello"
        assert created.post.push_count == 0
        assert created.first_post is True
        assert created.flair_outcome == post_service.FLAIR_NOT_REQUESTED
        assert created.currency == {"ink_points": 20, "prismatic_ink": 0}

        status = await activity_service.get_status(db_session, uid, now=DAY1)
        assert status["posted"] is True

    @pytest.mark.asyncio
    async def test_first_post_only_once(self, db_session, user):
        uid = user.id
        await post_service.create_post(db_session, uid, "general", "one", now=DAY1)
        second = await post_service.create_post(db_session, uid, "general", "two", now=DAY2)
        assert second.first_post is False

    @pytest.mark.asyncio
    async def test_advances_prolific_poster(self, db_session, user):
        uid = user.id
        await post_service.create_post(db_session, uid, "general", "one", now=DAY1)
        row = await db_session.execute(
            select(UserAchievement)
            .where(UserAchievement.user_id == uid, UserAchievement.achievement_id == "prolific_poster")
            .execution_options(populate_existing=True)
        )
        assert row.scalar_one().current_progress == 1

    @pytest.mark.asyncio
    async def test_unknown_board(self, db_session, user):
        uid = user.id
        with pytest.raises(LookupError):
            await post_service.create_post(db_session, uid, "nowhere", "hello", now=DAY1)
        assert await _post_count(db_session, uid) == 0

    @pytest.mark.asyncio
    async def test_blank_content(self, db_session, user):
        with pytest.raises(ValueError):
            await post_service.create_post(db_session, user.id, "general", "   ", now=DAY1)

    @pytest.mark.asyncio
    async def test_unowned_flair_blocks_post(self, db_session, user):
        uid = user.id
        with pytest.raises(PermissionError):
            await post_service.create_post(db_session, uid, "general", "hi", flair_id="crown_badge", now=DAY1)
        assert await _post_count(db_session, uid) == 0
        assert await post_service.can_post_today(db_session, uid, now=DAY1) is True

    @pytest.mark.asyncio
    async def test_owned_flair_applied(self, db_session, user):
        uid = user.id
        await flair_service.grant_flair(db_session, uid, "crown_badge")
        await db_session.commit()

        created = await post_service.create_post(
            db_session, uid, "general", "hi", flair_id="crown_badge", now=DAY1
        )
        assert created.flair_outcome == post_service.FLAIR_APPLIED
        assert created.flair.id == "crown_badge"
        entry = await post_service.get_post(db_session, created.post.id)
        assert [f.id for f in entry["flairs"]] == ["crown_badge"]


class TestUpdatePost:
    @pytest.mark.asyncio
    async def test_author_edits(self, db_session, user):
        uid = user.id
        created = await post_service.create_post(db_session, uid, "general", "draft", now=DAY1)
        post = await post_service.update_post(db_session, uid, created.post.id, "final")
        assert post.content == "final"

    @pytest.mark.asyncio
    async def test_non_author_cannot_edit(self, db_session, user, other_user):
        uid, other_id = user.id, other_user.id
        created = await post_service.create_post(db_session, uid, "general", "mine", now=DAY1)
        assert await post_service.update_post(db_session, other_id, created.post.id, "theirs") is None
        entry = await post_service.get_post(db_session, created.post.id)
        assert entry["post"].content == "mine"

    @pytest.mark.asyncio
    async def test_missing_post(self, db_session, user):
        with pytest.raises(LookupError):
            await post_service.update_post(db_session, user.id, "missing", "x")


class TestFeed:
    @pytest.mark.asyncio
    async def test_comment_bumps_post_to_top(self, db_session, user, other_user):
        uid, other_id = user.id, other_user.id
        older = await post_service.create_post(db_session, uid, "general", "older", now=DAY1)
        newer = await post_service.create_post(db_session, other_id, "general", "newer", now=DAY2)
        older_id, newer_id = older.post.id, newer.post.id

        entries, total = await post_service.list_posts(db_session, "general")
        assert total == 2
        assert [e["post"].id for e in entries] == [newer_id, older_id]

        await comment_service.create_comment(
            db_session, other_id, older_id, "nice", now=DAY2 + timedelta(hours=1)
        )
        entries, _ = await post_service.list_posts(db_session, "general")
        assert [e["post"].id for e in entries] == [older_id, newer_id]
        assert entries[0]["comment_count"] == 1
        assert entries[0]["post"].push_count == 1

    @pytest.mark.asyncio
    async def test_board_filter_and_pagination(self, db_session, make_user):
        for n in range(3):
            author = (await make_user()).id
            board = "art" if n == 0 else "general"
            await post_service.create_post(db_session, author, board, f"post {n}", now=DAY1)

        art, art_total = await post_service.list_posts(db_session, "art")
        assert art_total == 1
        page, total = await post_service.list_posts(db_session, None, page=2, per_page=2)
        assert total == 3
        assert len(page) == 1

    @pytest.mark.asyncio
    async def test_missing_post_is_none(self, db_session):
        assert await post_service.get_post(db_session, "missing") is None

    @pytest.mark.asyncio
    async def test_boards_seeded(self, db_session):
        assert {b.id for b in await post_service.list_boards(db_session)} == {"general", "art", "help"}
