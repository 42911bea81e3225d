"""Flair inventory and applying flairs to posts."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from whiteboard.board import post_service
from whiteboard.db.models import PostFlairApplication
from whiteboard.engagement import flair_service

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def owned_post(db_session, user):
    """(user_id, post_id) for a post written by `user`."""
    uid = user.id
    created = await post_service.create_post(db_session, uid, "general", "my doodle", now=NOW)
    return uid, created.post.id


async def _application_count(db, post_id):
    result = await db.execute(
        select(func.count()).select_from(PostFlairApplication).where(
            PostFlairApplication.post_id == post_id
        )
    )
    return result.scalar()


class TestOwnership:
    @pytest.mark.asyncio
    async def test_grant_then_owns(self, db_session, user):
        uid = user.id
        assert await flair_service.owns_flair(db_session, uid, "neon_border") is False
        await flair_service.grant_flair(db_session, uid, "neon_border", source="test")
        await db_session.commit()
        assert await flair_service.owns_flair(db_session, uid, "neon_border") is True

    @pytest.mark.asyncio
    async def test_duplicates_are_separate_items(self, db_session, user):
        uid = user.id
        await flair_service.grant_flair(db_session, uid, "tape_trim")
        await flair_service.grant_flair(db_session, uid, "tape_trim")
        await db_session.commit()
        assert len(await flair_service.get_inventory(db_session, uid)) == 2


class TestApplyFlair:
    @pytest.mark.asyncio
    async def test_apply_owned_flair(self, db_session, owned_post):
        uid, post_id = owned_post
        await flair_service.grant_flair(db_session, uid, "neon_border")
        await db_session.commit()

        flair = await flair_service.apply_flair(db_session, uid, post_id, "neon_border")

        assert flair.id == "neon_border"
        applications = await flair_service.get_post_flairs(db_session, post_id)
        assert [a.flair_id for a in applications] == ["neon_border"]

    @pytest.mark.asyncio
    async def test_reapply_is_noop(self, db_session, owned_post):
        uid, post_id = owned_post
        await flair_service.grant_flair(db_session, uid, "neon_border")
        await db_session.commit()

        await flair_service.apply_flair(db_session, uid, post_id, "neon_border")
        assert await flair_service.apply_flair(db_session, uid, post_id, "neon_border") is not None
        assert await _application_count(db_session, post_id) == 1

    @pytest.mark.asyncio
    async def test_unowned_flair_rejected(self, db_session, owned_post):
        uid, post_id = owned_post
        assert await flair_service.apply_flair(db_session, uid, post_id, "crown_badge") is None
        assert await _application_count(db_session, post_id) == 0

    @pytest.mark.asyncio
    async def test_someone_elses_post_rejected(self, db_session, owned_post, other_user):
        _, post_id = owned_post
        other_id = other_user.id
        await flair_service.grant_flair(db_session, other_id, "neon_border")
        await db_session.commit()

        assert await flair_service.apply_flair(db_session, other_id, post_id, "neon_border") is None
        assert await _application_count(db_session, post_id) == 0


class TestRemoveFlair:
    @pytest.mark.asyncio
    async def test_owner_removes(self, db_session, owned_post):
        uid, post_id = owned_post
        await flair_service.grant_flair(db_session, uid, "gold_trim")
        await db_session.commit()
        await flair_service.apply_flair(db_session, uid, post_id, "gold_trim")

        assert await flair_service.remove_flair(db_session, uid, post_id, "gold_trim") is True
        assert await _application_count(db_session, post_id) == 0
        # The inventory keeps the flair
        assert await flair_service.owns_flair(db_session, uid, "gold_trim") is True

    @pytest.mark.asyncio
    async def test_removing_absent_application_succeeds(self, db_session, owned_post):
        uid, post_id = owned_post
        assert await flair_service.remove_flair(db_session, uid, post_id, "gold_trim") is True

    @pytest.mark.asyncio
    async def test_non_owner_cannot_remove(self, db_session, owned_post, other_user):
        uid, post_id = owned_post
        other_id = other_user.id
        await flair_service.grant_flair(db_session, uid, "gold_trim")
        await db_session.commit()
        await flair_service.apply_flair(db_session, uid, post_id, "gold_trim")

        assert await flair_service.remove_flair(db_session, other_id, post_id, "gold_trim") is False
        assert await _application_count(db_session, post_id) == 1


class TestInventory:
    @pytest.mark.asyncio
    async def test_inventory_lists_applied_posts(self, db_session, owned_post):
        uid, post_id = owned_post
        await flair_service.grant_flair(db_session, uid, "sparkle_effect")
        await flair_service.grant_flair(db_session, uid, "paper_background")
        await db_session.commit()
        await flair_service.apply_flair(db_session, uid, post_id, "sparkle_effect")

        entries = {e["flair"].id: e for e in await flair_service.get_inventory(db_session, uid)}
        assert entries["sparkle_effect"]["applied_to"] == [post_id]
        assert entries["paper_background"]["applied_to"] == []

    @pytest.mark.asyncio
    async def test_group_by_type(self, db_session):
        flairs = [
            await flair_service.get_flair(db_session, fid)
            for fid in ("neon_border", "pencil_border", "crown_badge")
        ]
        grouped = flair_service.group_by_type(flairs)
        assert [f.id for f in grouped["border"]] == ["neon_border", "pencil_border"]
        assert [f.id for f in grouped["badge"]] == ["crown_badge"]
        assert "trim" not in grouped
