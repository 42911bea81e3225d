"""Catalog seed data: boards, flairs, achievements and the launch gacha collection."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import (
    AchievementDefinition,
    Board,
    CollectionItem,
    FlairItem,
    GachaCollection,
)
from whiteboard.db.upsert import upsert

logger = logging.getLogger(__name__)

BOARD_SEED_DATA: list[dict] = [
    {"id": "general", "name": "General", "description": "Anything goes, one post a day"},
    {"id": "art", "name": "Art", "description": "Sketches, doodles and works in progress"},
    {"id": "help", "name": "Help", "description": "Questions and answers"},
]

FLAIR_SEED_DATA: list[dict] = [
    # Common
    {"id": "pencil_border", "name": "Pencil Border", "type": "border", "rarity": "common",
     "description": "A hand-drawn graphite outline", "ink_price": 50, "css_class": "flair-border-pencil"},
    {"id": "paper_background", "name": "Paper Background", "type": "background", "rarity": "common",
     "description": "Off-white notebook paper", "ink_price": 50, "css_class": "flair-bg-paper"},
    {"id": "doodle_badge", "name": "Doodle Badge", "type": "badge", "rarity": "common",
     "description": "A tiny smiley in the corner", "ink_price": 50, "css_class": "flair-badge-doodle"},
    {"id": "tape_trim", "name": "Tape Trim", "type": "trim", "rarity": "common",
     "description": "Masking tape on the corners", "ink_price": 50, "css_class": "flair-trim-tape"},
    # Rare
    {"id": "marker_border", "name": "Marker Border", "type": "border", "rarity": "rare",
     "description": "Bold felt-tip outline", "ink_price": 150, "css_class": "flair-border-marker"},
    {"id": "grid_background", "name": "Grid Background", "type": "background", "rarity": "rare",
     "description": "Engineering grid paper", "ink_price": 150, "css_class": "flair-bg-grid"},
    {"id": "smudge_effect", "name": "Smudge Effect", "type": "effect", "rarity": "rare",
     "description": "Chalk smudges drift across the post", "ink_price": 150, "css_class": "flair-effect-smudge"},
    # Epic
    {"id": "neon_border", "name": "Neon Border", "type": "border", "rarity": "epic",
     "description": "A softly pulsing neon tube", "prismatic_price": 3, "css_class": "flair-border-neon"},
    {"id": "sparkle_effect", "name": "Sparkle Effect", "type": "effect", "rarity": "epic",
     "description": "Glitter that catches the cursor", "prismatic_price": 3, "css_class": "flair-effect-sparkle"},
    {"id": "gold_trim", "name": "Gold Trim", "type": "trim", "rarity": "epic",
     "description": "Gilded leaf edging", "prismatic_price": 3, "css_class": "flair-trim-gold"},
    # Legendary
    {"id": "prismatic_background", "name": "Prismatic Background", "type": "background", "rarity": "legendary",
     "description": "A shifting rainbow wash", "prismatic_price": 10, "css_class": "flair-bg-prismatic"},
    {"id": "crown_badge", "name": "Crown Badge", "type": "badge", "rarity": "legendary",
     "description": "Royalty of the whiteboard", "prismatic_price": 10, "css_class": "flair-badge-crown"},
]

ACHIEVEMENT_SEED_DATA: list[dict] = [
    {
        "id": "first_post",
        "name": "First Mark",
        "description": "Write your first post on the whiteboard",
        "category": "posting",
        "required_progress": 1,
        "ink_reward": 50,
        "prismatic_reward": 0,
        "flair_reward": "pencil_border",
        "icon": "pencil",
        "trigger_event": None,
        "sort_order": 1,
    },
    {
        "id": "prolific_poster",
        "name": "Prolific Poster",
        "description": "Write 7 posts",
        "category": "posting",
        "required_progress": 7,
        "ink_reward": 150,
        "prismatic_reward": 1,
        "flair_reward": None,
        "icon": "stack",
        "trigger_event": "post_created",
        "sort_order": 2,
    },
    {
        "id": "conversationalist",
        "name": "Conversationalist",
        "description": "Leave 10 comments",
        "category": "social",
        "required_progress": 10,
        "ink_reward": 100,
        "prismatic_reward": 0,
        "flair_reward": "doodle_badge",
        "icon": "speech",
        "trigger_event": "comment_created",
        "sort_order": 3,
    },
    {
        "id": "appreciator",
        "name": "Appreciator",
        "description": "Give 25 thumbs",
        "category": "social",
        "required_progress": 25,
        "ink_reward": 100,
        "prismatic_reward": 0,
        "flair_reward": None,
        "icon": "thumb",
        "trigger_event": "thumb_added",
        "sort_order": 4,
    },
    {
        "id": "daily_champion",
        "name": "Daily Champion",
        "description": "Complete every daily activity on 5 days",
        "category": "daily",
        "required_progress": 5,
        "ink_reward": 200,
        "prismatic_reward": 2,
        "flair_reward": None,
        "icon": "trophy",
        "trigger_event": "daily_completed",
        "sort_order": 5,
    },
    {
        "id": "week_streak",
        "name": "Week Streak",
        "description": "Check in 7 days in a row",
        "category": "daily",
        "required_progress": 7,
        "ink_reward": 100,
        "prismatic_reward": 1,
        "flair_reward": None,
        "icon": "flame",
        "trigger_event": "streak",
        "sort_order": 6,
    },
    {
        "id": "month_streak",
        "name": "Month Streak",
        "description": "Check in 30 days in a row",
        "category": "daily",
        "required_progress": 30,
        "ink_reward": 500,
        "prismatic_reward": 5,
        "flair_reward": "gold_trim",
        "icon": "calendar",
        "trigger_event": "streak",
        "sort_order": 7,
    },
    {
        "id": "collector",
        "name": "Collector",
        "description": "Make 10 gacha pulls",
        "category": "collection",
        "required_progress": 10,
        "ink_reward": 100,
        "prismatic_reward": 1,
        "flair_reward": None,
        "icon": "box",
        "trigger_event": "gacha_pull",
        "sort_order": 8,
    },
]

COLLECTION_SEED_DATA: list[dict] = [
    {
        "id": "launch",
        "name": "Launch Collection",
        "description": "Every flair from the first season",
        "start_date": None,
        "end_date": None,
        "is_active": True,
    },
]


def _flair_values(data: dict) -> dict:
    return {
        "description": None,
        "ink_price": 0,
        "prismatic_price": 0,
        "preview_image_url": None,
        **data,
    }


async def seed_catalog(db: AsyncSession) -> int:
    """Upsert boards, flairs, achievements and the launch collection.

    Safe to run on every startup. Returns the number of catalog rows written.
    """
    seeded = 0
    for board in BOARD_SEED_DATA:
        await upsert(db, Board, ["id"], board)
        seeded += 1
    for flair in FLAIR_SEED_DATA:
        await upsert(db, FlairItem, ["id"], _flair_values(flair))
        seeded += 1
    for achievement in ACHIEVEMENT_SEED_DATA:
        await upsert(db, AchievementDefinition, ["id"], achievement)
        seeded += 1
    for collection in COLLECTION_SEED_DATA:
        await upsert(db, GachaCollection, ["id"], collection)
        seeded += 1

    # Launch collection carries every flair at equal in-tier weight
    for flair in FLAIR_SEED_DATA:
        await upsert(
            db,
            CollectionItem,
            ["collection_id", "flair_id"],
            {"collection_id": "launch", "flair_id": flair["id"], "weight": 1.0},
        )

    await db.commit()
    logger.info("Seeded %d catalog rows", seeded)
    return seeded
