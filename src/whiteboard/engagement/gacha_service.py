"""Gacha engine: currency-gated weighted draws from flair collections.

A draw picks a rarity tier first, using the pull's tier rates renormalised
over the tiers the collection actually contains, then an item inside that
tier by its collection weight. Debit, inventory grant and the pull record
commit together or not at all.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from random import Random
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.config import get_settings
from whiteboard.db.models import CollectionItem, FlairItem, GachaCollection, GachaPullRecord
from whiteboard.engagement import achievement_service, events, ledger
from whiteboard.engagement.day_utils import get_day, utc_now
from whiteboard.engagement.flair_service import grant_flair
from whiteboard.engagement.rates import RARITIES

logger = logging.getLogger(__name__)

NOT_ENOUGH_CURRENCY = "Not enough currency to perform pull"

T = TypeVar("T")


@dataclass
class PullResult:
    flair: FlairItem
    was_premium: bool
    ink_spent: int
    prismatic_spent: int
    record_id: str
    currency: dict[str, int] = field(default_factory=dict)
    completed_achievements: list[str] = field(default_factory=list)


def pull_costs(is_premium: bool) -> tuple[int, int]:
    """(ink, prismatic) price of one pull."""
    settings = get_settings()
    if is_premium:
        return 0, settings.gacha_premium_cost_prismatic
    return settings.gacha_standard_cost_ink, 0


def tier_rates(is_premium: bool) -> dict[str, float]:
    settings = get_settings()
    return settings.gacha_premium_rates if is_premium else settings.gacha_standard_rates


def _weighted_choice(options: Sequence[tuple[T, float]], rng: Random) -> T:
    total = sum(weight for _, weight in options)
    roll = rng.random() * total
    cumulative = 0.0
    for option, weight in options:
        cumulative += weight
        if roll < cumulative:
            return option
    return options[-1][0]


def eligible_tiers(pool: Sequence[Any], rates: dict[str, float]) -> dict[str, float]:
    """Tiers present in the pool with a positive rate, renormalised to sum to 1."""
    present = {item.flair.rarity for item in pool}
    tiers = {r: rates.get(r, 0.0) for r in RARITIES if r in present and rates.get(r, 0.0) > 0}
    total = sum(tiers.values())
    return {r: p / total for r, p in tiers.items()}


def draw_flair(pool: Sequence[Any], rates: dict[str, float], rng: Random | None = None) -> Any:
    """Pick one collection item. Raises ValueError if no tier is eligible."""
    tiers = eligible_tiers(pool, rates)
    if not tiers:
        raise ValueError("This collection has no items eligible for this pull")
    if rng is None:
        rng = secrets.SystemRandom()

    tier = _weighted_choice(list(tiers.items()), rng)
    candidates = [(item, item.weight) for item in pool if item.flair.rarity == tier]
    return _weighted_choice(candidates, rng)


def is_collection_open(collection: GachaCollection, today: date) -> bool:
    if not collection.is_active:
        return False
    if collection.start_date is not None and today < collection.start_date:
        return False
    if collection.end_date is not None and today > collection.end_date:
        return False
    return True


async def get_open_collection(db: AsyncSession, collection_id: str) -> GachaCollection:
    """The collection, if it exists and is currently pullable. LookupError otherwise."""
    result = await db.execute(select(GachaCollection).where(GachaCollection.id == collection_id))
    collection = result.scalar_one_or_none()
    if collection is None or not is_collection_open(collection, get_day()):
        raise LookupError(f"Collection not available: {collection_id}")
    return collection


async def pull(
    db: AsyncSession,
    user_id: str,
    collection_id: str,
    is_premium: bool = False,
    rng: Random | None = None,
    redis: object = None,
) -> PullResult | None:
    """Spend currency for one draw. None (nothing changed) if funds are short."""
    collection = await get_open_collection(db, collection_id)
    item: CollectionItem = draw_flair(collection.items, tier_rates(is_premium), rng)
    ink_cost, prismatic_cost = pull_costs(is_premium)

    try:
        await ledger.debit(
            db,
            user_id,
            ink=ink_cost,
            prismatic=prismatic_cost,
            source="gacha",
            source_id=collection_id,
            description=f"{'Premium' if is_premium else 'Standard'} pull: {collection.name}",
        )
    except ledger.InsufficientFunds:
        await events.rollback(db)
        return None

    await grant_flair(db, user_id, item.flair_id, source="gacha")
    record = GachaPullRecord(
        user_id=user_id,
        collection_id=collection_id,
        flair_id=item.flair_id,
        was_premium=is_premium,
        ink_spent=ink_cost,
        prismatic_spent=prismatic_cost,
        pull_time=utc_now(),
    )
    db.add(record)
    await db.flush()

    completed = await achievement_service.advance_for_event(db, user_id, "gacha_pull")
    events.queue(db, events.CHANNEL_GACHA_PULL, {
        "user_id": user_id,
        "collection_id": collection_id,
        "flair_id": item.flair_id,
        "rarity": item.flair.rarity,
        "was_premium": is_premium,
    })
    await events.commit_and_publish(db, redis)

    logger.info(
        "User %s pulled %s (%s) from %s",
        user_id, item.flair_id, item.flair.rarity, collection_id,
    )

    return PullResult(
        flair=item.flair,
        was_premium=is_premium,
        ink_spent=ink_cost,
        prismatic_spent=prismatic_cost,
        record_id=record.id,
        currency=await ledger.get_balance(db, user_id),
        completed_achievements=completed,
    )


async def get_gacha_state(db: AsyncSession, user_id: str) -> dict:
    """Open collections, the user's balances, recent pulls and pull costs."""
    result = await db.execute(
        select(GachaCollection).where(GachaCollection.is_active.is_(True)).order_by(GachaCollection.name)
    )
    today = get_day()
    collections = [c for c in result.scalars().all() if is_collection_open(c, today)]

    pulls_result = await db.execute(
        select(GachaPullRecord)
        .where(GachaPullRecord.user_id == user_id)
        .order_by(GachaPullRecord.pull_time.desc())
        .limit(10)
    )
    standard_ink, _ = pull_costs(False)
    _, premium_prismatic = pull_costs(True)

    return {
        "collections": collections,
        "currency": await ledger.get_balance(db, user_id),
        "recent_pulls": list(pulls_result.scalars().all()),
        "costs": {
            "standard_ink": standard_ink,
            "premium_prismatic": premium_prismatic,
        },
    }
