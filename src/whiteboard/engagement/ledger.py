"""Currency ledger: ink points and prismatic ink balances.

Every balance change is a single SQL UPDATE expression plus an append-only
CurrencyTransaction row. Debits are conditional on sufficient funds so two
concurrent spends can never overdraw an account.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.db.models import CurrencyAccount, CurrencyTransaction
from whiteboard.db.upsert import insert_or_ignore

logger = logging.getLogger(__name__)


class InsufficientFunds(ValueError):
    """Raised when a debit would take a balance below zero."""


def _check_amounts(ink: int, prismatic: int) -> None:
    if ink < 0 or prismatic < 0:
        raise ValueError("Currency amounts must be non-negative")


async def get_or_create_account(db: AsyncSession, user_id: str) -> CurrencyAccount:
    """Return the user's account row, creating a zero-balance one if missing."""
    await insert_or_ignore(
        db,
        CurrencyAccount,
        user_id=user_id,
        ink_points=0,
        prismatic_ink=0,
        updated_at=datetime.now(timezone.utc),
    )
    result = await db.execute(
        select(CurrencyAccount)
        .where(CurrencyAccount.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def credit(
    db: AsyncSession,
    user_id: str,
    ink: int = 0,
    prismatic: int = 0,
    source: str = "grant",
    source_id: str | None = None,
    description: str | None = None,
) -> None:
    """Add to a user's balances. Does not commit."""
    _check_amounts(ink, prismatic)
    if ink == 0 and prismatic == 0:
        return
    await get_or_create_account(db, user_id)
    now = datetime.now(timezone.utc)
    await db.execute(
        update(CurrencyAccount)
        .where(CurrencyAccount.user_id == user_id)
        .values(
            ink_points=CurrencyAccount.ink_points + ink,
            prismatic_ink=CurrencyAccount.prismatic_ink + prismatic,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.add(CurrencyTransaction(
        user_id=user_id,
        ink_delta=ink,
        prismatic_delta=prismatic,
        source=source,
        source_id=source_id,
        description=description,
        created_at=now,
    ))
    await db.flush()


async def debit(
    db: AsyncSession,
    user_id: str,
    ink: int = 0,
    prismatic: int = 0,
    source: str = "spend",
    source_id: str | None = None,
    description: str | None = None,
) -> None:
    """Subtract from a user's balances atomically.

    Raises InsufficientFunds, with nothing changed, if either balance is short.
    Does not commit.
    """
    _check_amounts(ink, prismatic)
    if ink == 0 and prismatic == 0:
        return
    await get_or_create_account(db, user_id)
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(CurrencyAccount)
        .where(
            CurrencyAccount.user_id == user_id,
            CurrencyAccount.ink_points >= ink,
            CurrencyAccount.prismatic_ink >= prismatic,
        )
        .values(
            ink_points=CurrencyAccount.ink_points - ink,
            prismatic_ink=CurrencyAccount.prismatic_ink - prismatic,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("Debit rejected for user %s: ink=%d prismatic=%d", user_id, ink, prismatic)
        raise InsufficientFunds("Not enough currency")

    db.add(CurrencyTransaction(
        user_id=user_id,
        ink_delta=-ink,
        prismatic_delta=-prismatic,
        source=source,
        source_id=source_id,
        description=description,
        created_at=now,
    ))
    await db.flush()


async def get_balance(db: AsyncSession, user_id: str) -> dict[str, int]:
    """Current balances; zero for a user with no account yet."""
    result = await db.execute(
        select(CurrencyAccount)
        .where(CurrencyAccount.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    account = result.scalar_one_or_none()
    if account is None:
        return {"ink_points": 0, "prismatic_ink": 0}
    return {"ink_points": account.ink_points, "prismatic_ink": account.prismatic_ink}


async def get_transaction_history(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[CurrencyTransaction], int]:
    """Paginated ledger entries, newest first."""
    count_result = await db.execute(
        select(func.count()).select_from(CurrencyTransaction).where(
            CurrencyTransaction.user_id == user_id
        )
    )
    total = count_result.scalar() or 0

    offset = (page - 1) * per_page
    result = await db.execute(
        select(CurrencyTransaction)
        .where(CurrencyTransaction.user_id == user_id)
        .order_by(CurrencyTransaction.created_at.desc(), CurrencyTransaction.id.desc())
        .offset(offset)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
