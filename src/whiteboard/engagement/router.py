"""Engagement API endpoints: check-in, currency, achievements, gacha, flairs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from whiteboard.auth.dependencies import get_current_user
from whiteboard.database import get_session
from whiteboard.db.models import FlairItem, User
from whiteboard.engagement import (
    achievement_service,
    activity_service,
    flair_service,
    gacha_service,
    ledger,
)
from whiteboard.engagement.schemas import (
    AchievementResponse,
    AchievementsResponse,
    ActionResult,
    ActivityStatusResponse,
    ApplyFlairRequest,
    ApplyFlairResponse,
    CheckInResponse,
    ClaimRequest,
    ClaimResponse,
    CollectionResponse,
    CurrencyHistoryResponse,
    CurrencyResponse,
    CurrencyTransactionEntry,
    FlairResponse,
    GachaCostsResponse,
    GachaStateResponse,
    InventoryItemResponse,
    InventoryResponse,
    PostFlairApplicationResponse,
    PostFlairsResponse,
    PullRecordResponse,
    PullRequest,
    PullResponse,
    RewardsResponse,
)
from whiteboard.engagement.rates import RARITIES
from whiteboard.redis_client import get_optional_redis

router = APIRouter(prefix="/api/v1/engagement", tags=["Engagement"])

CLAIM_REJECTED = "Achievement either not completed or already claimed"
APPLY_REJECTED = "You must own both the post and the flair to apply it"


def _rejected(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ActionResult(success=False, message=message).model_dump(),
    )


def _flair(flair: FlairItem | None) -> FlairResponse | None:
    return FlairResponse.model_validate(flair) if flair is not None else None


# ── Daily activities ──


@router.post("/check-in", response_model=CheckInResponse)
async def check_in(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> CheckInResponse:
    """Daily check-in. A repeat on the same day answers success=false, not an error."""
    result = await activity_service.check_in(db, user.id, redis)
    return CheckInResponse(
        success=result.success,
        message=result.message,
        streak=result.streak,
        currency=CurrencyResponse(**result.currency),
        milestone_rewards=result.milestone_rewards,
        completion_bonus=result.completion_bonus,
    )


@router.get("/activities", response_model=ActivityStatusResponse)
async def get_activities(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActivityStatusResponse:
    status = await activity_service.get_status(db, user.id)
    return ActivityStatusResponse(
        day=status["date"],
        check_in=status["check_in"],
        posted=status["posted"],
        commented=status["commented"],
        liked=status["liked"],
        all_completed=status["all_completed"],
        streak=status["streak"],
        longest_streak=status["longest_streak"],
        last_check_in=status["last_check_in"],
        currency=CurrencyResponse(**status["currency"]),
    )


# ── Currency ──


@router.get("/currency", response_model=CurrencyResponse)
async def get_currency(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CurrencyResponse:
    return CurrencyResponse(**await ledger.get_balance(db, user.id))


@router.get("/currency/history", response_model=CurrencyHistoryResponse)
async def get_currency_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CurrencyHistoryResponse:
    """Paginated ledger entries, newest first."""
    entries, total = await ledger.get_transaction_history(db, user.id, page, per_page)
    return CurrencyHistoryResponse(
        transactions=[CurrencyTransactionEntry.model_validate(e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


# ── Achievements ──


@router.get("/achievements", response_model=AchievementsResponse)
async def get_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AchievementsResponse:
    """Full catalog merged with the caller's progress."""
    items, categories = await achievement_service.list_achievements(db, user.id)
    return AchievementsResponse(
        achievements=[
            AchievementResponse(
                id=item["definition"].id,
                name=item["definition"].name,
                description=item["definition"].description,
                category=item["definition"].category,
                icon=item["definition"].icon,
                required_progress=item["definition"].required_progress,
                current_progress=item["current_progress"],
                progress_percentage=item["progress_percentage"],
                completed=item["completed"],
                completed_at=item["completed_at"],
                reward_claimed=item["reward_claimed"],
                ink_reward=item["definition"].ink_reward,
                prismatic_reward=item["definition"].prismatic_reward,
                flair_reward=item["definition"].flair_reward,
            )
            for item in items
        ],
        categories=categories,
    )


@router.post("/achievements/claim", response_model=ClaimResponse)
async def claim_achievement(
    body: ClaimRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ClaimResponse | JSONResponse:
    bundle = await achievement_service.claim(db, user.id, body.achievement_id)
    if bundle is None:
        return _rejected(400, CLAIM_REJECTED)
    return ClaimResponse(
        success=True,
        message="Reward claimed",
        rewards=RewardsResponse(
            ink_points=bundle.ink_points,
            prismatic_ink=bundle.prismatic_ink,
            flair=_flair(bundle.flair),
        ),
        currency=CurrencyResponse(**bundle.currency),
    )


# ── Gacha ──


@router.get("/gacha", response_model=GachaStateResponse)
async def get_gacha(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> GachaStateResponse:
    """Open collections, balances and the caller's last 10 pulls."""
    state = await gacha_service.get_gacha_state(db, user.id)
    collections = []
    for c in state["collections"]:
        present = {item.flair.rarity for item in c.items}
        collections.append(CollectionResponse(
            id=c.id,
            name=c.name,
            description=c.description,
            start_date=c.start_date,
            end_date=c.end_date,
            rarities=[r for r in RARITIES if r in present],
        ))
    return GachaStateResponse(
        collections=collections,
        currency=CurrencyResponse(**state["currency"]),
        recent_pulls=[
            PullRecordResponse(
                id=p.id,
                collection_id=p.collection_id,
                flair=FlairResponse.model_validate(p.flair),
                was_premium=p.was_premium,
                pull_time=p.pull_time,
            )
            for p in state["recent_pulls"]
        ],
        costs=GachaCostsResponse(**state["costs"]),
    )


@router.post("/gacha", response_model=PullResponse)
async def pull_gacha(
    body: PullRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object = Depends(get_optional_redis),
) -> PullResponse | JSONResponse:
    try:
        result = await gacha_service.pull(db, user.id, body.collection_id, body.is_premium, redis=redis)
    except LookupError as e:
        raise HTTPException(status_code=404, detail="Collection not found") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if result is None:
        return _rejected(400, gacha_service.NOT_ENOUGH_CURRENCY)
    return PullResponse(
        success=True,
        message=f"You got {result.flair.name}!",
        flair=_flair(result.flair),
        was_premium=result.was_premium,
        currency=CurrencyResponse(**result.currency),
        completed_achievements=result.completed_achievements,
    )


# ── Flairs ──


@router.get("/inventory", response_model=InventoryResponse)
async def get_inventory(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> InventoryResponse:
    """Owned flairs, each with the caller's posts it is applied to, also grouped by type."""
    entries = await flair_service.get_inventory(db, user.id)
    items = [
        InventoryItemResponse(
            id=e["item"].id,
            flair=FlairResponse.model_validate(e["flair"]),
            source=e["item"].source,
            acquired_at=e["item"].acquired_at,
            applied_to=e["applied_to"],
        )
        for e in entries
    ]
    grouped: dict[str, list[InventoryItemResponse]] = {}
    for item in items:
        grouped.setdefault(item.flair.type, []).append(item)
    return InventoryResponse(inventory=items, grouped_inventory=grouped)


@router.post("/apply-flair", response_model=ApplyFlairResponse)
async def apply_flair(
    body: ApplyFlairRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ApplyFlairResponse | JSONResponse:
    flair = await flair_service.apply_flair(db, user.id, body.post_id, body.flair_id)
    if flair is None:
        return _rejected(400, APPLY_REJECTED)
    return ApplyFlairResponse(success=True, message="Flair applied", flair=_flair(flair))


@router.delete("/apply-flair", response_model=ActionResult)
async def remove_flair(
    post_id: str = Query(..., min_length=1),
    flair_id: str = Query(..., min_length=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ActionResult:
    """Remove a flair from one of the caller's posts. Absent applications are a no-op."""
    if not await flair_service.remove_flair(db, user.id, post_id, flair_id):
        raise HTTPException(status_code=403, detail="You can only remove flairs from your own posts")
    return ActionResult(success=True, message="Flair removed")


@router.get("/post-flairs", response_model=PostFlairsResponse)
async def get_post_flairs(
    post_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_session),
) -> PostFlairsResponse:
    applications = await flair_service.get_post_flairs(db, post_id)
    by_type = flair_service.group_by_type([a.flair for a in applications])
    return PostFlairsResponse(
        flairs=[
            PostFlairApplicationResponse(
                id=a.id,
                post_id=a.post_id,
                flair=FlairResponse.model_validate(a.flair),
                applied_at=a.applied_at,
            )
            for a in applications
        ],
        flairs_by_type={
            t: [FlairResponse.model_validate(f) for f in flairs] for t, flairs in by_type.items()
        },
    )
