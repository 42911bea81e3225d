"""Pydantic request/response models for engagement endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


class CurrencyResponse(BaseModel):
    ink_points: int = 0
    prismatic_ink: int = 0


class ActionResult(BaseModel):
    """Business-rule outcome: clients branch on success, not on status alone."""

    success: bool
    message: str = ""


# --- Flairs ---


class FlairResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    type: str
    rarity: str
    ink_price: int = 0
    prismatic_price: int = 0
    css_class: str
    preview_image_url: str | None = None

    model_config = {"from_attributes": True}


class InventoryItemResponse(BaseModel):
    id: str
    flair: FlairResponse
    source: str
    acquired_at: datetime
    applied_to: list[str] = []


class InventoryResponse(BaseModel):
    inventory: list[InventoryItemResponse]
    grouped_inventory: dict[str, list[InventoryItemResponse]]


class ApplyFlairRequest(BaseModel):
    post_id: str = Field(..., min_length=1)
    flair_id: str = Field(..., min_length=1)


class ApplyFlairResponse(ActionResult):
    flair: FlairResponse | None = None


class PostFlairApplicationResponse(BaseModel):
    id: str
    post_id: str
    flair: FlairResponse
    applied_at: datetime


class PostFlairsResponse(BaseModel):
    flairs: list[PostFlairApplicationResponse]
    flairs_by_type: dict[str, list[FlairResponse]]


# --- Daily activities ---


class CheckInResponse(ActionResult):
    streak: int = 0
    currency: CurrencyResponse = CurrencyResponse()
    milestone_rewards: list[int] = []
    completion_bonus: bool = False


class ActivityStatusResponse(BaseModel):
    day: date
    check_in: bool
    posted: bool
    commented: bool
    liked: bool
    all_completed: bool
    streak: int
    longest_streak: int
    last_check_in: date | None = None
    currency: CurrencyResponse


class CurrencyTransactionEntry(BaseModel):
    id: int
    ink_delta: int
    prismatic_delta: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CurrencyHistoryResponse(BaseModel):
    transactions: list[CurrencyTransactionEntry]
    total: int
    page: int
    per_page: int


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    icon: str | None = None
    required_progress: int
    current_progress: int = 0
    progress_percentage: int = 0
    completed: bool = False
    completed_at: datetime | None = None
    reward_claimed: bool = False
    ink_reward: int = 0
    prismatic_reward: int = 0
    flair_reward: str | None = None


class AchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]
    categories: list[str]


class ClaimRequest(BaseModel):
    achievement_id: str = Field(..., min_length=1)


class RewardsResponse(BaseModel):
    ink_points: int = 0
    prismatic_ink: int = 0
    flair: FlairResponse | None = None


class ClaimResponse(ActionResult):
    rewards: RewardsResponse | None = None
    currency: CurrencyResponse | None = None


# --- Gacha ---


class CollectionResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    rarities: list[str]


class PullRecordResponse(BaseModel):
    id: str
    collection_id: str
    flair: FlairResponse
    was_premium: bool
    pull_time: datetime


class GachaCostsResponse(BaseModel):
    standard_ink: int
    premium_prismatic: int


class GachaStateResponse(BaseModel):
    collections: list[CollectionResponse]
    currency: CurrencyResponse
    recent_pulls: list[PullRecordResponse]
    costs: GachaCostsResponse


class PullRequest(BaseModel):
    collection_id: str = Field(..., min_length=1)
    is_premium: bool = False


class PullResponse(ActionResult):
    flair: FlairResponse | None = None
    was_premium: bool = False
    currency: CurrencyResponse | None = None
    completed_achievements: list[str] = []
