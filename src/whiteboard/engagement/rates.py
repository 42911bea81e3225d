"""Economy constants: activity rewards, streak milestones and gacha tier rates.

Rates are content-tuning values; the defaults here can be overridden through
settings (WB_GACHA_STANDARD_RATES / WB_GACHA_PREMIUM_RATES as JSON objects).
"""

from __future__ import annotations

RARITIES: tuple[str, ...] = ("common", "rare", "epic", "legendary")
FLAIR_TYPES: tuple[str, ...] = ("border", "background", "effect", "badge", "trim")
ACTIVITY_KINDS: tuple[str, ...] = ("check_in", "posted", "commented", "liked")

# Ink credited the first time each flag flips on a given day
ACTIVITY_INK_REWARDS: dict[str, int] = {
    "check_in": 10,
    "posted": 20,
    "commented": 10,
    "liked": 5,
}

# Bonus for completing all four daily activities
DAILY_COMPLETION_PRISMATIC_BONUS = 1

# streak length -> (ink, prismatic); each granted at most once per user
STREAK_MILESTONES: dict[int, tuple[int, int]] = {
    7: (30, 1),
    30: (200, 5),
}

DEFAULT_STANDARD_RATES: dict[str, float] = {
    "common": 0.70,
    "rare": 0.22,
    "epic": 0.07,
    "legendary": 0.01,
}

DEFAULT_PREMIUM_RATES: dict[str, float] = {
    "common": 0.0,
    "rare": 0.60,
    "epic": 0.30,
    "legendary": 0.10,
}

_RATE_TOLERANCE = 1e-6


def validate_rates(rates: dict[str, float]) -> None:
    """Raise ValueError unless rates is a probability table over known rarities."""
    unknown = set(rates) - set(RARITIES)
    if unknown:
        raise ValueError(f"Unknown rarity tiers: {sorted(unknown)}")
    if any(p < 0 for p in rates.values()):
        raise ValueError("Rarity rates must be non-negative")
    total = sum(rates.values())
    if abs(total - 1.0) > _RATE_TOLERANCE:
        raise ValueError(f"Rarity rates must sum to 1, got {total}")
