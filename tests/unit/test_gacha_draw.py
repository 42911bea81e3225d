"""Rarity rates and the weighted draw (no database)."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from whiteboard.config import Settings
from whiteboard.engagement.gacha_service import draw_flair, eligible_tiers
from whiteboard.engagement.rates import (
    DEFAULT_PREMIUM_RATES,
    DEFAULT_STANDARD_RATES,
    validate_rates,
)


class FixedRandom:
    """Returns queued values from random(), in order."""

    def __init__(self, *values: float) -> None:
        self.values = list(values)

    def random(self) -> float:
        return self.values.pop(0)


def _item(name: str, rarity: str, weight: float = 1.0) -> SimpleNamespace:
    return SimpleNamespace(name=name, weight=weight, flair=SimpleNamespace(rarity=rarity))


FULL_POOL = [
    _item("c1", "common"),
    _item("r1", "rare"),
    _item("e1", "epic"),
    _item("l1", "legendary"),
]


class TestValidateRates:
    def test_defaults_are_valid(self):
        validate_rates(DEFAULT_STANDARD_RATES)
        validate_rates(DEFAULT_PREMIUM_RATES)

    def test_premium_is_biased_upward(self):
        assert DEFAULT_PREMIUM_RATES["common"] < DEFAULT_STANDARD_RATES["common"]
        assert DEFAULT_PREMIUM_RATES["legendary"] > DEFAULT_STANDARD_RATES["legendary"]

    def test_rejects_sum_not_one(self):
        with pytest.raises(ValueError, match="sum to 1"):
            validate_rates({"common": 0.5, "rare": 0.4})

    def test_rejects_negative(self):
        with pytest.raises(ValueError, match="non-negative"):
            validate_rates({"common": 1.2, "rare": -0.2})

    def test_rejects_unknown_tier(self):
        with pytest.raises(ValueError, match="Unknown rarity"):
            validate_rates({"mythic": 1.0})

    def test_settings_reject_bad_table(self):
        with pytest.raises(ValidationError):
            Settings(gacha_standard_rates={"common": 0.9})


class TestEligibleTiers:
    def test_full_pool_keeps_configured_rates(self):
        tiers = eligible_tiers(FULL_POOL, DEFAULT_STANDARD_RATES)
        assert tiers["common"] == pytest.approx(0.70)
        assert tiers["legendary"] == pytest.approx(0.01)

    def test_premium_drops_zero_rate_tier(self):
        tiers = eligible_tiers(FULL_POOL, DEFAULT_PREMIUM_RATES)
        assert "common" not in tiers
        assert sum(tiers.values()) == pytest.approx(1.0)

    def test_missing_tiers_are_renormalised(self):
        pool = [_item("c1", "common"), _item("r1", "rare")]
        tiers = eligible_tiers(pool, DEFAULT_STANDARD_RATES)
        assert set(tiers) == {"common", "rare"}
        assert tiers["common"] == pytest.approx(0.70 / 0.92)
        assert sum(tiers.values()) == pytest.approx(1.0)


class TestDrawFlair:
    def test_low_roll_draws_common(self):
        item = draw_flair(FULL_POOL, DEFAULT_STANDARD_RATES, FixedRandom(0.0, 0.0))
        assert item.name == "c1"

    def test_high_roll_draws_legendary(self):
        item = draw_flair(FULL_POOL, DEFAULT_STANDARD_RATES, FixedRandom(0.995, 0.0))
        assert item.name == "l1"

    def test_premium_never_draws_common(self):
        # Lowest possible roll lands in the first eligible tier, which is rare
        item = draw_flair(FULL_POOL, DEFAULT_PREMIUM_RATES, FixedRandom(0.0, 0.0))
        assert item.flair.rarity == "rare"

    def test_in_tier_weights(self):
        pool = [_item("light", "common", 1.0), _item("heavy", "common", 3.0)]
        # tier roll irrelevant (one tier); item roll 0.5 * 4.0 = 2.0 lands in "heavy"
        assert draw_flair(pool, DEFAULT_STANDARD_RATES, FixedRandom(0.1, 0.5)).name == "heavy"
        assert draw_flair(pool, DEFAULT_STANDARD_RATES, FixedRandom(0.1, 0.2)).name == "light"

    def test_no_eligible_tier_raises(self):
        pool = [_item("c1", "common")]
        with pytest.raises(ValueError):
            draw_flair(pool, DEFAULT_PREMIUM_RATES, FixedRandom(0.5, 0.5))

    def test_empty_pool_raises(self):
        with pytest.raises(ValueError):
            draw_flair([], DEFAULT_STANDARD_RATES)

    def test_default_rng_returns_pool_member(self):
        assert draw_flair(FULL_POOL, DEFAULT_STANDARD_RATES) in FULL_POOL
