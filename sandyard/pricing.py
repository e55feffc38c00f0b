"""Tiered, time-of-day pricing for delivered sand."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from .enums import PaymentMethod
from .exceptions import PricingError
from .utils import Number, to_decimal


@dataclass(frozen=True)
class WeightTier:
    min_tons: Decimal
    max_tons: Decimal
    price_per_ton: Decimal

    def covers(self, sand_weight: Decimal) -> bool:
        return self.min_tons <= sand_weight <= self.max_tons

    def to_dict(self) -> dict:
        return {
            "min_tons": self.min_tons,
            "max_tons": self.max_tons,
            "price_per_ton": self.price_per_ton,
        }


# Bounds are inclusive. The gaps between 5 and 5.1 and between 15 and 15.1
# are deliberate: weights there match no tier.
WEIGHT_TIERS: Tuple[WeightTier, ...] = (
    WeightTier(Decimal("0.5"), Decimal("5"), Decimal("150")),
    WeightTier(Decimal("5.1"), Decimal("15"), Decimal("140")),
    WeightTier(Decimal("15.1"), Decimal("30"), Decimal("130")),
)

# (start, end) hours, end exclusive
PEAK_HOURS: Tuple[Tuple[int, int], ...] = ((8, 12), (14, 17))
PEAK_HOUR_SURCHARGE = Decimal("10")  # DH per ton
WEEKEND_DISCOUNT_RATE = Decimal("0.05")  # share of the base price
WEEKEND_DAYS = frozenset({5, 6})  # datetime.weekday(): Saturday, Sunday

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: Decimal
    peak_hour_surcharge: Decimal
    weekend_discount: Decimal
    final_price: Decimal

    def to_dict(self) -> dict:
        return {
            "base_price": self.base_price,
            "peak_hour_surcharge": self.peak_hour_surcharge,
            "weekend_discount": self.weekend_discount,
            "final_price": self.final_price,
        }


@dataclass(frozen=True)
class TierInfo:
    current_tier: WeightTier
    next_tier: Optional[WeightTier]
    tons_till_next_tier: Optional[Decimal]

    def to_dict(self) -> dict:
        return {
            "current_tier": self.current_tier.to_dict(),
            "next_tier": self.next_tier.to_dict() if self.next_tier else None,
            "tons_till_next_tier": self.tons_till_next_tier,
        }


def find_tier(sand_weight: Number) -> Tuple[int, WeightTier]:
    """Return ``(index, tier)`` for *sand_weight* or raise :class:`PricingError`."""
    weight = to_decimal(sand_weight)
    for index, tier in enumerate(WEIGHT_TIERS):
        if tier.covers(weight):
            return index, tier
    raise PricingError(weight)


def calculate_tiered_price(sand_weight: Number) -> Decimal:
    weight = to_decimal(sand_weight)
    _, tier = find_tier(weight)
    return weight * tier.price_per_ton


def is_peak_hour(moment: datetime) -> bool:
    """True when the wall-clock hour of *moment* falls in a peak window."""
    return any(start <= moment.hour < end for start, end in PEAK_HOURS)


def is_weekend(moment: datetime) -> bool:
    return moment.weekday() in WEEKEND_DAYS


def compute_final_price(
    sand_weight: Number,
    entry_time: datetime,
    payment_method: Optional[PaymentMethod] = None,
) -> PriceBreakdown:
    """Price a load from its sand weight and the truck's entry time.

    The weekend discount is taken on the base price alone, never on the peak
    surcharge. Only the final price is rounded (half-up, to the cent).
    *payment_method* is accepted for callers that quote per method; both
    methods currently pay the same amount.
    """
    weight = to_decimal(sand_weight)
    base_price = calculate_tiered_price(weight)

    surcharge = weight * PEAK_HOUR_SURCHARGE if is_peak_hour(entry_time) else Decimal("0")
    discount = base_price * WEEKEND_DISCOUNT_RATE if is_weekend(entry_time) else Decimal("0")

    final_price = (base_price + surcharge - discount).quantize(CENT, rounding=ROUND_HALF_UP)
    return PriceBreakdown(
        base_price=base_price,
        peak_hour_surcharge=surcharge,
        weekend_discount=discount,
        final_price=final_price,
    )


def tier_info(sand_weight: Number) -> TierInfo:
    weight = to_decimal(sand_weight)
    index, current = find_tier(weight)
    if index == len(WEIGHT_TIERS) - 1:
        return TierInfo(current_tier=current, next_tier=None, tons_till_next_tier=None)

    next_tier = WEIGHT_TIERS[index + 1]
    remaining = max(Decimal("0"), next_tier.min_tons - weight)
    return TierInfo(current_tier=current, next_tier=next_tier, tons_till_next_tier=remaining)


__all__ = [
    "PEAK_HOURS",
    "PEAK_HOUR_SURCHARGE",
    "WEEKEND_DISCOUNT_RATE",
    "WEIGHT_TIERS",
    "PriceBreakdown",
    "TierInfo",
    "WeightTier",
    "calculate_tiered_price",
    "compute_final_price",
    "find_tier",
    "is_peak_hour",
    "is_weekend",
    "tier_info",
]
