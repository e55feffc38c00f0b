from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from sandyard.enums import PaymentMethod
from sandyard.exceptions import PricingError
from sandyard.pricing import (
    calculate_tiered_price,
    compute_final_price,
    find_tier,
    is_peak_hour,
    is_weekend,
    tier_info,
)

# 2024-01-08 is a Monday
MONDAY = datetime(2024, 1, 8)
WEDNESDAY = datetime(2024, 1, 10)
SATURDAY = datetime(2024, 1, 13)
SUNDAY = datetime(2024, 1, 14)


@pytest.mark.parametrize(
    "sand_weight, rate",
    [
        (0.5, 150),
        (5.0, 150),
        (5.1, 140),
        (15.0, 140),
        (15.1, 130),
        (30.0, 130),
    ],
)
def test_tier_boundaries(sand_weight: float, rate: int) -> None:
    _, tier = find_tier(sand_weight)
    assert tier.price_per_ton == rate


@pytest.mark.parametrize("sand_weight", [0.49, 5.05, 15.05, 30.01])
def test_weights_outside_every_tier_fail_hard(sand_weight: float) -> None:
    with pytest.raises(PricingError):
        calculate_tiered_price(sand_weight)
    with pytest.raises(PricingError):
        compute_final_price(sand_weight, WEDNESDAY.replace(hour=19))


@pytest.mark.parametrize(
    "hour, minute, expected",
    [
        (7, 59, False),
        (8, 0, True),
        (11, 59, True),
        (12, 0, False),
        (13, 59, False),
        (14, 0, True),
        (16, 59, True),
        (17, 0, False),
    ],
)
def test_peak_hours_are_half_open(hour: int, minute: int, expected: bool) -> None:
    entry = WEDNESDAY.replace(hour=hour, minute=minute)
    assert is_peak_hour(entry) is expected
    surcharge = compute_final_price(4, entry).peak_hour_surcharge
    assert surcharge == (Decimal("40") if expected else 0)


def test_weekend_detection() -> None:
    assert is_weekend(SATURDAY)
    assert is_weekend(SUNDAY)
    assert not is_weekend(MONDAY)
    assert not is_weekend(WEDNESDAY)


def test_weekend_discount_is_five_percent_of_base() -> None:
    saturday = compute_final_price(10, SATURDAY.replace(hour=9))
    assert saturday.base_price == Decimal("1400")
    assert saturday.peak_hour_surcharge == Decimal("100")
    assert saturday.weekend_discount == Decimal("70")
    assert saturday.final_price == Decimal("1430.00")

    wednesday = compute_final_price(10, WEDNESDAY.replace(hour=9))
    assert wednesday.weekend_discount == 0
    assert wednesday.final_price == Decimal("1500.00")


def test_weekday_peak_scenario() -> None:
    breakdown = compute_final_price(8, MONDAY.replace(hour=9), PaymentMethod.CASH)
    assert breakdown.base_price == Decimal("1120")
    assert breakdown.peak_hour_surcharge == Decimal("80")
    assert breakdown.weekend_discount == 0
    assert breakdown.final_price == Decimal("1200.00")


def test_sunday_peak_scenario() -> None:
    breakdown = compute_final_price(3, SUNDAY.replace(hour=10), PaymentMethod.BANK_TRANSFER)
    assert breakdown.base_price == Decimal("450")
    assert breakdown.peak_hour_surcharge == Decimal("30")
    assert breakdown.weekend_discount == Decimal("22.5")
    assert breakdown.final_price == Decimal("457.50")


def test_payment_method_does_not_change_price() -> None:
    entry = MONDAY.replace(hour=15)
    cash = compute_final_price(12, entry, PaymentMethod.CASH)
    transfer = compute_final_price(12, entry, PaymentMethod.BANK_TRANSFER)
    assert cash == transfer


def test_final_price_rounds_half_up_on_the_cent() -> None:
    # 0.506 t on a Saturday evening: 75.90 - 3.795 = 72.105
    breakdown = compute_final_price(0.506, SATURDAY.replace(hour=18))
    assert breakdown.final_price == Decimal("72.11")
    assert breakdown.weekend_discount == Decimal("3.795")


def test_same_inputs_same_breakdown() -> None:
    entry = SUNDAY.replace(hour=14, minute=30)
    assert compute_final_price(22.4, entry) == compute_final_price(22.4, entry)


def test_tier_info_in_lower_tiers() -> None:
    info = tier_info(3)
    assert info.current_tier.price_per_ton == 150
    assert info.next_tier is not None
    assert info.next_tier.price_per_ton == 140
    assert info.tons_till_next_tier == Decimal("2.1")

    info = tier_info(15)
    assert info.current_tier.price_per_ton == 140
    assert info.next_tier.min_tons == Decimal("15.1")
    assert info.tons_till_next_tier == Decimal("0.1")


def test_tier_info_in_top_tier() -> None:
    info = tier_info(20)
    assert info.current_tier.price_per_ton == 130
    assert info.next_tier is None
    assert info.tons_till_next_tier is None


def test_tier_info_rejects_untiered_weight() -> None:
    with pytest.raises(PricingError):
        tier_info(31)


def test_breakdown_serializes_for_responses() -> None:
    payload = tier_info(8).to_dict()
    assert payload["current_tier"] == {
        "min_tons": Decimal("5.1"),
        "max_tons": Decimal("15"),
        "price_per_ton": Decimal("140"),
    }
    assert set(compute_final_price(8, MONDAY).to_dict()) == {
        "base_price",
        "peak_hour_surcharge",
        "weekend_discount",
        "final_price",
    }
