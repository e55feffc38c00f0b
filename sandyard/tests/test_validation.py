from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from sandyard.enums import PaymentMethod
from sandyard.validation import (
    BANK_REFERENCE_REQUIRED,
    DURATION_TOO_LONG,
    EMPTY_WEIGHT_TOO_LOW,
    EXIT_BEFORE_ENTRY,
    SAND_WEIGHT_TOO_HIGH,
    SAND_WEIGHT_TOO_LOW,
    TOTAL_WEIGHT_NOT_ABOVE_EMPTY,
    TOTAL_WEIGHT_TOO_HIGH,
    TransactionCandidate,
    calculate_duration,
    calculate_sand_weight,
    validate_payment,
    validate_transaction,
)

ENTRY = datetime(2024, 1, 8, 9, 0)


def _candidate(**overrides) -> TransactionCandidate:
    values = {
        "empty_weight": 10,
        "total_weight": 18,
        "entry_time": ENTRY,
        "exit_time": ENTRY + timedelta(minutes=45),
        "payment_method": PaymentMethod.CASH,
        "bank_reference": None,
    }
    values.update(overrides)
    return TransactionCandidate(**values)


def test_valid_transaction_has_no_error() -> None:
    assert validate_transaction(_candidate()) is None


@pytest.mark.parametrize("empty_weight", [0, 1, 1.99, -3])
def test_low_empty_weight_wins_over_every_other_rule(empty_weight: float) -> None:
    candidate = _candidate(
        empty_weight=empty_weight,
        total_weight=100,
        exit_time=ENTRY - timedelta(hours=2),
        payment_method=PaymentMethod.BANK_TRANSFER,
    )
    assert validate_transaction(candidate) == EMPTY_WEIGHT_TOO_LOW


def test_empty_weight_of_exactly_two_tons_is_accepted() -> None:
    assert validate_transaction(_candidate(empty_weight=2, total_weight=5)) is None


@pytest.mark.parametrize("total_weight", [10, 9.5, 2])
def test_total_not_above_empty_is_reported_before_sand_bounds(total_weight: float) -> None:
    assert validate_transaction(_candidate(total_weight=total_weight)) == TOTAL_WEIGHT_NOT_ABOVE_EMPTY


def test_total_weight_above_maximum() -> None:
    # 31 t of sand would also break the sand ceiling; the total rule comes first
    assert validate_transaction(_candidate(total_weight=41)) == TOTAL_WEIGHT_TOO_HIGH
    assert validate_transaction(_candidate(empty_weight=10, total_weight=40)) is None


def test_sand_weight_bounds() -> None:
    assert validate_transaction(_candidate(total_weight=10.4)) == SAND_WEIGHT_TOO_LOW
    assert validate_transaction(_candidate(total_weight=10.5)) is None
    assert validate_transaction(_candidate(empty_weight=5, total_weight=35.5)) == SAND_WEIGHT_TOO_HIGH
    assert validate_transaction(_candidate(empty_weight=5, total_weight=35)) is None


def test_sand_weight_is_exact_difference() -> None:
    assert calculate_sand_weight(18.3, 10.1) == Decimal("8.2")
    assert calculate_sand_weight(Decimal("18"), Decimal("10.000")) == Decimal("8")


def test_exit_before_entry() -> None:
    candidate = _candidate(exit_time=ENTRY - timedelta(seconds=30))
    assert validate_transaction(candidate) == EXIT_BEFORE_ENTRY


def test_duration_limit_is_inclusive() -> None:
    assert validate_transaction(_candidate(exit_time=ENTRY + timedelta(hours=24))) is None
    late = _candidate(exit_time=ENTRY + timedelta(hours=24, minutes=1))
    assert validate_transaction(late) == DURATION_TOO_LONG


def test_duration_rules_need_both_timestamps() -> None:
    assert validate_transaction(_candidate(exit_time=None)) is None
    assert validate_transaction(_candidate(entry_time=None)) is None


def test_duration_is_floored_to_whole_minutes() -> None:
    assert calculate_duration(ENTRY, ENTRY + timedelta(seconds=90)) == 1
    assert calculate_duration(ENTRY, ENTRY - timedelta(seconds=30)) == -1


def test_bank_transfer_needs_reference() -> None:
    for reference in (None, "", "   "):
        candidate = _candidate(payment_method=PaymentMethod.BANK_TRANSFER, bank_reference=reference)
        assert validate_transaction(candidate) == BANK_REFERENCE_REQUIRED

    paid = _candidate(payment_method=PaymentMethod.BANK_TRANSFER, bank_reference="REF-123456")
    assert validate_transaction(paid) is None


def test_payment_rule_is_skipped_without_method() -> None:
    assert validate_payment(None) is None
    assert validate_payment(PaymentMethod.CASH) is None


def test_duration_is_checked_before_payment() -> None:
    candidate = _candidate(
        exit_time=ENTRY + timedelta(days=2),
        payment_method=PaymentMethod.BANK_TRANSFER,
    )
    assert validate_transaction(candidate) == DURATION_TOO_LONG
