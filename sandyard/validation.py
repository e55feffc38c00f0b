"""Weight, duration and payment rules for yard transactions.

Every check returns ``None`` when the rule holds and an operator-facing
message otherwise. :func:`validate_transaction` runs them in a fixed order
and stops at the first failure, so callers always see a single message.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from .enums import PaymentMethod
from .utils import Number, to_decimal

MIN_EMPTY_WEIGHT = Decimal("2")  # tons
MAX_TOTAL_WEIGHT = Decimal("40")  # tons
MIN_SAND_WEIGHT = Decimal("0.5")  # tons
MAX_SAND_WEIGHT = Decimal("30")  # tons
MAX_DURATION_MINUTES = 24 * 60

EMPTY_WEIGHT_TOO_LOW = "empty weight too low"
TOTAL_WEIGHT_NOT_ABOVE_EMPTY = "total weight must exceed empty weight"
TOTAL_WEIGHT_TOO_HIGH = "total weight exceeds maximum"
SAND_WEIGHT_TOO_LOW = "sand weight below minimum"
SAND_WEIGHT_TOO_HIGH = "sand weight exceeds maximum"
EXIT_BEFORE_ENTRY = "exit time must be after entry time"
DURATION_TOO_LONG = "duration exceeds 24 hours"
BANK_REFERENCE_REQUIRED = "bank reference required for bank transfer"


@dataclass(frozen=True)
class TransactionCandidate:
    """Resolved values of a transaction about to be weighed out or paid."""

    empty_weight: Number
    total_weight: Number
    entry_time: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    payment_method: Optional[PaymentMethod] = None
    bank_reference: Optional[str] = None


def validate_empty_weight(empty_weight: Number) -> Optional[str]:
    if to_decimal(empty_weight) < MIN_EMPTY_WEIGHT:
        return EMPTY_WEIGHT_TOO_LOW
    return None


def validate_total_weight(total_weight: Number, empty_weight: Number) -> Optional[str]:
    total = to_decimal(total_weight)
    if total <= to_decimal(empty_weight):
        return TOTAL_WEIGHT_NOT_ABOVE_EMPTY
    if total > MAX_TOTAL_WEIGHT:
        return TOTAL_WEIGHT_TOO_HIGH
    return None


def calculate_sand_weight(total_weight: Number, empty_weight: Number) -> Decimal:
    return to_decimal(total_weight) - to_decimal(empty_weight)


def validate_sand_weight(sand_weight: Number) -> Optional[str]:
    sand = to_decimal(sand_weight)
    if sand < MIN_SAND_WEIGHT:
        return SAND_WEIGHT_TOO_LOW
    if sand > MAX_SAND_WEIGHT:
        return SAND_WEIGHT_TOO_HIGH
    return None


def calculate_duration(entry_time: datetime, exit_time: datetime) -> int:
    """Whole minutes between entry and exit, floored (negative if reversed)."""
    return int((exit_time - entry_time).total_seconds() // 60)


def validate_duration(duration_minutes: int) -> Optional[str]:
    if duration_minutes < 0:
        return EXIT_BEFORE_ENTRY
    if duration_minutes > MAX_DURATION_MINUTES:
        return DURATION_TOO_LONG
    return None


def validate_payment(
    method: Optional[PaymentMethod], bank_reference: Optional[str] = None
) -> Optional[str]:
    """Bank transfers need a reference; a blank or whitespace-only one counts as missing."""
    if method is PaymentMethod.BANK_TRANSFER and not (bank_reference or "").strip():
        return BANK_REFERENCE_REQUIRED
    return None


def validate_transaction(candidate: TransactionCandidate) -> Optional[str]:
    """Return the first rule *candidate* breaks, or ``None`` if it is valid.

    The duration rules only apply when both timestamps are known and the
    payment rule only when a method has been chosen.
    """
    error = validate_empty_weight(candidate.empty_weight)
    if error:
        return error

    error = validate_total_weight(candidate.total_weight, candidate.empty_weight)
    if error:
        return error

    sand_weight = calculate_sand_weight(candidate.total_weight, candidate.empty_weight)
    error = validate_sand_weight(sand_weight)
    if error:
        return error

    if candidate.entry_time is not None and candidate.exit_time is not None:
        duration = calculate_duration(candidate.entry_time, candidate.exit_time)
        error = validate_duration(duration)
        if error:
            return error

    return validate_payment(candidate.payment_method, candidate.bank_reference)


__all__ = [
    "BANK_REFERENCE_REQUIRED",
    "DURATION_TOO_LONG",
    "EMPTY_WEIGHT_TOO_LOW",
    "EXIT_BEFORE_ENTRY",
    "MAX_DURATION_MINUTES",
    "MAX_SAND_WEIGHT",
    "MAX_TOTAL_WEIGHT",
    "MIN_EMPTY_WEIGHT",
    "MIN_SAND_WEIGHT",
    "SAND_WEIGHT_TOO_HIGH",
    "SAND_WEIGHT_TOO_LOW",
    "TOTAL_WEIGHT_NOT_ABOVE_EMPTY",
    "TOTAL_WEIGHT_TOO_HIGH",
    "TransactionCandidate",
    "calculate_duration",
    "calculate_sand_weight",
    "validate_duration",
    "validate_empty_weight",
    "validate_payment",
    "validate_sand_weight",
    "validate_total_weight",
    "validate_transaction",
]
