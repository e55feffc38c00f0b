"""Utility helpers shared across the yard services."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from zoneinfo import ZoneInfo

Number = Union[Decimal, float, int, str]


def to_decimal(value: Number) -> Decimal:
    """Return *value* as a Decimal without binary float noise.

    Floats go through ``str`` so that ``18.3`` becomes ``Decimal("18.3")``
    rather than its exact binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Strip *value* and collapse blank strings to ``None``."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def to_yard_time(value: datetime, timezone_name: Optional[str] = None) -> datetime:
    """Convert a timestamp into naive yard wall-clock time.

    Aware values are converted into *timezone_name* when one is configured,
    otherwise their own wall clock is kept. Naive values are assumed to be
    yard time already.
    """
    if value.tzinfo is None:
        return value
    if timezone_name:
        value = value.astimezone(ZoneInfo(timezone_name))
    return value.replace(tzinfo=None)


def yard_now(timezone_name: Optional[str] = None) -> datetime:
    if timezone_name:
        return datetime.now(ZoneInfo(timezone_name)).replace(tzinfo=None)
    return datetime.now()


__all__ = ["Number", "clean_optional", "to_decimal", "to_yard_time", "yard_now"]
