"""Allowed status changes for a yard transaction."""

from __future__ import annotations

from typing import Dict, FrozenSet

from .enums import TransactionStatus
from .exceptions import InvalidTransitionError

TRANSITIONS: Dict[TransactionStatus, FrozenSet[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.IN_PROGRESS, TransactionStatus.CANCELLED}
    ),
    TransactionStatus.IN_PROGRESS: frozenset(
        {TransactionStatus.COMPLETED, TransactionStatus.CANCELLED}
    ),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


def is_terminal(status: TransactionStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: TransactionStatus, target: TransactionStatus) -> TransactionStatus:
    """Return *target* if the move is legal, otherwise raise."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return target


__all__ = [
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "can_transition",
    "ensure_transition",
    "is_terminal",
]
