"""Exceptions raised by the pricing and lifecycle code.

User-correctable problems with a transaction are not exceptions: the
validator returns them as messages. The classes below signal caller bugs or
illegal state changes.
"""

from __future__ import annotations


class SandYardError(Exception):
    """Base class for errors raised by the yard core."""


class PricingError(SandYardError):
    """A sand weight reached the pricing engine without matching any tier."""

    def __init__(self, sand_weight) -> None:
        super().__init__(f"No pricing tier covers a sand weight of {sand_weight} tons")
        self.sand_weight = sand_weight


class InvalidTransitionError(SandYardError):
    def __init__(self, current, target) -> None:
        super().__init__(
            f"Cannot move transaction from {current.value} to {target.value}"
        )
        self.current = current
        self.target = target


__all__ = ["InvalidTransitionError", "PricingError", "SandYardError"]
