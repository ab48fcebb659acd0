"""Availability — pure no-oversell arithmetic for one item need.

Invariants:
    - available = needed - purchased, floored at 0 (a need reduced below its
      purchases reports 0, never a negative quantity)
    - A request is allowed iff requested <= available
    - Quantity already reserved in the same cart counts against the request

Design Decisions:
    - Callers (services) load needed/purchased under a row lock; this module only
      decides, so the rule is testable without a database
"""

from dataclasses import dataclass

from app.core.errors import InsufficientAvailabilityError


@dataclass(frozen=True)
class Availability:
    """Needed vs. purchased snapshot for one need."""
    needed: int
    purchased: int

    @property
    def available(self) -> int:
        return max(0, self.needed - self.purchased)

    def allows(self, quantity: int) -> bool:
        return quantity <= self.available

    def to_dict(self) -> dict:
        return {
            "needed": self.needed,
            "purchased": self.purchased,
            "available": self.available,
        }


def ensure_available(
    availability: Availability,
    requested: int,
    *,
    item_name: str | None = None,
    item_id: str | None = None,
    need_ref: str | None = None,
    http_status: int = 400,
) -> None:
    """Raise InsufficientAvailabilityError if `requested` would oversell."""
    if availability.allows(requested):
        return
    raise InsufficientAvailabilityError(
        item_name=item_name,
        requested=requested,
        available=availability.available,
        needed=availability.needed,
        purchased=availability.purchased,
        need_ref=need_ref,
        item_id=item_id,
        http_status=http_status,
    )


def availability_issue(
    availability: Availability,
    requested: int,
    *,
    item_id: str,
    item_name: str | None,
    need_ref: str,
) -> dict | None:
    """Checkout-validation variant: return an issue dict instead of raising."""
    if availability.allows(requested):
        return None
    return {
        "item_id": item_id,
        "item_name": item_name,
        "need_ref": need_ref,
        "error": (
            f"Requested quantity ({requested}) exceeds available stock "
            f"({availability.available}). Max Needed: {availability.needed}, "
            f"Already Purchased: {availability.purchased}."
        ),
        "requested": requested,
        "available": availability.available,
    }
