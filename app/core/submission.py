"""Submission Outcome — split a Rye submitCart result into per-store successes and failures.

Invariants:
    - A store succeeded iff it has an orderId, no errors, and a non-failed status
    - The first successful store's order id is the primary order id
    - Only lines belonging to successful stores are finalized locally

Design Decisions:
    - Store identity is the store name (e.g. "amazon" or a Shopify domain); the
      pre-submit cart maps names to lines because submit results carry no lines
"""

from dataclasses import dataclass, field

from app.core.domain_types import LineKey, Marketplace
from app.core.marketplace import line_key, store_marketplace, store_name

_FAILED_STATUSES = {"FAILED", "PAYMENT_FAILED", "REJECTED"}


@dataclass(frozen=True)
class StoreOrder:
    store: str | None
    marketplace: Marketplace
    rye_order_id: str


@dataclass(frozen=True)
class StoreFailure:
    store: str | None
    marketplace: Marketplace
    status: str | None
    errors: list[dict]

    def to_dict(self) -> dict:
        return {
            "store": self.store,
            "marketplace": self.marketplace.value,
            "status": self.status,
            "errors": self.errors,
        }


@dataclass
class SubmissionOutcome:
    successful: list[StoreOrder] = field(default_factory=list)
    failed: list[StoreFailure] = field(default_factory=list)

    @property
    def any_succeeded(self) -> bool:
        return bool(self.successful)

    @property
    def rye_order_ids(self) -> list[str]:
        return [s.rye_order_id for s in self.successful]

    @property
    def successful_store_names(self) -> set[str | None]:
        return {s.store for s in self.successful}


def partition_submission(submitted_cart: dict | None) -> SubmissionOutcome:
    """Classify every store of a submitCart result."""
    outcome = SubmissionOutcome()
    for store in (submitted_cart or {}).get("stores") or []:
        name = store_name(store)
        marketplace = store_marketplace(store)
        errors = store.get("errors") or []
        status = store.get("status")
        order_id = store.get("orderId")
        if order_id and not errors and (status or "").upper() not in _FAILED_STATUSES:
            outcome.successful.append(StoreOrder(name, marketplace, order_id))
        else:
            outcome.failed.append(StoreFailure(name, marketplace, status, list(errors)))
    return outcome


def successful_line_keys(cart: dict, outcome: SubmissionOutcome) -> set[LineKey]:
    """Line keys in `cart` (pre-submit snapshot) that belong to successful stores."""
    names = outcome.successful_store_names
    keys: set[LineKey] = set()
    for store in cart.get("stores") or []:
        if store_name(store) not in names:
            continue
        for line in store.get("cartLines") or []:
            key = line_key(store, line)
            if key is not None:
                keys.add(key)
    return keys
