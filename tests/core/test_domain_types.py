"""Domain Types — verifies enum values and value-type behaviour.

Tests:
    - Marketplace.parse is case/whitespace-insensitive and rejects unknowns
    - Voided order statuses are exactly cancelled, failed, refunded
    - NeedRef renders as "<type>:<id>" and is hashable
"""

from uuid import uuid4

import pytest

from app.core.domain_types import (
    CartStatus, LineKey, Marketplace, NeedRef, NeedRefType,
    OrderStatus, VOIDED_ORDER_STATUSES,
)


def test_marketplace_parse_normalizes_case():
    assert Marketplace.parse(" amazon ") is Marketplace.AMAZON
    assert Marketplace.parse("Shopify") is Marketplace.SHOPIFY


def test_marketplace_parse_rejects_unknown():
    with pytest.raises(ValueError):
        Marketplace.parse("ebay")


def test_cart_status_has_three_states():
    assert {s.value for s in CartStatus} == {"active", "abandoned", "submitted"}


def test_voided_statuses_exclude_live_orders():
    assert set(VOIDED_ORDER_STATUSES) == {"cancelled", "failed", "refunded"}
    assert OrderStatus.PROCESSING.value not in VOIDED_ORDER_STATUSES
    assert OrderStatus.COMPLETED.value not in VOIDED_ORDER_STATUSES


def test_need_ref_str_and_hash():
    ref_id = uuid4()
    ref = NeedRef(NeedRefType.CHILD_ITEM, ref_id)
    assert str(ref) == f"child_item:{ref_id}"
    assert {ref: 1}[NeedRef(NeedRefType.CHILD_ITEM, ref_id)] == 1


def test_line_key_equality():
    assert LineKey(Marketplace.AMAZON, "B01") == LineKey(Marketplace.AMAZON, "B01")
    assert LineKey(Marketplace.AMAZON, "B01") != LineKey(Marketplace.SHOPIFY, "B01")
