"""Buyer Identity — tests for shipping-to-organization identity building."""

import pytest

from app.core.buyer_identity import ShippingOrganization, build_buyer_identity
from app.core.errors import BuyerIdentityError


def _org(**overrides) -> ShippingOrganization:
    values = dict(
        org_id="org-7", name="Hope Shelter", address="1 Main St", address2=None,
        city="Springfield", state="il", zip_code="62701", country="us",
        phone="+12175550100",
    )
    values.update(overrides)
    return ShippingOrganization(**values)


def test_account_defaults_to_organization_and_receipt_email():
    identity = build_buyer_identity(_org(), is_guest=False, receipt_email_domain="example.org")
    assert identity["firstName"] == "Hope Shelter"
    assert identity["lastName"] == "Organization"
    assert identity["email"] == "receipt+orgorg-7@example.org"
    assert identity["provinceCode"] == "IL"
    assert identity["countryCode"] == "US"
    assert identity["address1"] == "1 Main St"


def test_guest_uses_supplied_name_and_email():
    identity = build_buyer_identity(
        _org(), is_guest=True, first_name=" Ada ", last_name="Lovelace", email="ada@example.com",
    )
    assert identity["firstName"] == "Ada"
    assert identity["email"] == "ada@example.com"


def test_guest_without_name_rejected():
    with pytest.raises(BuyerIdentityError):
        build_buyer_identity(_org(), is_guest=True, email="a@b.c")


def test_guest_without_email_rejected():
    with pytest.raises(BuyerIdentityError):
        build_buyer_identity(_org(), is_guest=True, first_name="A", last_name="B")


def test_incomplete_address_rejected():
    with pytest.raises(BuyerIdentityError):
        build_buyer_identity(_org(city=""), is_guest=False)


@pytest.mark.parametrize("phone", ["2175550100", "+0217555", "+1-217-555-0100"])
def test_non_e164_phone_rejected(phone):
    with pytest.raises(BuyerIdentityError) as exc_info:
        build_buyer_identity(_org(phone=phone), is_guest=False)
    assert exc_info.value.http_status == 400
