"""Buyer Identity — build the Rye buyer identity that ships a donation to its organization.

Invariants:
    - Shipping address and phone always come from the recipient organization
    - Organization phone must be E.164 (+ then 2-15 digits, no leading zero)
    - Guests must supply first name, last name and email
    - Accounts default to the organization name and a per-organization receipt address
    - Email is mandatory in the final identity

Design Decisions:
    - Pure builder raising BuyerIdentityError: the route only loads the
      organization and forwards the result to Rye
"""

import re
from dataclasses import dataclass

from app.core.errors import BuyerIdentityError

E164_PATTERN = re.compile(r"^\+[1-9]\d{1,14}$")


@dataclass(frozen=True)
class ShippingOrganization:
    """Organization columns needed to ship an order."""
    org_id: str
    name: str | None
    address: str | None
    address2: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    country: str | None
    phone: str | None


def _clean(value: str | None) -> str:
    return (value or "").strip()


def check_shipping_address(org: ShippingOrganization) -> None:
    required = (org.phone, org.address, org.city, org.state, org.zip_code, org.country)
    if not all(_clean(v) for v in required):
        raise BuyerIdentityError(
            "The recipient organization's address or phone is incomplete. "
            "Cannot set shipping information.",
        )
    if not E164_PATTERN.match(_clean(org.phone)):
        raise BuyerIdentityError(
            f"Invalid organization phone number format ({org.phone}). "
            "Must be E.164 (e.g., +12125551212).",
        )


def build_buyer_identity(
    org: ShippingOrganization,
    *,
    is_guest: bool,
    first_name: str | None = None,
    last_name: str | None = None,
    email: str | None = None,
    receipt_email_domain: str = "giftdrive.org",
) -> dict:
    """Return the Rye buyerIdentity input for this shopper and organization."""
    check_shipping_address(org)

    if is_guest:
        first = _clean(first_name)
        last = _clean(last_name)
        buyer_email = _clean(email)
        if not first or not last:
            raise BuyerIdentityError("Guest first and last name are required.")
    else:
        first = _clean(first_name) or _clean(org.name) or "GiftDrive"
        last = _clean(last_name) or "Organization"
        buyer_email = _clean(email) or f"receipt+org{org.org_id}@{receipt_email_domain}"

    if not buyer_email:
        raise BuyerIdentityError("A valid email address is required for the order.")

    return {
        "firstName": first,
        "lastName": last,
        "email": buyer_email,
        "phone": _clean(org.phone),
        "countryCode": _clean(org.country).upper()[:2],
        "address1": _clean(org.address),
        "address2": _clean(org.address2) or None,
        "city": _clean(org.city),
        "provinceCode": _clean(org.state).upper(),
        "postalCode": _clean(org.zip_code),
    }
