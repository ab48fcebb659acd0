"""Money helpers — Rye reports amounts in minor units; the ledger stores major units."""

from decimal import Decimal, ROUND_HALF_UP

_CENT = Decimal("0.01")


def cents_to_amount(cents: int | float | str) -> Decimal:
    """1999 -> Decimal('19.99')."""
    return (Decimal(str(cents)) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)


def normalize_currency(currency: str) -> str:
    return currency.strip().upper()
