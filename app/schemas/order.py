"""Order Schemas — finalize and details request bodies."""

from pydantic import BaseModel, Field, field_validator


class FinalizeOrderRequest(BaseModel):
    """Successful Rye submission to record as a local order."""
    rye_cart_id: str = Field(min_length=1)
    rye_order_ids: list[str] = Field(min_length=1)
    amount_in_cents: int = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)
    guest_first_name: str | None = Field(None, max_length=100)
    guest_last_name: str | None = Field(None, max_length=100)
    guest_email: str | None = Field(None, max_length=255)

    @field_validator("rye_order_ids")
    @classmethod
    def drop_blank_ids(cls, v: list[str]) -> list[str]:
        ids = [i.strip() for i in v if i and i.strip()]
        if not ids:
            raise ValueError("at least one rye order id is required")
        return ids


class OrderDetailsRequest(BaseModel):
    rye_order_id: str = Field(min_length=1)
