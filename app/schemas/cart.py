"""Cart Schemas — request bodies for the cart endpoints.

Invariants:
    - rye_item_id is stripped and non-empty
    - marketplace is case-insensitive on input, upper-case after validation
    - A need ref is both fields or neither
"""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.domain_types import Marketplace, NeedRef, NeedRefType


class CartLineRequest(BaseModel):
    """Identifies one remote cart line."""
    rye_item_id: str = Field(min_length=1, max_length=255)
    marketplace: Marketplace

    @field_validator("rye_item_id")
    @classmethod
    def strip_rye_item_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("rye_item_id cannot be empty or whitespace")
        return v

    @field_validator("marketplace", mode="before")
    @classmethod
    def parse_marketplace(cls, v):
        if isinstance(v, str):
            return Marketplace.parse(v)
        return v


class AddToCartRequest(CartLineRequest):
    quantity: int = Field(1, gt=0)
    need_ref_type: NeedRefType
    need_ref_id: UUID

    @property
    def need_ref(self) -> NeedRef:
        return NeedRef(self.need_ref_type, self.need_ref_id)


class UpdateCartItemRequest(CartLineRequest):
    quantity: int = Field(ge=0)
    need_ref_type: NeedRefType | None = None
    need_ref_id: UUID | None = None

    @model_validator(mode="after")
    def validate_need_ref(self):
        if (self.need_ref_type is None) != (self.need_ref_id is None):
            raise ValueError("need_ref_type and need_ref_id must be given together")
        return self

    @property
    def need_ref(self) -> NeedRef | None:
        if self.need_ref_type is None:
            return None
        return NeedRef(self.need_ref_type, self.need_ref_id)


class RemoveCartItemRequest(CartLineRequest):
    pass


class BuyerIdentityRequest(BaseModel):
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)


class SubmitCartRequest(BaseModel):
    payment_token: str = Field(min_length=1)
    guest_first_name: str | None = Field(None, max_length=100)
    guest_last_name: str | None = Field(None, max_length=100)
    guest_email: str | None = Field(None, max_length=255)
