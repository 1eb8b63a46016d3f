"""
Pydantic schemas for request validation.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import MAX_ORDER_LINES, TableStatus


class CartItemRequest(BaseModel):
    # Accepts both the API names and the short cart names used by the menu view.
    model_config = ConfigDict(populate_by_name=True)

    menu_item_id: int = Field(..., alias="id", gt=0)
    quantity: int = Field(..., alias="qty", ge=1)
    price: Decimal = Field(..., ge=0)
    modifiers: dict[str, Any] = Field(default_factory=dict)


class TableAccessValidationRequest(BaseModel):
    """Untrusted device hints sent along with a customer order."""

    model_config = ConfigDict(populate_by_name=True)

    device_fingerprint: str = Field(default="", alias="deviceFingerprint", max_length=64)
    table_access_timestamp: int = Field(default=0, alias="tableAccessTimestamp", ge=0)
    original_table_id: int | None = Field(default=None, alias="originalTableId")

    @field_validator("original_table_id")
    @classmethod
    def zero_means_unset(cls, v):
        return v or None


class CreateOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: list[CartItemRequest] = Field(..., min_length=1, max_length=MAX_ORDER_LINES)
    total: Decimal = Field(..., ge=0)
    validation: TableAccessValidationRequest | None = Field(default=None, alias="validationData")

    def cart_lines(self) -> list[dict]:
        return [item.model_dump() for item in self.items]


class UpdateStatusRequest(BaseModel):
    # Checked against OrderStatus by the service so it can answer with ORDER_003.
    status: str = Field(..., min_length=1, max_length=32)


class VoidItemRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("A void reason is required")
        return v


class TableStatusRequest(BaseModel):
    status: TableStatus
