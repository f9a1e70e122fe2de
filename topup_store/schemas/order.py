"""
Pydantic schemas for orders and gifts.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from topup_store.models.enums import OrderStatus


class CreateOrderRequest(BaseModel):
    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(default=1)
    voucher_code: str | None = Field(default=None, max_length=64)
    is_gift: bool = False
    recipient_id: str | None = Field(default=None, max_length=128)
    delivery_details: dict[str, Any] | None = None

    @model_validator(mode="after")
    def gift_needs_recipient(self):
        if self.is_gift and not self.recipient_id:
            raise ValueError("recipient_id is required for a gift")
        return self


class ClaimGiftRequest(BaseModel):
    order_id: str = Field(min_length=1)
    delivery_details: dict[str, Any] = Field(min_length=1)


class FinalizeDeliveryRequest(BaseModel):
    order_id: str = Field(min_length=1)
    delivery_details: dict[str, Any] = Field(min_length=1)


class RefundGiftRequest(BaseModel):
    order_id: str = Field(min_length=1)


class OrderResponse(BaseModel):
    id: str
    reference_code: str
    user_id: str
    product_id: str
    product_name: str
    product_group: str | None
    price: int
    quantity: int
    fee: int
    voucher_id: str | None
    voucher_code: str | None
    voucher_deduction: int
    final_amount_paid: int
    status: OrderStatus
    is_gift: bool
    gift_recipient_id: str | None
    sender_name: str | None
    gift_expiration: datetime | None
    claimed_by: str | None
    refunded_by: str | None
    delivery_details: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AdvisoryOutcome(BaseModel):
    """Result of a best-effort secondary update attached to a transition."""
    name: str
    applied: bool
    detail: str | None = None


class TransitionResponse(BaseModel):
    order: OrderResponse
    advisories: list[AdvisoryOutcome] = Field(default_factory=list)
    refunded_amount: int | None = None
