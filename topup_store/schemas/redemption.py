"""
Pydantic schemas for vouchers and reward codes.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from topup_store.models.enums import VoucherType, RewardType


def _naive_utc(value: datetime | None) -> datetime | None:
    """Stored timestamps are naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class VoucherCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    voucher_type: VoucherType
    amount: int = Field(ge=0)
    orders_amount: int | None = Field(default=None, ge=0)
    valid_price: int | None = Field(default=None, ge=0)
    valid_fee: int | None = Field(default=None, ge=0)
    privacy: str = Field(default="global", min_length=1, max_length=255)
    max_redemptions: int = Field(default=0, ge=0)
    expires_at: datetime | None = None

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("expires_at")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return _naive_utc(v)


class VoucherResponse(BaseModel):
    id: str
    code: str
    voucher_type: VoucherType
    amount: int
    orders_amount: int | None
    valid_price: int | None
    valid_fee: int | None
    privacy: str
    redemption_count: int
    max_redemptions: int
    expires_at: datetime | None

    model_config = {"from_attributes": True}


class RewardCreate(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    reward_type: RewardType
    title: str | None = Field(default=None, max_length=200)
    value: int = Field(default=0, ge=0)
    max_redemptions: int = Field(default=0, ge=0)
    expires_at: datetime | None = None
    form_fields: list[str] | None = None
    redemption_key: str | None = Field(default=None, max_length=255)
    key_hint: str | None = Field(default=None, max_length=255)
    secret_message: str | None = None

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("expires_at")
    @classmethod
    def naive_utc(cls, v: datetime | None) -> datetime | None:
        return _naive_utc(v)


class RewardPublic(BaseModel):
    """
    Reward data safe to show the user before redemption.

    Deliberately has no redemption_key or secret_message field.
    """
    id: str
    code: str
    reward_type: str
    title: str | None
    value: int
    expires_at: datetime | None
    remaining: int | None
    form_fields: list[str] | None
    key_hint: str | None


class CheckCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)


class RedeemCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    payload: Any = None


class RedeemResult(BaseModel):
    reward_id: str
    reward_type: str
    credited: int = 0
    next_flow: str | None = None
    flow_value: int | None = None
    submission_id: int | None = None
    secret_message: str | None = None
