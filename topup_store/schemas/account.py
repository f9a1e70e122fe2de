"""
Pydantic schemas for user accounts.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class AccountOpen(BaseModel):
    display_name: str | None = Field(default=None, max_length=100)


class AccountCredit(BaseModel):
    """Admin balance top-up."""
    amount: int = Field(gt=0)
    note: str | None = Field(default=None, max_length=255)


class AccountResponse(BaseModel):
    id: str
    email: str | None
    display_name: str | None
    balance: int
    order_count: int
    gift_received_count: int
    gift_claimed_count: int
    transaction_count: int
    type_counts: dict[str, int]
    first_transaction_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
