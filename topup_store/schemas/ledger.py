"""
Pydantic schemas for ledger entries.

Entry details are a tagged union keyed on the entry type, so
each kind of entry carries only the fields that make sense for
it. ``extra`` holds optional display-only fields.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from topup_store.models.enums import EntryType, EntryStatus


class _Details(BaseModel):
    extra: dict[str, Any] = Field(default_factory=dict)


class OrderDetails(_Details):
    kind: Literal["Order"] = "Order"
    product_id: str
    product_name: str
    quantity: int = 1
    price: int = 0
    fee: int = 0
    voucher_code: str | None = None
    voucher_deduction: int = 0
    gift_claim: bool = False
    sender_name: str | None = None
    delivery_details: dict[str, Any] | None = None


class GiftedDetails(_Details):
    kind: Literal["Gifted"] = "Gifted"
    product_id: str
    product_name: str
    recipient_id: str
    recipient_name: str | None = None
    gift_expiration: datetime


class ReceivedGiftDetails(_Details):
    kind: Literal["Received Gift"] = "Received Gift"
    product_id: str
    product_name: str
    sender_id: str
    sender_name: str | None = None
    gift_expiration: datetime


class RefundDetails(_Details):
    kind: Literal["Refund"] = "Refund"
    product_name: str
    refunded_amount: int
    recipient_id: str | None = None


class RedeemedDetails(_Details):
    kind: Literal["Redeemed"] = "Redeemed"
    reward_code: str
    reward_type: str
    submission_id: int | None = None


class ReceiveDetails(_Details):
    kind: Literal["Receive"] = "Receive"
    source: Literal["reward", "admin"]
    reward_code: str | None = None
    note: str | None = None


class SentDetails(_Details):
    kind: Literal["Sent"] = "Sent"
    note: str | None = None


EntryDetails = Annotated[
    Union[
        OrderDetails,
        GiftedDetails,
        ReceivedGiftDetails,
        RefundDetails,
        RedeemedDetails,
        ReceiveDetails,
        SentDetails,
    ],
    Field(discriminator="kind"),
]

entry_details_adapter: TypeAdapter[EntryDetails] = TypeAdapter(EntryDetails)


def parse_details(raw: dict) -> EntryDetails:
    return entry_details_adapter.validate_python(raw)


class LedgerEntryResponse(BaseModel):
    id: int
    account_id: str
    entry_type: EntryType
    amount: int
    external_reference: str | None
    related_doc_id: str | None
    status: EntryStatus | None
    details: EntryDetails
    created_at: datetime
    last_updated_at: datetime | None

    model_config = {"from_attributes": True}
