"""
Shared enumerations for database models.

Python enums mapped to database enums ensure that only
valid values can be stored.
"""

import enum


class EntryType(str, enum.Enum):
    """Classifies a balance-affecting or record-only ledger event."""
    ORDER = "Order"
    RECEIVE = "Receive"
    SENT = "Sent"
    REDEEMED = "Redeemed"
    GIFTED = "Gifted"
    RECEIVED_GIFT = "Received Gift"
    REFUND = "Refund"


class EntryStatus(str, enum.Enum):
    """Display status carried by a ledger entry while its order evolves."""
    COMPLETED = "completed"
    PENDING = "pending"
    SENT = "sent"
    CLAIMED = "claimed"
    REFUNDED = "refunded"
    EXPIRED = "expired"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    SENT_GIFT = "sent_gift"
    CLAIMED = "claimed"
    REFUNDED = "refunded"


class OrderEvent(str, enum.Enum):
    """Events that drive the order/gift state machine."""
    CLAIM = "claim"
    REFUND = "refund"
    UPDATE_DELIVERY = "update_delivery"


class VoucherType(str, enum.Enum):
    DISCOUNT = "Discount Voucher"
    FEE = "Fee Voucher"


class RewardType(str, enum.Enum):
    CHOICES = "choices"
    AIRDROP = "airdrop"
    FORM = "form"
    REDEMPTION_KEY = "redemptionKey"
