"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from topup_store.models.base import Base
from topup_store.models.enums import (
    EntryType,
    EntryStatus,
    OrderStatus,
    OrderEvent,
    VoucherType,
    RewardType,
)
from topup_store.models.account import UserAccount
from topup_store.models.ledger_entry import LedgerEntry
from topup_store.models.order import Order
from topup_store.models.voucher import Voucher
from topup_store.models.reward import Reward, RewardSubmission
from topup_store.models.product import Product

__all__ = [
    "Base",
    "EntryType",
    "EntryStatus",
    "OrderStatus",
    "OrderEvent",
    "VoucherType",
    "RewardType",
    "UserAccount",
    "LedgerEntry",
    "Order",
    "Voucher",
    "Reward",
    "RewardSubmission",
    "Product",
]
