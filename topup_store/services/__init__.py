"""Business logic services."""

from topup_store.services.store import LedgerStore
from topup_store.services.ledger_service import LedgerService
from topup_store.services.account_service import AccountService
from topup_store.services.order_service import OrderService
from topup_store.services.redemption_service import RedemptionService
from topup_store.services.engine import StorefrontEngine

__all__ = [
    "LedgerStore",
    "LedgerService",
    "AccountService",
    "OrderService",
    "RedemptionService",
    "StorefrontEngine",
]
