"""
Account service — user balance accounts.

Opening an account is idempotent: a user signing in again gets
the account they already have. Balance changes always go
through LedgerService inside an atomic transaction.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from topup_store.errors import NotFoundError, InvalidRequestError
from topup_store.models.account import UserAccount
from topup_store.models.base import utcnow
from topup_store.models.enums import EntryType
from topup_store.models.ledger_entry import LedgerEntry
from topup_store.schemas.ledger import ReceiveDetails
from topup_store.services.ledger_service import LedgerService
from topup_store.services.store import LedgerStore, AtomicTransaction

logger = logging.getLogger(__name__)


class AccountService:

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock
        self.store = LedgerStore(db)
        self.ledger_service = LedgerService(db)

    def open_account(
        self,
        user_id: str,
        email: str | None = None,
        display_name: str | None = None,
    ) -> UserAccount:
        """Return the user's account, creating an empty one if needed."""

        def _open(txn: AtomicTransaction) -> UserAccount:
            existing = txn.get(UserAccount, user_id)
            if existing is not None:
                return existing
            return txn.add(UserAccount(
                id=user_id,
                email=email,
                display_name=display_name,
                balance=0,
                order_count=0,
                gift_received_count=0,
                gift_claimed_count=0,
                transaction_count=0,
                type_counts={},
                redeemed_voucher_ids=[],
                created_at=self.clock(),
            ))

        account = self.store.run_atomic(_open)
        logger.info("Account ready for user %s", user_id)
        return account

    def get_account(self, account_id: str) -> UserAccount:
        account = self.db.get(UserAccount, account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def get_entries(self, account_id: str) -> list[LedgerEntry]:
        """Ledger history for an account, newest first."""
        self.get_account(account_id)
        return self.ledger_service.get_entries_by_account(account_id)

    def credit_balance(
        self, account_id: str, amount: int, note: str | None = None
    ) -> LedgerEntry:
        """
        Credit an account by hand (admin top-up).

        Recorded as a Receive entry so the balance stays explained
        by the ledger.
        """
        if amount <= 0:
            raise InvalidRequestError("Credit amount must be positive")

        def _credit(txn: AtomicTransaction) -> LedgerEntry:
            now = self.clock()
            account = txn.get(UserAccount, account_id, lock=True)
            if account is None:
                raise NotFoundError(f"Account {account_id} not found")
            return self.ledger_service.post(
                txn, account, EntryType.RECEIVE, amount,
                ReceiveDetails(source="admin", note=note),
                now,
            )

        entry = self.store.run_atomic(_credit)
        logger.info("Credited %d to account %s", amount, account_id)
        return entry
