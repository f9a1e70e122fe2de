"""
Ledger service — the only writer of balances and entries.

This service enforces the ledger rules:
1. Every change to an account's balance or counters is made
   together with exactly one new ledger entry explaining it.
2. Entries are append-only; only their display status moves.
3. A debit may never take a balance below zero.

No other service touches UserAccount balances directly.
"""

from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from topup_store.errors import InsufficientBalanceError
from topup_store.models.account import UserAccount, COUNTER_FOR_ENTRY_TYPE
from topup_store.models.enums import EntryType, EntryStatus
from topup_store.models.ledger_entry import LedgerEntry
from topup_store.schemas.ledger import EntryDetails
from topup_store.services.store import AtomicTransaction


class LedgerService:
    """
    Ledger reads and writes.

    Writes take the AtomicTransaction they belong to; the caller
    owns the transaction boundary.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Reads inside an atomic transaction ---

    def find_entry(
        self,
        txn: AtomicTransaction,
        account_id: str,
        related_doc_id: str,
        entry_type: EntryType,
    ) -> LedgerEntry | None:
        """Locate one side of a linked pair by (related_doc_id, type)."""
        return txn.first(
            select(LedgerEntry)
            .where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.related_doc_id == related_doc_id,
                LedgerEntry.entry_type == entry_type,
            )
            .order_by(LedgerEntry.id.desc())
        )

    def has_entry(
        self,
        txn: AtomicTransaction,
        account_id: str,
        related_doc_id: str,
        entry_types: Iterable[EntryType],
    ) -> bool:
        entry = txn.first(
            select(LedgerEntry).where(
                LedgerEntry.account_id == account_id,
                LedgerEntry.related_doc_id == related_doc_id,
                LedgerEntry.entry_type.in_(list(entry_types)),
            ).limit(1)
        )
        return entry is not None

    # --- Writes ---

    def post(
        self,
        txn: AtomicTransaction,
        account: UserAccount,
        entry_type: EntryType,
        amount: int,
        details: EntryDetails,
        now: datetime,
        *,
        external_reference: str | None = None,
        related_doc_id: str | None = None,
        status: EntryStatus | None = EntryStatus.COMPLETED,
        extra_counters: Iterable[str] = (),
    ) -> LedgerEntry:
        """
        Post one entry and apply its effect to the account.

        Raises InsufficientBalanceError if a debit would take the
        balance below zero; the account is untouched in that case.
        """
        balance = account.balance or 0
        if amount < 0 and balance + amount < 0:
            raise InsufficientBalanceError(
                f"Insufficient balance: available={balance}, "
                f"required={-amount}"
            )

        type_counts = dict(account.type_counts or {})
        type_counts[entry_type.value] = type_counts.get(entry_type.value, 0) + 1

        changes = {
            "balance": balance + amount,
            "transaction_count": (account.transaction_count or 0) + 1,
            "type_counts": type_counts,
        }
        counters = list(extra_counters)
        if entry_type in COUNTER_FOR_ENTRY_TYPE:
            counters.append(COUNTER_FOR_ENTRY_TYPE[entry_type])
        for counter in counters:
            changes[counter] = (getattr(account, counter) or 0) + 1
        if account.first_transaction_at is None:
            changes["first_transaction_at"] = now

        txn.update(account, **changes)
        return txn.add(LedgerEntry(
            account_id=account.id,
            entry_type=entry_type,
            amount=amount,
            external_reference=external_reference,
            related_doc_id=related_doc_id,
            status=status,
            details=details.model_dump(mode="json"),
            created_at=now,
        ))

    def set_status(
        self,
        txn: AtomicTransaction,
        entry: LedgerEntry,
        status: EntryStatus,
        now: datetime,
        **detail_changes,
    ) -> LedgerEntry:
        """Move an entry's display status, optionally patching details."""
        changes = {"status": status, "last_updated_at": now}
        if detail_changes:
            changes["details"] = {**(entry.details or {}), **detail_changes}
        return txn.update(entry, **changes)

    # --- Plain reads ---

    def get_entries_by_account(self, account_id: str) -> list[LedgerEntry]:
        """Return all entries for an account, newest first."""
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.id.desc())
        ).scalars().all()
        return list(entries)

    def get_entries_by_related_doc(
        self, related_doc_id: str
    ) -> list[LedgerEntry]:
        """Return every entry caused by one order or reward, oldest first."""
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.related_doc_id == related_doc_id)
            .order_by(LedgerEntry.id)
        ).scalars().all()
        return list(entries)
