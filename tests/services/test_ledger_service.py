"""
Tests for LedgerService: every balance change comes with
exactly one entry, and counters follow the entries.
"""

import pytest

from topup_store.errors import InsufficientBalanceError
from topup_store.models import LedgerEntry, UserAccount
from topup_store.models.enums import EntryStatus, EntryType
from topup_store.schemas.ledger import OrderDetails, ReceiveDetails, parse_details
from topup_store.services.ledger_service import LedgerService
from topup_store.services.store import LedgerStore


def post(db_session, clock, user_id, entry_type, amount, details, **kwargs):
    ledger = LedgerService(db_session)

    def _post(txn):
        account = txn.get(UserAccount, user_id)
        return ledger.post(txn, account, entry_type, amount, details, clock(), **kwargs)

    return LedgerStore(db_session).run_atomic(_post)


def order_details():
    return OrderDetails(product_id="p-1", product_name="86 Diamonds", price=1500)


class TestPost:

    def test_credit_updates_balance_and_counters(self, db_session, clock, make_account):
        make_account("alice")

        post(db_session, clock, "alice", EntryType.RECEIVE, 500,
             ReceiveDetails(source="admin"))

        account = db_session.get(UserAccount, "alice")
        assert account.balance == 500
        assert account.transaction_count == 1
        assert account.type_counts == {"Receive": 1}
        assert account.first_transaction_at == clock.now

    def test_first_transaction_set_once(self, db_session, clock, make_account):
        make_account("alice", balance=1000)
        first = db_session.get(UserAccount, "alice").first_transaction_at

        clock.advance(days=1)
        post(db_session, clock, "alice", EntryType.ORDER, -100, order_details())

        assert db_session.get(UserAccount, "alice").first_transaction_at == first

    def test_order_entry_bumps_order_count(self, db_session, clock, make_account):
        make_account("alice", balance=1000)

        post(db_session, clock, "alice", EntryType.ORDER, -100, order_details())

        account = db_session.get(UserAccount, "alice")
        assert account.order_count == 1
        assert account.type_counts == {"Receive": 1, "Order": 1}

    def test_extra_counters(self, db_session, clock, make_account):
        make_account("alice")

        post(db_session, clock, "alice", EntryType.ORDER, 0, order_details(),
             extra_counters=("gift_claimed_count",))

        assert db_session.get(UserAccount, "alice").gift_claimed_count == 1

    def test_overdraft_rejected_and_nothing_written(self, db_session, clock, make_account):
        make_account("alice", balance=100)

        with pytest.raises(InsufficientBalanceError):
            post(db_session, clock, "alice", EntryType.ORDER, -101, order_details())

        account = db_session.get(UserAccount, "alice")
        assert account.balance == 100
        assert account.transaction_count == 1
        assert db_session.query(LedgerEntry).count() == 1

    def test_spending_exact_balance_allowed(self, db_session, clock, make_account):
        make_account("alice", balance=100)

        post(db_session, clock, "alice", EntryType.ORDER, -100, order_details())

        assert db_session.get(UserAccount, "alice").balance == 0

    def test_details_round_trip_as_tagged_variant(self, db_session, clock, make_account):
        make_account("alice", balance=100)

        entry = post(db_session, clock, "alice", EntryType.ORDER, -100,
                     order_details(), related_doc_id="order-1")

        details = parse_details(db_session.get(LedgerEntry, entry.id).details)
        assert isinstance(details, OrderDetails)
        assert details.product_name == "86 Diamonds"


class TestEntryQueries:

    def test_set_status_patches_details(self, db_session, clock, make_account):
        make_account("alice", balance=100)
        entry = post(db_session, clock, "alice", EntryType.ORDER, -100,
                     order_details(), related_doc_id="order-1",
                     status=EntryStatus.PENDING)
        ledger = LedgerService(db_session)

        def _flip(txn):
            found = ledger.find_entry(txn, "alice", "order-1", EntryType.ORDER)
            return ledger.set_status(
                txn, found, EntryStatus.COMPLETED, clock(),
                delivery_details={"server": "1234"},
            )

        LedgerStore(db_session).run_atomic(_flip)

        stored = db_session.get(LedgerEntry, entry.id)
        assert stored.status == EntryStatus.COMPLETED
        assert stored.last_updated_at == clock.now
        assert stored.details["delivery_details"] == {"server": "1234"}
        assert stored.details["product_name"] == "86 Diamonds"

    def test_entries_newest_first(self, db_session, clock, make_account):
        make_account("alice", balance=1000)
        post(db_session, clock, "alice", EntryType.ORDER, -100, order_details())

        entries = LedgerService(db_session).get_entries_by_account("alice")

        assert [e.entry_type for e in entries] == [EntryType.ORDER, EntryType.RECEIVE]
