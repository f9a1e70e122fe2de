"""
Tests for the AccountService.
"""

import pytest

from topup_store.errors import InvalidRequestError, NotFoundError
from topup_store.models.enums import EntryType
from topup_store.services.account_service import AccountService


class TestOpenAccount:

    def test_open_account_succeeds(self, db_session, clock):
        service = AccountService(db_session, clock=clock)

        account = service.open_account("alice", email="a@test.com", display_name="Alice")

        assert account.id == "alice"
        assert account.balance == 0
        assert account.first_transaction_at is None

    def test_open_account_is_idempotent(self, db_session, clock):
        service = AccountService(db_session, clock=clock)
        service.open_account("alice", display_name="Alice")

        again = service.open_account("alice", display_name="Someone Else")

        assert again.display_name == "Alice"


class TestCreditBalance:

    def test_credit_posts_receive_entry(self, db_session, clock, make_account):
        make_account("alice")
        service = AccountService(db_session, clock=clock)

        entry = service.credit_balance("alice", 2500, note="promo")

        assert entry.entry_type == EntryType.RECEIVE
        assert entry.amount == 2500
        assert service.get_account("alice").balance == 2500

    def test_credit_unknown_account(self, db_session, clock):
        with pytest.raises(NotFoundError):
            AccountService(db_session, clock=clock).credit_balance("ghost", 100)

    def test_credit_must_be_positive(self, db_session, clock, make_account):
        make_account("alice")
        with pytest.raises(InvalidRequestError):
            AccountService(db_session, clock=clock).credit_balance("alice", 0)


class TestQueries:

    def test_get_missing_account(self, db_session):
        with pytest.raises(NotFoundError):
            AccountService(db_session).get_account("ghost")

    def test_get_entries(self, db_session, make_account):
        make_account("alice", balance=300)

        entries = AccountService(db_session).get_entries("alice")

        assert len(entries) == 1
        assert entries[0].amount == 300
