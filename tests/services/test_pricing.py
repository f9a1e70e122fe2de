"""
Tests for the fee schedule and voucher rules.

These are pure functions, so vouchers and accounts are built
in memory without a database session.
"""

from datetime import datetime, timedelta

import pytest

from topup_store.errors import ErrorKind, VoucherInvalidError, VoucherRejection
from topup_store.models.account import UserAccount
from topup_store.models.enums import VoucherType
from topup_store.models.voucher import Voucher
from topup_store.services.pricing import apply_voucher, fees, final_amount


NOW = datetime(2025, 1, 1, 12, 0, 0)


def make_user(**overrides) -> UserAccount:
    fields = dict(
        id="alice",
        email="alice@test.com",
        display_name="Alice",
        redeemed_voucher_ids=[],
    )
    fields.update(overrides)
    return UserAccount(**fields)


def make_voucher(**overrides) -> Voucher:
    fields = dict(
        id="v-1",
        code="SAVE100",
        voucher_type=VoucherType.DISCOUNT,
        amount=100,
        orders_amount=None,
        valid_price=None,
        valid_fee=None,
        privacy="global",
        redemption_count=0,
        max_redemptions=0,
        expires_at=None,
    )
    fields.update(overrides)
    return Voucher(**fields)


def rejection_of(voucher, price=1500, quantity=1, user=None):
    with pytest.raises(VoucherInvalidError) as exc:
        apply_voucher(voucher, price, quantity, "alice", user or make_user(), NOW)
    return exc.value


# --- Fee Tiers ---

class TestFees:

    @pytest.mark.parametrize("price, expected", [
        (99, 0),
        (100, 500),
        (10000, 500),
        (10001, 0),
        (10100, 1000),
        (99900, 1000),
        (99901, 0),
        (100000, 3000),
        (500000, 3000),
        (500001, 0),
    ])
    def test_tier_boundaries(self, price, expected):
        assert fees(price) == expected

    def test_negative_price_has_no_fee(self):
        assert fees(-1) == 0

    def test_zero_price_has_no_fee(self):
        assert fees(0) == 0


# --- Voucher Eligibility ---

class TestVoucherEligibility:

    def test_missing_voucher_rejected(self):
        error = rejection_of(None)
        assert error.rejection == VoucherRejection.NOT_FOUND
        assert error.kind == ErrorKind.NOT_FOUND

    def test_already_redeemed_by_user(self):
        user = make_user(redeemed_voucher_ids=["v-1"])
        error = rejection_of(make_voucher(), user=user)
        assert error.rejection == VoucherRejection.ALREADY_REDEEMED
        assert error.kind == ErrorKind.STATE_CONFLICT

    def test_global_limit_reached(self):
        voucher = make_voucher(max_redemptions=3, redemption_count=3)
        error = rejection_of(voucher)
        assert error.rejection == VoucherRejection.LIMIT_REACHED
        assert error.kind == ErrorKind.LIMIT_EXCEEDED

    def test_zero_max_redemptions_is_unlimited(self):
        voucher = make_voucher(max_redemptions=0, redemption_count=10_000)
        applied = apply_voucher(voucher, 1500, 1, "alice", make_user(), NOW)
        assert applied.deduction == 100

    def test_expired_voucher_rejected(self):
        voucher = make_voucher(expires_at=NOW)
        assert rejection_of(voucher).rejection == VoucherRejection.EXPIRED

    def test_unexpired_voucher_accepted(self):
        voucher = make_voucher(expires_at=NOW + timedelta(seconds=1))
        assert apply_voucher(voucher, 1500, 1, "alice", make_user(), NOW)

    def test_scope_mismatch_rejected(self):
        voucher = make_voucher(privacy="bob@test.com")
        assert rejection_of(voucher).rejection == VoucherRejection.SCOPE_MISMATCH

    def test_scope_matches_email(self):
        voucher = make_voucher(privacy="alice@test.com")
        assert apply_voucher(voucher, 1500, 1, "alice", make_user(), NOW)

    def test_scope_matches_display_name(self):
        voucher = make_voucher(privacy="Alice")
        assert apply_voucher(voucher, 1500, 1, "alice", make_user(), NOW)


# --- Deductions ---

class TestDiscountVoucher:

    def test_flat_deduction(self):
        applied = apply_voucher(
            make_voucher(amount=250), 1500, 2, "alice", make_user(), NOW
        )
        assert applied.deduction == 250
        assert applied.code == "SAVE100"

    def test_min_quantity_enforced(self):
        voucher = make_voucher(orders_amount=3)
        error = rejection_of(voucher, quantity=2)
        assert error.rejection == VoucherRejection.MIN_QUANTITY
        assert error.kind == ErrorKind.VALIDATION_ERROR

    def test_min_subtotal_enforced(self):
        voucher = make_voucher(valid_price=5000)
        assert rejection_of(voucher, price=1500, quantity=3).rejection == (
            VoucherRejection.MIN_SUBTOTAL
        )

    def test_min_subtotal_met_by_quantity(self):
        voucher = make_voucher(valid_price=4500)
        applied = apply_voucher(voucher, 1500, 3, "alice", make_user(), NOW)
        assert applied.deduction == 100


class TestFeeVoucher:

    def test_percentage_of_fee(self):
        voucher = make_voucher(voucher_type=VoucherType.FEE, amount=50)
        applied = apply_voucher(voucher, 20000, 1, "alice", make_user(), NOW)
        assert applied.deduction == 500  # 50% of 1000

    def test_capped_at_fee(self):
        voucher = make_voucher(voucher_type=VoucherType.FEE, amount=150)
        applied = apply_voucher(voucher, 1500, 1, "alice", make_user(), NOW)
        assert applied.deduction == 500

    def test_min_fee_enforced(self):
        voucher = make_voucher(voucher_type=VoucherType.FEE, amount=50, valid_fee=1000)
        assert rejection_of(voucher, price=1500).rejection == VoucherRejection.MIN_FEE


class TestFinalAmount:

    def test_subtotal_plus_fee_minus_deduction(self):
        assert final_amount(3000, 500, 100) == 3400

    def test_never_negative(self):
        assert final_amount(100, 0, 500) == 0
