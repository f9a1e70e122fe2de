"""
Fee schedule and voucher rules.

Pure functions: no database access, no clock reads. Callers
load the voucher and user record first and pass ``now`` in.
"""

from dataclasses import dataclass
from datetime import datetime

from topup_store.errors import VoucherInvalidError, VoucherRejection
from topup_store.models.account import UserAccount
from topup_store.models.enums import VoucherType
from topup_store.models.voucher import Voucher, GLOBAL_SCOPE


# Closed price bands and their flat fee. Prices between bands
# (10001-10099, 99901-99999) and above the last band pay no fee.
FEE_TIERS: tuple[tuple[int, int, int], ...] = (
    (100, 10000, 500),
    (10100, 99900, 1000),
    (100000, 500000, 3000),
)


def fees(price: int) -> int:
    """Service fee for a single item price."""
    if price < 0:
        return 0
    for low, high, fee in FEE_TIERS:
        if low <= price <= high:
            return fee
    return 0


@dataclass(frozen=True)
class VoucherApplication:
    voucher_id: str
    code: str
    deduction: int


def apply_voucher(
    voucher: Voucher | None,
    price: int,
    quantity: int,
    user_id: str,
    user: UserAccount,
    now: datetime,
) -> VoucherApplication:
    """
    Validate a voucher for this order and compute its deduction.

    Discount vouchers take their flat ``amount`` off the order.
    Fee vouchers treat ``amount`` as a percentage of the service
    fee, capped at the fee itself.

    Raises VoucherInvalidError with the rejection reason.
    """
    if voucher is None:
        raise VoucherInvalidError(
            "Voucher code not found", VoucherRejection.NOT_FOUND
        )
    if user.has_redeemed_voucher(voucher.id):
        raise VoucherInvalidError(
            f"Voucher {voucher.code} was already used by {user_id}",
            VoucherRejection.ALREADY_REDEEMED,
        )
    if voucher.limit_reached():
        raise VoucherInvalidError(
            f"Voucher {voucher.code} has reached its redemption limit",
            VoucherRejection.LIMIT_REACHED,
        )
    if voucher.expires_at is not None and voucher.expires_at <= now:
        raise VoucherInvalidError(
            f"Voucher {voucher.code} has expired", VoucherRejection.EXPIRED
        )
    # Display names are user-editable and not unique, so a
    # display-name scope is a weak check. Kept for compatibility.
    if voucher.privacy != GLOBAL_SCOPE and voucher.privacy not in (
        user.email, user.display_name
    ):
        raise VoucherInvalidError(
            f"Voucher {voucher.code} is not available to this account",
            VoucherRejection.SCOPE_MISMATCH,
        )

    subtotal = price * quantity
    if voucher.voucher_type == VoucherType.DISCOUNT:
        if voucher.orders_amount and quantity < voucher.orders_amount:
            raise VoucherInvalidError(
                f"Voucher {voucher.code} requires a quantity of at "
                f"least {voucher.orders_amount}",
                VoucherRejection.MIN_QUANTITY,
            )
        if voucher.valid_price and subtotal < voucher.valid_price:
            raise VoucherInvalidError(
                f"Voucher {voucher.code} requires a subtotal of at "
                f"least {voucher.valid_price}",
                VoucherRejection.MIN_SUBTOTAL,
            )
        deduction = voucher.amount
    else:
        fee = fees(price)
        if voucher.valid_fee and fee < voucher.valid_fee:
            raise VoucherInvalidError(
                f"Voucher {voucher.code} requires a fee of at "
                f"least {voucher.valid_fee}",
                VoucherRejection.MIN_FEE,
            )
        deduction = min(fee * voucher.amount // 100, fee)

    return VoucherApplication(
        voucher_id=voucher.id, code=voucher.code, deduction=deduction
    )


def final_amount(subtotal: int, fee: int, deduction: int) -> int:
    """Amount charged to the sender; never negative."""
    return max(subtotal + fee - deduction, 0)
