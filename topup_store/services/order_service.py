"""
Order service — order creation and the gift lifecycle.

Each operation:
1. Validates the request and does any slow lookups (catalog)
   before a transaction exists
2. Inside one atomic transaction, re-reads the order and the
   accounts involved and checks the transition against
   ORDER_TRANSITIONS
3. Writes the order, the balance changes and their ledger
   entries together
4. Applies advisory updates: display-status flips on
   counterpart entries that are allowed to be missing

If any check fails inside the transaction, nothing is written.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from topup_store.config import get_settings
from topup_store.errors import (
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
    StateConflictError,
    ExpiredError,
    InsufficientBalanceError,
)
from topup_store.models.account import UserAccount
from topup_store.models.base import utcnow, new_id
from topup_store.models.enums import (
    EntryType,
    EntryStatus,
    OrderStatus,
    OrderEvent,
)
from topup_store.models.ledger_entry import LedgerEntry
from topup_store.models.order import Order
from topup_store.models.voucher import Voucher
from topup_store.schemas.ledger import (
    OrderDetails,
    GiftedDetails,
    ReceivedGiftDetails,
    RefundDetails,
)
from topup_store.schemas.order import (
    AdvisoryOutcome,
    CreateOrderRequest,
    ClaimGiftRequest,
    FinalizeDeliveryRequest,
    RefundGiftRequest,
)
from topup_store.services.catalog import ProductCatalog, DatabaseProductCatalog
from topup_store.services.ledger_service import LedgerService
from topup_store.services.pricing import fees, apply_voucher, final_amount
from topup_store.services.store import LedgerStore, AtomicTransaction

logger = logging.getLogger(__name__)


@dataclass
class AdvisoryUpdate:
    """
    A best-effort status flip on a counterpart ledger entry.

    ``target`` is looked up during the read phase and may be
    None; applying the update then records a non-fatal miss.
    """
    name: str
    target: LedgerEntry | None
    status: EntryStatus

    def apply(
        self, txn: AtomicTransaction, ledger: LedgerService, now: datetime
    ) -> AdvisoryOutcome:
        if self.target is None:
            logger.warning("Advisory update %s skipped: entry not found", self.name)
            return AdvisoryOutcome(
                name=self.name, applied=False, detail="entry not found"
            )
        ledger.set_status(txn, self.target, self.status, now)
        return AdvisoryOutcome(name=self.name, applied=True)


@dataclass
class TransitionResult:
    order: Order
    advisories: list[AdvisoryOutcome] = field(default_factory=list)
    refunded_amount: int | None = None


def _reference_code(is_gift: bool) -> str:
    prefix = "GIFT" if is_gift else "ORD"
    return f"{prefix}-{secrets.token_hex(5).upper()}"


def require_transition(order: Order, event: OrderEvent) -> OrderStatus:
    """Return the next status for this event or raise StateConflictError."""
    next_status = order.next_status(event)
    if next_status is None:
        raise StateConflictError(
            f"Cannot {event.value} order {order.reference_code} "
            f"in status {order.status.value}"
        )
    return next_status


class OrderService:

    def __init__(
        self,
        db: Session,
        catalog: ProductCatalog | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.catalog = catalog or DatabaseProductCatalog(db)
        self.clock = clock
        self.settings = get_settings()
        self.store = LedgerStore(db)
        self.ledger_service = LedgerService(db)

    # --- create ---

    def create_order(
        self, user_id: str, request: CreateOrderRequest
    ) -> TransitionResult:
        """
        Create a direct order or a gift and charge the sender.

        Direct orders start in PENDING with an Order entry.
        Gifts start in SENT_GIFT with a Gifted entry for the
        sender and a zero-amount Received Gift entry for the
        recipient. Vouchers only apply to direct orders.
        """
        quantity = 1 if request.is_gift else request.quantity
        if not 1 <= quantity <= self.settings.MAX_ORDER_QUANTITY:
            raise InvalidRequestError(
                f"Quantity must be between 1 and "
                f"{self.settings.MAX_ORDER_QUANTITY}"
            )
        if request.is_gift:
            if request.recipient_id == user_id:
                raise InvalidRequestError("Cannot send a gift to yourself")
            if request.voucher_code:
                raise InvalidRequestError("Vouchers cannot be applied to gifts")

        # Catalog lookup stays outside the transaction
        product = self.catalog.fetch_product(request.product_id)
        if product is None:
            raise NotFoundError(f"Product {request.product_id} not found")
        if not product.available:
            raise InvalidRequestError(
                f"Product {product.name} is not available",
                reason="ProductUnavailable",
            )
        if not 0 <= product.price <= self.settings.MAX_PRODUCT_PRICE:
            raise InvalidRequestError(
                f"Product price {product.price} is out of range"
            )

        fee = fees(product.price)
        subtotal = product.price * quantity
        voucher_code = (
            request.voucher_code.strip().upper() if request.voucher_code else None
        )

        def _create(txn: AtomicTransaction) -> TransitionResult:
            now = self.clock()

            # --- reads ---
            sender = txn.get(UserAccount, user_id, lock=True)
            if sender is None:
                raise NotFoundError(f"Account {user_id} not found")

            recipient = None
            if request.is_gift:
                recipient = txn.get(UserAccount, request.recipient_id, lock=True)
                if recipient is None:
                    raise NotFoundError(
                        f"Recipient {request.recipient_id} not found"
                    )

            voucher = None
            deduction = 0
            if voucher_code:
                voucher = txn.first(
                    select(Voucher).where(Voucher.code == voucher_code)
                )
                applied = apply_voucher(
                    voucher, product.price, quantity, user_id, sender, now
                )
                # Record only what was taken off the order
                deduction = min(applied.deduction, subtotal + fee)

            total = final_amount(subtotal, fee, deduction)
            # Fresh balance, not whatever the caller saw earlier
            if sender.balance < total:
                raise InsufficientBalanceError(
                    f"Insufficient balance: available={sender.balance}, "
                    f"required={total}"
                )

            # --- writes ---
            order = txn.add(Order(
                id=new_id(),
                reference_code=_reference_code(request.is_gift),
                user_id=user_id,
                product_id=product.id,
                product_name=product.name,
                product_group=product.group,
                price=product.price,
                quantity=quantity,
                fee=fee,
                voucher_id=voucher.id if voucher else None,
                voucher_code=voucher.code if voucher else None,
                voucher_deduction=deduction,
                final_amount_paid=total,
                status=(
                    OrderStatus.SENT_GIFT if request.is_gift
                    else OrderStatus.PENDING
                ),
                is_gift=request.is_gift,
                gift_recipient_id=recipient.id if recipient else None,
                sender_name=sender.display_name if request.is_gift else None,
                gift_expiration=(
                    now + timedelta(hours=self.settings.GIFT_EXPIRATION_HOURS)
                    if request.is_gift else None
                ),
                delivery_details=request.delivery_details,
                created_at=now,
                updated_at=now,
            ))

            if request.is_gift:
                self.ledger_service.post(
                    txn, sender, EntryType.GIFTED, -total,
                    GiftedDetails(
                        product_id=product.id,
                        product_name=product.name,
                        recipient_id=recipient.id,
                        recipient_name=recipient.display_name,
                        gift_expiration=order.gift_expiration,
                    ),
                    now,
                    external_reference=order.reference_code,
                    related_doc_id=order.id,
                    status=EntryStatus.SENT,
                )
                self.ledger_service.post(
                    txn, recipient, EntryType.RECEIVED_GIFT, 0,
                    ReceivedGiftDetails(
                        product_id=product.id,
                        product_name=product.name,
                        sender_id=sender.id,
                        sender_name=sender.display_name,
                        gift_expiration=order.gift_expiration,
                    ),
                    now,
                    external_reference=order.reference_code,
                    related_doc_id=order.id,
                    status=EntryStatus.SENT,
                )
            else:
                self.ledger_service.post(
                    txn, sender, EntryType.ORDER, -total,
                    OrderDetails(
                        product_id=product.id,
                        product_name=product.name,
                        quantity=quantity,
                        price=product.price,
                        fee=fee,
                        voucher_code=voucher.code if voucher else None,
                        voucher_deduction=deduction,
                        delivery_details=request.delivery_details,
                    ),
                    now,
                    external_reference=order.reference_code,
                    related_doc_id=order.id,
                    status=EntryStatus.PENDING,
                )
                if voucher is not None:
                    txn.update(
                        voucher, redemption_count=voucher.redemption_count + 1
                    )
                    txn.update(
                        sender,
                        redeemed_voucher_ids=[
                            *(sender.redeemed_voucher_ids or []), voucher.id
                        ],
                    )
            return TransitionResult(order=order)

        result = self.store.run_atomic(_create)
        logger.info(
            "Order %s created by %s (gift=%s, paid=%d)",
            result.order.reference_code, user_id,
            result.order.is_gift, result.order.final_amount_paid,
        )
        return result

    # --- claim ---

    def claim_gift(
        self, user_id: str, request: ClaimGiftRequest
    ) -> TransitionResult:
        """
        Claim a sent gift as its designated recipient.

        The recipient's Received Gift entry must exist and flips to
        claimed; the sender's Gifted entry flip is advisory.
        """

        def _claim(txn: AtomicTransaction) -> TransitionResult:
            now = self.clock()

            # --- reads ---
            order = self._load_order(txn, request.order_id)
            if not order.is_gift:
                raise InvalidRequestError(
                    f"Order {order.reference_code} is not a gift"
                )
            if order.gift_recipient_id != user_id:
                raise UnauthorizedError(
                    "Only the gift recipient can claim this gift"
                )
            if order.claimed_by or order.status == OrderStatus.CLAIMED:
                raise StateConflictError(
                    f"Gift {order.reference_code} was already claimed",
                    reason="AlreadyClaimed",
                )
            next_status = require_transition(order, OrderEvent.CLAIM)
            if order.is_expired(now):
                raise ExpiredError(f"Gift {order.reference_code} has expired")
            if not order.user_id:
                raise StateConflictError(
                    f"Gift {order.reference_code} has no sender",
                    reason="DataIntegrity",
                )

            recipient = txn.get(UserAccount, user_id, lock=True)
            if recipient is None:
                raise NotFoundError(f"Account {user_id} not found")
            received = self.ledger_service.find_entry(
                txn, user_id, order.id, EntryType.RECEIVED_GIFT
            )
            if received is None:
                raise NotFoundError(
                    f"Received gift entry for {order.reference_code} not found"
                )
            gifted = self.ledger_service.find_entry(
                txn, order.user_id, order.id, EntryType.GIFTED
            )

            # --- writes ---
            txn.update(
                order,
                status=next_status,
                claimed_by=user_id,
                claimed_at=now,
                delivery_details=request.delivery_details,
                updated_at=now,
            )
            self.ledger_service.post(
                txn, recipient, EntryType.ORDER, 0,
                OrderDetails(
                    product_id=order.product_id,
                    product_name=order.product_name,
                    quantity=order.quantity,
                    price=order.price,
                    gift_claim=True,
                    sender_name=order.sender_name,
                    delivery_details=request.delivery_details,
                ),
                now,
                external_reference=order.reference_code,
                related_doc_id=order.id,
                status=EntryStatus.COMPLETED,
                extra_counters=("gift_claimed_count",),
            )
            self.ledger_service.set_status(
                txn, received, EntryStatus.CLAIMED, now
            )
            advisories = [
                AdvisoryUpdate("sender_gifted_entry", gifted, EntryStatus.CLAIMED),
            ]
            outcomes = [a.apply(txn, self.ledger_service, now) for a in advisories]
            return TransitionResult(order=order, advisories=outcomes)

        result = self.store.run_atomic(_claim)
        logger.info(
            "Gift %s claimed by %s", result.order.reference_code, user_id
        )
        return result

    # --- delivery details ---

    def finalize_gift_delivery(
        self, user_id: str, request: FinalizeDeliveryRequest
    ) -> TransitionResult:
        """Update delivery details on a claimed gift, as its claimer."""

        def _finalize(txn: AtomicTransaction) -> TransitionResult:
            now = self.clock()

            order = self._load_order(txn, request.order_id)
            require_transition(order, OrderEvent.UPDATE_DELIVERY)
            if order.claimed_by != user_id:
                raise UnauthorizedError(
                    "Only the claimer can update delivery details"
                )
            entry = self.ledger_service.find_entry(
                txn, user_id, order.id, EntryType.ORDER
            )
            if entry is None:
                raise NotFoundError(
                    f"Claim entry for {order.reference_code} not found"
                )

            txn.update(
                order,
                delivery_details=request.delivery_details,
                updated_at=now,
            )
            self.ledger_service.set_status(
                txn, entry, entry.status or EntryStatus.COMPLETED, now,
                delivery_details=request.delivery_details,
            )
            return TransitionResult(order=order)

        result = self.store.run_atomic(_finalize)
        logger.info(
            "Delivery details updated for %s", result.order.reference_code
        )
        return result

    # --- refund ---

    def refund_expired_gift(
        self, user_id: str, request: RefundGiftRequest
    ) -> TransitionResult:
        """
        Refund an expired, unclaimed gift to its sender.

        The sender gets price * quantity back; the service fee is
        not refunded. The recipient's Received Gift entry flip to
        expired is advisory.
        """

        def _refund(txn: AtomicTransaction) -> TransitionResult:
            now = self.clock()

            # --- reads ---
            order = self._load_order(txn, request.order_id)
            if order.user_id != user_id:
                raise UnauthorizedError("Only the sender can refund this gift")
            if not order.is_gift:
                raise StateConflictError(
                    f"Order {order.reference_code} is not a refundable gift"
                )
            if order.refunded_by or order.status == OrderStatus.REFUNDED:
                raise StateConflictError(
                    f"Gift {order.reference_code} was already refunded",
                    reason="AlreadyRefunded",
                )
            if order.claimed_by or order.status == OrderStatus.CLAIMED:
                raise StateConflictError(
                    f"Gift {order.reference_code} was already claimed",
                    reason="AlreadyClaimed",
                )
            next_status = require_transition(order, OrderEvent.REFUND)
            if not order.is_expired(now):
                raise StateConflictError(
                    f"Gift {order.reference_code} has not expired yet",
                    reason="NotExpired",
                )

            sender = txn.get(UserAccount, user_id, lock=True)
            if sender is None:
                raise NotFoundError(f"Account {user_id} not found")
            gifted = self.ledger_service.find_entry(
                txn, user_id, order.id, EntryType.GIFTED
            )
            if gifted is None:
                raise NotFoundError(
                    f"Gifted entry for {order.reference_code} not found"
                )
            received = None
            if order.gift_recipient_id:
                received = self.ledger_service.find_entry(
                    txn, order.gift_recipient_id, order.id,
                    EntryType.RECEIVED_GIFT,
                )

            # --- writes ---
            refund_amount = order.subtotal
            txn.update(
                order,
                status=next_status,
                refunded_by=user_id,
                refunded_at=now,
                updated_at=now,
            )
            self.ledger_service.post(
                txn, sender, EntryType.REFUND, refund_amount,
                RefundDetails(
                    product_name=order.product_name,
                    refunded_amount=refund_amount,
                    recipient_id=order.gift_recipient_id,
                ),
                now,
                external_reference=order.reference_code,
                related_doc_id=order.id,
                status=EntryStatus.COMPLETED,
            )
            self.ledger_service.set_status(
                txn, gifted, EntryStatus.REFUNDED, now
            )
            advisories = [
                AdvisoryUpdate(
                    "recipient_received_gift_entry", received, EntryStatus.EXPIRED
                ),
            ]
            outcomes = [a.apply(txn, self.ledger_service, now) for a in advisories]
            return TransitionResult(
                order=order, advisories=outcomes, refunded_amount=refund_amount
            )

        result = self.store.run_atomic(_refund)
        logger.info(
            "Gift %s refunded to %s (%d)",
            result.order.reference_code, user_id, result.refunded_amount,
        )
        return result

    # --- reads ---

    def get_order(self, user_id: str, order_id: str) -> Order:
        """Fetch an order visible to the caller (sender or recipient)."""
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if user_id not in (order.user_id, order.gift_recipient_id):
            raise UnauthorizedError("Order belongs to another user")
        return order

    def _load_order(self, txn: AtomicTransaction, order_id: str) -> Order:
        order = txn.get(Order, order_id, lock=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order
