"""
Order model.

One purchase, either a direct order or a gift. The order
status is governed by ORDER_TRANSITIONS: every transition
names the event that drives it, and anything not listed is
rejected.
"""

from datetime import datetime

from sqlalchemy import (
    String, Integer, Boolean, DateTime, ForeignKey, JSON,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column

from topup_store.models.base import Base, utcnow
from topup_store.models.enums import OrderStatus, OrderEvent


# The source of truth for the order/gift state machine.
# sent_gift ends in claimed or refunded; both are terminal apart
# from delivery-detail updates on a claimed gift.
ORDER_TRANSITIONS: dict[tuple[OrderStatus, OrderEvent], OrderStatus] = {
    (OrderStatus.SENT_GIFT, OrderEvent.CLAIM): OrderStatus.CLAIMED,
    (OrderStatus.SENT_GIFT, OrderEvent.REFUND): OrderStatus.REFUNDED,
    (OrderStatus.PENDING, OrderEvent.REFUND): OrderStatus.REFUNDED,
    (OrderStatus.CLAIMED, OrderEvent.UPDATE_DELIVERY): OrderStatus.CLAIMED,
}


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    reference_code: Mapped[str] = mapped_column(
        String(32), unique=True, nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("user_accounts.id"), nullable=False, index=True
    )

    # Product snapshot at purchase time
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_group: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    voucher_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    voucher_code: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    voucher_deduction: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    final_amount_paid: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, name="order_status_enum", create_constraint=True),
        nullable=False,
    )

    # Gift fields
    is_gift: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    gift_recipient_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True
    )
    sender_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    gift_expiration: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    claimed_by: Mapped[str | None] = mapped_column(
        String(128), nullable=True
    )
    claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    refunded_by: Mapped[str | None] = mapped_column(
        String(128), nullable=True
    )
    refunded_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    delivery_details: Mapped[dict | None] = mapped_column(
        JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity

    def next_status(self, event: OrderEvent) -> OrderStatus | None:
        """Return the status this event leads to, or None if it is illegal."""
        return ORDER_TRANSITIONS.get((self.status, event))

    def is_expired(self, now: datetime) -> bool:
        return self.gift_expiration is not None and self.gift_expiration <= now

    def __repr__(self) -> str:
        return f"<Order {self.reference_code} ({self.status.value})>"
