"""
Voucher model — a discount rule applied at order time.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from topup_store.models.base import Base, utcnow
from topup_store.models.enums import VoucherType


GLOBAL_SCOPE = "global"


class Voucher(Base):
    __tablename__ = "vouchers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Always stored uppercased; lookups uppercase the input
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    voucher_type: Mapped[VoucherType] = mapped_column(
        SAEnum(VoucherType, name="voucher_type_enum", create_constraint=True),
        nullable=False,
    )
    # Flat deduction for discount vouchers, percentage of the fee
    # for fee vouchers
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    orders_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    valid_price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    valid_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)
    privacy: Mapped[str] = mapped_column(
        String(255), nullable=False, default=GLOBAL_SCOPE
    )

    redemption_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    max_redemptions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def limit_reached(self) -> bool:
        return 0 < self.max_redemptions <= self.redemption_count

    def __repr__(self) -> str:
        return f"<Voucher {self.code} ({self.voucher_type.value})>"
