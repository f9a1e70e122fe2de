"""
User balance account.

One per user. The balance and counters are a running
aggregate of the user's ledger entries and are only ever
changed by LedgerService.post(), in the same transaction
as the entry that explains the change.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from topup_store.models.base import Base, utcnow
from topup_store.models.enums import EntryType


# Entry types that bump one of the named aggregate counters
COUNTER_FOR_ENTRY_TYPE: dict[EntryType, str] = {
    EntryType.ORDER: "order_count",
    EntryType.RECEIVED_GIFT: "gift_received_count",
}


class UserAccount(Base):
    __tablename__ = "user_accounts"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    order_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    gift_received_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    gift_claimed_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    transaction_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    type_counts: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict
    )
    first_transaction_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True, default=None
    )
    redeemed_voucher_ids: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="account"
    )

    __mapper_args__ = {"version_id_col": version}

    def has_redeemed_voucher(self, voucher_id: str) -> bool:
        return voucher_id in (self.redeemed_voucher_ids or [])

    def __repr__(self) -> str:
        return f"<UserAccount {self.id} balance={self.balance}>"
