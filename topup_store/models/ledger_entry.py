"""
Ledger entry model.

Each entry records one event against one user account.
Entries are append-only: apart from the display ``status``
and ``last_updated_at``, nothing is modified after creation.

The two sides of a gift (the sender's Gifted entry and the
recipient's Received Gift entry) share ``related_doc_id`` and
are found by querying on (related_doc_id, entry_type).
"""

from datetime import datetime

from sqlalchemy import (
    String, Integer, DateTime, ForeignKey, JSON,
    Enum as SAEnum, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from topup_store.models.base import Base, utcnow
from topup_store.models.enums import EntryType, EntryStatus


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"
    __table_args__ = (
        Index("ix_ledger_entries_related_type", "related_doc_id", "entry_type"),
    )

    # Autoincrement id doubles as the creation order
    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        ForeignKey("user_accounts.id"), nullable=False, index=True
    )
    entry_type: Mapped[EntryType] = mapped_column(
        SAEnum(EntryType, name="entry_type_enum"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    external_reference: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    related_doc_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    status: Mapped[EntryStatus | None] = mapped_column(
        SAEnum(EntryStatus, name="entry_status_enum"),
        nullable=True,
    )
    # Serialized EntryDetails variant, see schemas.ledger
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    last_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    account: Mapped["UserAccount"] = relationship(back_populates="entries")

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.entry_type.value} "
            f"{self.amount} ({self.account_id})>"
        )
