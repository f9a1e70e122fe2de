"""
Reward codes and form submissions.

``reward_type`` is stored as plain text rather than a database
enum: rewards are authored by hand, and an unknown type has to
be readable so redemption can reject it explicitly.
"""

from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from topup_store.models.base import Base, utcnow


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    max_redemptions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    redemption_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    # Type-specific payload
    form_fields: Mapped[list | None] = mapped_column(JSON, nullable=True)
    redemption_key: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    key_hint: Mapped[str | None] = mapped_column(String(255), nullable=True)
    secret_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def limit_reached(self) -> bool:
        return 0 < self.max_redemptions <= self.redemption_count

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def __repr__(self) -> str:
        return f"<Reward {self.code} ({self.reward_type})>"


class RewardSubmission(Base):
    """Verbatim payload submitted when redeeming a form reward."""

    __tablename__ = "reward_submissions"

    id: Mapped[int] = mapped_column(primary_key=True)
    reward_id: Mapped[str] = mapped_column(
        ForeignKey("rewards.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("user_accounts.id"), nullable=False, index=True
    )
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )
