# eldercare/database/models/voucher.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint, func, Index
from sqlalchemy.orm import Mapped, mapped_column

from eldercare.database.base import Base


class Voucher(Base):
    """
    Immutable proof of a redemption. Inserted in the same transaction as the coin debit.
    """
    __tablename__ = "vouchers"
    __table_args__ = (
        # Retried redeem requests carry the same request_id and must not debit twice.
        UniqueConstraint("account_id", "request_id", name="uq_vouchers_account_request"),
        Index("ix_vouchers_account_redeemed", "account_id", "redeemed_at"),
        CheckConstraint("cost > 0", name="ck_vouchers_cost_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    account_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
    )
    reward_id: Mapped[str] = mapped_column(String(32), index=True)
    code: Mapped[str] = mapped_column(String(32), unique=True)
    request_id: Mapped[str] = mapped_column(String(64))
    cost: Mapped[int] = mapped_column(Integer)

    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
