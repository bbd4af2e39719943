# eldercare/database/models/ledger.py
from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from eldercare.database.base import Base


class CoinLedger(Base):
    """
    One row per account: coin balance plus streak bookkeeping.
    Only mutated through the atomic store operations (conditional UPDATEs).
    """
    __tablename__ = "coin_ledgers"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="ck_coin_ledgers_coins_nonneg"),
        CheckConstraint("streak >= 0", name="ck_coin_ledgers_streak_nonneg"),
    )

    account_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        primary_key=True,
    )

    coins: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_checkin_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        server_default=func.now(),
        onupdate=func.now(),
    )


class CheckinDay(Base):
    """
    The set of local calendar days an account checked in on.
    The unique (account_id, day) pair is what makes check-in exactly-once.
    """
    __tablename__ = "checkin_days"
    __table_args__ = (
        UniqueConstraint("account_id", "day", name="uq_checkin_days_account_day"),
        Index("ix_checkin_days_day", "day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        index=True,
    )
    day: Mapped[date] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), server_default=func.now())
