from __future__ import annotations

from datetime import date, datetime
from typing import FrozenSet, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from eldercare.utils.codes import PREFIX_RULE

VOUCHER_CODE_PATTERN = rf"^{PREFIX_RULE}-[A-Z0-9]{{4}}-[A-Z0-9]{{4}}$"


class LedgerSnapshot(BaseModel):
    """Per-account coins/streak state as returned by any ledger store."""

    model_config = ConfigDict(frozen=True)

    account_id: str = Field(..., min_length=1, description="Owning account id")
    coins: int = Field(0, ge=0, description="Coin balance")
    streak: int = Field(0, ge=0, description="Consecutive local days checked in")
    last_checkin_date: Optional[date] = Field(None, description="Most recent check-in day")
    checkin_dates: FrozenSet[date] = Field(
        default_factory=frozenset,
        description="Days checked in, possibly limited to a recent window",
    )

    @model_validator(mode="after")
    def _last_is_latest(self) -> "LedgerSnapshot":
        if self.checkin_dates:
            latest = max(self.checkin_dates)
            if self.last_checkin_date != latest:
                raise ValueError(
                    f"last_checkin_date {self.last_checkin_date} is not the latest check-in ({latest})"
                )
        if self.last_checkin_date is not None and self.streak == 0:
            raise ValueError("streak must be positive once a check-in exists")
        return self

    @classmethod
    def empty(cls, account_id: str) -> "LedgerSnapshot":
        return cls(account_id=account_id)


class CheckinReply(BaseModel):
    model_config = ConfigDict(frozen=True)

    applied: bool = Field(..., description="False when the day was already recorded")
    ledger: LedgerSnapshot


class VoucherRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str = Field(..., min_length=1)
    reward_id: str = Field(..., min_length=1)
    code: str = Field(..., pattern=VOUCHER_CODE_PATTERN)
    request_id: str = Field(..., min_length=1, description="Idempotency key of the redeem request")
    cost: int = Field(..., gt=0)
    redeemed_at: datetime


class RedeemReply(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["ok", "replayed", "insufficient_funds"]
    coins: int = Field(..., ge=0, description="Balance after the call")
    voucher: Optional[VoucherRecord] = None

    @model_validator(mode="after")
    def _voucher_matches_status(self) -> "RedeemReply":
        if self.status == "insufficient_funds":
            if self.voucher is not None:
                raise ValueError("insufficient_funds reply must not carry a voucher")
        elif self.voucher is None:
            raise ValueError(f"{self.status} reply must carry a voucher")
        return self
