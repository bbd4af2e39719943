# eldercare/services/results.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date

from eldercare.schemas import VoucherRecord
from eldercare.utils.dates import rolling_window


class LedgerError(str, enum.Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    INVALID_ARGUMENT = "invalid_argument"


class NotAuthenticated(Exception):
    """Raised by SessionContext.require_account_id when nobody is signed in."""


@dataclass(frozen=True, slots=True)
class DayMark:
    day: date
    checked: bool


@dataclass(frozen=True, slots=True)
class LedgerStatus:
    coins: int
    streak: int
    today_checked: bool
    week: tuple[DayMark, ...]
    # True when the ledger could not be read and LEDGER_FAIL_OPEN substituted zeros
    degraded: bool = False

    @classmethod
    def zeroed(cls, today: date, *, degraded: bool = False) -> "LedgerStatus":
        return cls(
            coins=0,
            streak=0,
            today_checked=False,
            week=tuple(DayMark(day=d, checked=False) for d in rolling_window(today)),
            degraded=degraded,
        )


@dataclass(frozen=True, slots=True)
class StatusResult:
    ok: bool
    status: LedgerStatus
    error: LedgerError | None = None


@dataclass(frozen=True, slots=True)
class CheckinResult:
    ok: bool
    already: bool
    coins_awarded: int
    status: LedgerStatus | None = None
    error: LedgerError | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class RedeemResult:
    ok: bool
    replayed: bool = False
    voucher: VoucherRecord | None = None
    coins: int | None = None  # balance after the call, when known
    error: LedgerError | None = None
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class VouchersResult:
    ok: bool
    vouchers: tuple[VoucherRecord, ...] = field(default_factory=tuple)
    error: LedgerError | None = None
