# eldercare/stores/base.py
from __future__ import annotations

import enum
from datetime import date
from typing import Protocol

from eldercare.schemas import CheckinReply, LedgerSnapshot, RedeemReply, VoucherRecord


class RejectReason(str, enum.Enum):
    UNKNOWN_ACCOUNT = "unknown_account"
    BACKDATED_CHECKIN = "backdated_checkin"
    REQUEST_CONFLICT = "request_conflict"


class StoreError(Exception):
    """Base for failures raised by a ledger store."""


class StoreUnavailable(StoreError):
    """
    Transient: network/database failure, timeout, or a reply that failed validation.
    The caller cannot tell whether a mutation committed; retry with the same key.
    """


class StoreRejected(StoreError):
    """The store refused the request; retrying the same call will not help."""

    def __init__(self, reason: RejectReason, message: str | None = None) -> None:
        self.reason = reason
        super().__init__(message or reason.value)


class LedgerStore(Protocol):
    """
    Everything the ledger services need from persistence.
    Both mutations are atomic and idempotent: check-in per (account, day),
    redeem per (account, request_id).
    """

    async def read_ledger(self, account_id: str, *, since: date | None = None) -> LedgerSnapshot | None:
        """Current ledger, or None when the account never checked in. `since` limits checkin_dates."""

    async def atomic_checkin(self, account_id: str, today: date, *, coins: int = 1) -> CheckinReply: ...

    async def atomic_redeem(
        self,
        account_id: str,
        *,
        reward_id: str,
        cost: int,
        request_id: str,
    ) -> RedeemReply: ...

    async def list_vouchers(self, account_id: str) -> list[VoucherRecord]:
        """Every voucher the account holds, newest first."""

    async def close(self) -> None: ...
