# eldercare/services/checkin.py
from __future__ import annotations

import logging
from datetime import date

from eldercare.config import Settings
from eldercare.schemas import LedgerSnapshot
from eldercare.services.remote import bounded, rejection_error
from eldercare.services.results import (
    CheckinResult,
    DayMark,
    LedgerError,
    LedgerStatus,
    StatusResult,
)
from eldercare.stores.base import LedgerStore, StoreRejected, StoreUnavailable
from eldercare.utils.dates import current_streak, parse_day, rolling_window, window_start
from eldercare.utils.dt import TimeProvider

log = logging.getLogger(__name__)


def build_status(snapshot: LedgerSnapshot, today: date) -> LedgerStatus:
    """
    Status as shown on the home card: balance, live streak, and the 7-day
    tracker covering [today - 6, today] inclusive.
    """
    checked = snapshot.checkin_dates
    return LedgerStatus(
        coins=snapshot.coins,
        streak=current_streak(snapshot.last_checkin_date, snapshot.streak, today),
        today_checked=snapshot.last_checkin_date == today or today in checked,
        week=tuple(DayMark(day=d, checked=d in checked) for d in rolling_window(today)),
    )


class CheckinService:
    """
    One check-in per account per local calendar day, one coin each, plus the
    consecutive-day streak. All state changes go through store.atomic_checkin.
    """

    def __init__(
        self,
        store: LedgerStore,
        settings: Settings | None = None,
        *,
        time_provider: TimeProvider | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.time = time_provider or TimeProvider(self.settings.timezone)

    async def get_status(self, account_id: str | None, today: date | str | None = None) -> StatusResult:
        try:
            day = parse_day(today) if today is not None else self.time.today()
        except ValueError:
            return StatusResult(
                ok=False,
                status=LedgerStatus.zeroed(self.time.today()),
                error=LedgerError.INVALID_ARGUMENT,
            )

        if not account_id:
            return StatusResult(ok=False, status=LedgerStatus.zeroed(day), error=LedgerError.NOT_AUTHENTICATED)

        try:
            snap = await bounded(
                self.store.read_ledger(account_id, since=window_start(day)),
                self.settings.remote_timeout_seconds,
            )
        except StoreUnavailable as e:
            if self.settings.ledger_fail_open:
                log.warning("Ledger read failed for account=%s, showing empty ledger: %s", account_id, e)
                return StatusResult(ok=True, status=LedgerStatus.zeroed(day, degraded=True))
            log.warning("Ledger read failed for account=%s: %s", account_id, e)
            return StatusResult(ok=False, status=LedgerStatus.zeroed(day), error=LedgerError.REMOTE_UNAVAILABLE)
        except StoreRejected as e:
            return StatusResult(ok=False, status=LedgerStatus.zeroed(day), error=rejection_error(e))

        return StatusResult(ok=True, status=build_status(snap or LedgerSnapshot.empty(account_id), day))

    async def check_in(self, account_id: str | None, today: date | str) -> CheckinResult:
        if not account_id:
            return CheckinResult(ok=False, already=False, coins_awarded=0, error=LedgerError.NOT_AUTHENTICATED)

        try:
            day = parse_day(today)
        except ValueError as e:
            return CheckinResult(
                ok=False,
                already=False,
                coins_awarded=0,
                error=LedgerError.INVALID_ARGUMENT,
                detail=str(e),
            )

        coins = self.settings.coins_per_checkin
        try:
            reply = await bounded(
                self.store.atomic_checkin(account_id, day, coins=coins),
                self.settings.remote_timeout_seconds,
                shield=True,
            )
        except StoreRejected as e:
            log.info("Check-in rejected account=%s day=%s: %s", account_id, day, e)
            return CheckinResult(ok=False, already=False, coins_awarded=0, error=rejection_error(e), detail=str(e))
        except StoreUnavailable as e:
            log.warning("Check-in failed account=%s day=%s: %s", account_id, day, e)
            return CheckinResult(
                ok=False,
                already=False,
                coins_awarded=0,
                error=LedgerError.REMOTE_UNAVAILABLE,
                detail=str(e),
            )

        status = build_status(reply.ledger, day)
        if not reply.applied:
            return CheckinResult(ok=True, already=True, coins_awarded=0, status=status)

        return CheckinResult(ok=True, already=False, coins_awarded=coins, status=status)
