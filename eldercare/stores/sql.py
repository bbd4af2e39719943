# eldercare/stores/sql.py
from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eldercare.database.models import Voucher
from eldercare.database.repo import ledger_repo, voucher_repo
from eldercare.database.session import Database
from eldercare.database.tx import transactional
from eldercare.schemas import CheckinReply, LedgerSnapshot, RedeemReply, VoucherRecord
from eldercare.stores.base import RejectReason, StoreRejected, StoreUnavailable
from eldercare.utils.codes import generate_voucher_code, normalize_voucher_prefix
from eldercare.utils.dates import window_start

log = logging.getLogger(__name__)


class _AlreadyApplied(Exception):
    pass


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _voucher_record(v: Voucher) -> VoucherRecord:
    return VoucherRecord(
        account_id=v.account_id,
        reward_id=v.reward_id,
        code=v.code,
        request_id=v.request_id,
        cost=int(v.cost),
        redeemed_at=_as_utc(v.redeemed_at),
    )


class SqlLedgerStore:
    """
    Ledger store backed by SQLAlchemy. Every mutation is one database
    transaction; concurrency safety comes from unique constraints and
    conditional UPDATEs, never from a client-side read followed by a write.
    """

    CODE_ATTEMPTS = 5

    def __init__(self, db: Database, *, voucher_prefix: str = "EC") -> None:
        self.db = db
        self.voucher_prefix = normalize_voucher_prefix(voucher_prefix)

    async def close(self) -> None:
        await self.db.close()

    # ---------- reads ----------

    async def _snapshot(
        self, session: AsyncSession, account_id: str, *, since: date | None = None
    ) -> LedgerSnapshot | None:
        row = await ledger_repo.load_ledger_row(session, account_id)
        if row is None:
            return None
        days = await ledger_repo.load_checkin_days(session, account_id, since=since)
        coins, streak, last = row
        try:
            return LedgerSnapshot(
                account_id=account_id,
                coins=int(coins),
                streak=int(streak),
                last_checkin_date=last,
                checkin_dates=frozenset(days),
            )
        except ValidationError as e:
            log.error("Ledger row for account=%s violates invariants: %s", account_id, e)
            raise StoreUnavailable(f"corrupt ledger row for account {account_id}") from e

    async def read_ledger(self, account_id: str, *, since: date | None = None) -> LedgerSnapshot | None:
        try:
            async with self.db.session() as session:
                async with transactional(session):
                    return await self._snapshot(session, account_id, since=since)
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    async def list_vouchers(self, account_id: str) -> list[VoucherRecord]:
        try:
            async with self.db.session() as session:
                rows = await voucher_repo.list_for_account(session, account_id)
                return [_voucher_record(v) for v in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    # ---------- check-in ----------

    async def atomic_checkin(self, account_id: str, today: date, *, coins: int = 1) -> CheckinReply:
        try:
            async with self.db.session() as session:
                try:
                    async with transactional(session):
                        if not await ledger_repo.account_exists(session, account_id):
                            raise StoreRejected(RejectReason.UNKNOWN_ACCOUNT)

                        await ledger_repo.ensure_ledger(session, account_id)
                        row = await ledger_repo.load_ledger_row(session, account_id, for_update=True)
                        last = row.last_checkin_date if row is not None else None
                        if last is not None and today < last:
                            raise StoreRejected(
                                RejectReason.BACKDATED_CHECKIN,
                                f"{today} is before the last check-in {last}",
                            )

                        if not await ledger_repo.apply_checkin(
                            session, account_id=account_id, today=today, coins=coins
                        ):
                            # ledger already at or past today; roll back the day row too
                            raise _AlreadyApplied()

                        snap = await self._snapshot(session, account_id, since=window_start(today))
                except (IntegrityError, _AlreadyApplied):
                    # Same day already recorded (retry, double tap, second device).
                    log.debug("Duplicate check-in account=%s day=%s", account_id, today)
                    async with transactional(session):
                        snap = await self._snapshot(session, account_id, since=window_start(today))
                    return CheckinReply(applied=False, ledger=snap or LedgerSnapshot.empty(account_id))

            log.info("Check-in recorded account=%s day=%s streak=%s", account_id, today, snap.streak)
            return CheckinReply(applied=True, ledger=snap)
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

    # ---------- redeem ----------

    async def _insert_voucher(self, session: AsyncSession, **fields) -> Voucher:
        return await voucher_repo.insert_voucher(session, **fields)

    async def _replay(self, session: AsyncSession, *, account_id: str, reward_id: str, request_id: str):
        existing = await voucher_repo.find_by_request(session, account_id=account_id, request_id=request_id)
        if existing is None:
            return None
        if existing.reward_id != reward_id:
            raise StoreRejected(
                RejectReason.REQUEST_CONFLICT,
                f"request {request_id} was already used for {existing.reward_id}",
            )
        row = await ledger_repo.load_ledger_row(session, account_id)
        return RedeemReply(
            status="replayed",
            coins=int(row.coins) if row is not None else 0,
            voucher=_voucher_record(existing),
        )

    async def atomic_redeem(
        self,
        account_id: str,
        *,
        reward_id: str,
        cost: int,
        request_id: str,
    ) -> RedeemReply:
        """
        Debit `cost` coins and issue a voucher in one transaction.

        Replaying `request_id` returns the voucher issued the first time.
        A unique-code collision rolls everything back and retries with a new code.
        """
        try:
            for attempt in range(1, self.CODE_ATTEMPTS + 1):
                code = generate_voucher_code(self.voucher_prefix)
                async with self.db.session() as session:
                    try:
                        async with transactional(session):
                            if not await ledger_repo.account_exists(session, account_id):
                                raise StoreRejected(RejectReason.UNKNOWN_ACCOUNT)

                            replay = await self._replay(
                                session, account_id=account_id, reward_id=reward_id, request_id=request_id
                            )
                            if replay is not None:
                                return replay

                            if not await ledger_repo.debit_coins(session, account_id=account_id, amount=cost):
                                row = await ledger_repo.load_ledger_row(session, account_id)
                                return RedeemReply(
                                    status="insufficient_funds",
                                    coins=int(row.coins) if row is not None else 0,
                                )

                            voucher = await self._insert_voucher(
                                session,
                                account_id=account_id,
                                reward_id=reward_id,
                                code=code,
                                request_id=request_id,
                                cost=int(cost),
                                redeemed_at=datetime.now(timezone.utc),
                            )
                            row = await ledger_repo.load_ledger_row(session, account_id)
                            reply = RedeemReply(
                                status="ok",
                                coins=int(row.coins),
                                voucher=_voucher_record(voucher),
                            )
                    except IntegrityError:
                        # Either a concurrent request with the same key won, or the code collided.
                        async with transactional(session):
                            replay = await self._replay(
                                session, account_id=account_id, reward_id=reward_id, request_id=request_id
                            )
                        if replay is not None:
                            return replay
                        log.warning("Voucher code collision (attempt %s/%s)", attempt, self.CODE_ATTEMPTS)
                        continue

                log.info(
                    "Redeemed reward=%s account=%s cost=%s code=%s",
                    reward_id,
                    account_id,
                    cost,
                    reply.voucher.code if reply.voucher else None,
                )
                return reply
        except ValidationError as e:
            # raised before commit, so the debit was rolled back
            log.error("Voucher for account=%s failed validation: %s", account_id, e)
            raise StoreUnavailable(f"invalid voucher for account {account_id}") from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(str(e)) from e

        raise StoreUnavailable(f"could not allocate a unique voucher code after {self.CODE_ATTEMPTS} attempts")
