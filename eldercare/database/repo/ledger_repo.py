# eldercare/database/repo/ledger_repo.py
from __future__ import annotations

from datetime import date

from sqlalchemy import case, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from eldercare.database.models import Account, CheckinDay, CoinLedger
from eldercare.utils.dates import previous_day


def _insert_for(session: AsyncSession):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise RuntimeError(f"Unsupported database dialect for ledger upserts: {dialect}")


async def account_exists(session: AsyncSession, account_id: str) -> bool:
    found = await session.scalar(select(Account.id).where(Account.id == account_id))
    return found is not None


async def ensure_ledger(session: AsyncSession, account_id: str) -> None:
    """
    Create the (empty) ledger row if missing. Safe under concurrent callers.
    """
    insert = _insert_for(session)
    stmt = (
        insert(CoinLedger)
        .values(account_id=account_id, coins=0, streak=0, last_checkin_date=None)
        .on_conflict_do_nothing(index_elements=["account_id"])
    )
    await session.execute(stmt)


async def load_ledger_row(session: AsyncSession, account_id: str, *, for_update: bool = False):
    """
    Returns (coins, streak, last_checkin_date) or None. Plain column select so
    the values are never stale identity-map copies.
    """
    q = select(CoinLedger.coins, CoinLedger.streak, CoinLedger.last_checkin_date).where(
        CoinLedger.account_id == account_id
    )
    if for_update:
        # row lock on Postgres; SQLite already holds the write lock (BEGIN IMMEDIATE)
        q = q.with_for_update()
    res = await session.execute(q)
    return res.one_or_none()


async def load_checkin_days(session: AsyncSession, account_id: str, *, since: date | None = None) -> set[date]:
    q = select(CheckinDay.day).where(CheckinDay.account_id == account_id)
    if since is not None:
        q = q.where(CheckinDay.day >= since)
    res = await session.execute(q)
    return {row[0] for row in res.all()}


async def apply_checkin(session: AsyncSession, *, account_id: str, today: date, coins: int) -> bool:
    """
    Record `today` and advance coins/streak in one conditional UPDATE.

    The day row goes in first: its unique (account_id, day) constraint raises
    IntegrityError for a duplicate, so the UPDATE never runs twice for a day.
    The UPDATE only matches while last_checkin_date < today, so it is also a
    compare-and-swap on the ledger row. Returns False when it matched nothing.
    """
    session.add(CheckinDay(account_id=account_id, day=today))
    await session.flush()

    yesterday = previous_day(today)
    stmt = (
        update(CoinLedger)
        .where(
            CoinLedger.account_id == account_id,
            or_(CoinLedger.last_checkin_date.is_(None), CoinLedger.last_checkin_date < today),
        )
        .values(
            coins=CoinLedger.coins + int(coins),
            streak=case(
                (CoinLedger.last_checkin_date == yesterday, CoinLedger.streak + 1),
                else_=1,
            ),
            last_checkin_date=today,
        )
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1


async def debit_coins(session: AsyncSession, *, account_id: str, amount: int) -> bool:
    """
    Conditional debit: only applies when the balance covers `amount`.
    Returns False (nothing changed) otherwise.
    """
    stmt = (
        update(CoinLedger)
        .where(CoinLedger.account_id == account_id, CoinLedger.coins >= int(amount))
        .values(coins=CoinLedger.coins - int(amount))
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.rowcount == 1
