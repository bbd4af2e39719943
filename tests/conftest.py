"""Shared fixtures: a throwaway SQLite ledger database per test."""

from __future__ import annotations

from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy import update

from eldercare.config import Settings
from eldercare.database import Database
from eldercare.database.models import CheckinDay, CoinLedger
from eldercare.database.tx import transactional
from eldercare.services.accounts import AccountService
from eldercare.services.checkin import CheckinService
from eldercare.services.rewards import RedemptionService
from eldercare.stores import SqlLedgerStore


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def settings(database_url) -> Settings:
    return Settings(database_url=database_url, timezone="Asia/Singapore", remote_timeout_seconds=10.0)


@pytest_asyncio.fixture
async def db(database_url):
    database = Database(database_url)
    await database.init_models()
    yield database
    await database.close()


@pytest.fixture
def store(db) -> SqlLedgerStore:
    return SqlLedgerStore(db)


@pytest.fixture
def accounts(db) -> AccountService:
    return AccountService(db)


@pytest_asyncio.fixture
async def account_id(accounts) -> str:
    account = await accounts.register("+65 9123 4567")
    return account.id


@pytest.fixture
def checkins(store, settings) -> CheckinService:
    return CheckinService(store, settings)


@pytest.fixture
def redemptions(store, settings) -> RedemptionService:
    return RedemptionService(store, settings)


@pytest.fixture
def seed_ledger(db):
    """Write ledger state directly, bypassing the services."""

    async def _seed(account_id: str, *, coins: int = 0, streak: int = 0, days: tuple[date, ...] = ()) -> None:
        async with db.session() as session:
            async with transactional(session):
                await session.execute(
                    update(CoinLedger)
                    .where(CoinLedger.account_id == account_id)
                    .values(coins=coins, streak=streak, last_checkin_date=max(days) if days else None)
                    .execution_options(synchronize_session=False)
                )
                for d in days:
                    session.add(CheckinDay(account_id=account_id, day=d))

    return _seed
