# eldercare/database/repo/accounts.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eldercare.database.models import Account


async def get_by_id(session: AsyncSession, account_id: str) -> Optional[Account]:
    res = await session.execute(select(Account).where(Account.id == account_id))
    return res.scalar_one_or_none()


async def get_by_phone(session: AsyncSession, phone: str) -> Optional[Account]:
    res = await session.execute(select(Account).where(Account.phone == phone))
    return res.scalar_one_or_none()


async def create_account(session: AsyncSession, phone: str) -> Account:
    account = Account(phone=phone, onboarding_completed=False)
    session.add(account)
    await session.flush()  # ensures `account.id` exists
    return account


async def set_onboarding_completed(session: AsyncSession, account_id: str, done: bool = True) -> bool:
    res = await session.execute(
        update(Account)
        .where(Account.id == account_id)
        .values(onboarding_completed=done)
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1
