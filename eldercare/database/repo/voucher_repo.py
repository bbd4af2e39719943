# eldercare/database/repo/voucher_repo.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eldercare.database.models import Voucher


async def find_by_request(session: AsyncSession, *, account_id: str, request_id: str) -> Voucher | None:
    res = await session.execute(
        select(Voucher).where(
            Voucher.account_id == account_id,
            Voucher.request_id == request_id,
        )
    )
    return res.scalar_one_or_none()


async def insert_voucher(
    session: AsyncSession,
    *,
    account_id: str,
    reward_id: str,
    code: str,
    request_id: str,
    cost: int,
    redeemed_at: datetime,
) -> Voucher:
    v = Voucher(
        account_id=account_id,
        reward_id=reward_id,
        code=code,
        request_id=request_id,
        cost=cost,
        redeemed_at=redeemed_at,
    )
    session.add(v)
    await session.flush()  # uq_vouchers_account_request / unique code checked here
    return v


async def list_for_account(session: AsyncSession, account_id: str) -> list[Voucher]:
    res = await session.execute(
        select(Voucher)
        .where(Voucher.account_id == account_id)
        .order_by(Voucher.redeemed_at.desc(), Voucher.id.desc())
    )
    return list(res.scalars().all())
