# eldercare/services/accounts.py
from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from eldercare.database.models import Account
from eldercare.database.repo import accounts as accounts_repo
from eldercare.database.repo import ledger_repo
from eldercare.database.session import Database
from eldercare.database.tx import transactional
from eldercare.services.session import SessionContext

log = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\+?[0-9]{6,15}$")


def normalize_phone(phone: str) -> str:
    # drop spaces/dashes/brackets people type; keep a leading "+"
    cleaned = re.sub(r"[\s\-()]", "", phone or "")
    if not _PHONE_RE.match(cleaned):
        raise ValueError(f"Invalid phone number: {phone!r}")
    return cleaned


class AccountService:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def register(self, phone: str) -> Account:
        """
        Create an account (and its empty ledger) for `phone`.
        Registering a phone twice returns the existing account.
        """
        normalized = normalize_phone(phone)
        async with self.db.session() as session:
            try:
                async with transactional(session):
                    existing = await accounts_repo.get_by_phone(session, normalized)
                    if existing is not None:
                        return existing
                    account = await accounts_repo.create_account(session, normalized)
                    await ledger_repo.ensure_ledger(session, account.id)
            except IntegrityError:
                # concurrent registration of the same phone
                async with transactional(session):
                    existing = await accounts_repo.get_by_phone(session, normalized)
                if existing is None:
                    raise
                return existing

        log.info("Registered account=%s", account.id)
        return account

    async def find_by_phone(self, phone: str) -> Account | None:
        normalized = normalize_phone(phone)
        async with self.db.session() as session:
            return await accounts_repo.get_by_phone(session, normalized)

    async def get(self, account_id: str) -> Account | None:
        async with self.db.session() as session:
            return await accounts_repo.get_by_id(session, account_id)

    async def sign_in(self, ctx: SessionContext, phone: str) -> bool:
        """
        Phone sign-in (OTP is handled elsewhere). Returns False when the phone
        is not registered; the context is left signed out in that case.
        """
        try:
            account = await self.find_by_phone(phone)
        except ValueError:
            return False
        if account is None:
            return False
        ctx.login(account)
        return True

    async def complete_onboarding(self, account_id: str, ctx: SessionContext | None = None) -> bool:
        async with self.db.session() as session:
            async with transactional(session):
                updated = await accounts_repo.set_onboarding_completed(session, account_id, True)
        if updated and ctx is not None and ctx.account_id == account_id:
            ctx.onboarding_completed = True
        return updated
