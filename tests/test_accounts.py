"""Tests for AccountService, SessionContext and user-facing messages."""

from __future__ import annotations

from datetime import date

import pytest

from eldercare.services.messages import TRY_AGAIN, describe_checkin, describe_redeem
from eldercare.services.results import (
    CheckinResult,
    LedgerError,
    LedgerStatus,
    NotAuthenticated,
    RedeemResult,
)
from eldercare.services.session import SessionContext


class TestAccounts:
    @pytest.mark.asyncio
    async def test_register_normalizes_phone(self, accounts):
        account = await accounts.register(" +65 9123-4567 ")

        assert account.phone == "+6591234567"
        assert account.onboarding_completed is False
        assert len(account.id) == 32

    @pytest.mark.asyncio
    async def test_register_twice_returns_same_account(self, accounts):
        a = await accounts.register("+6591234567")
        b = await accounts.register("+65 9123 4567")

        assert a.id == b.id

    @pytest.mark.asyncio
    async def test_register_creates_empty_ledger(self, accounts, checkins):
        account = await accounts.register("+6598765432")

        res = await checkins.get_status(account.id, date(2024, 3, 11))

        assert res.ok is True
        assert res.status.coins == 0

    @pytest.mark.asyncio
    async def test_invalid_phone(self, accounts):
        with pytest.raises(ValueError):
            await accounts.register("call me")

    @pytest.mark.asyncio
    async def test_sign_in_and_logout(self, accounts, account_id):
        ctx = SessionContext()

        assert await accounts.sign_in(ctx, "+65 9123 4567") is True
        assert ctx.account_id == account_id
        assert ctx.require_account_id() == account_id

        ctx.logout()
        assert ctx.is_authenticated is False
        assert ctx.phone is None
        with pytest.raises(NotAuthenticated):
            ctx.require_account_id()

    @pytest.mark.asyncio
    async def test_sign_in_unknown_phone(self, accounts):
        ctx = SessionContext()

        assert await accounts.sign_in(ctx, "+6500000000") is False
        assert await accounts.sign_in(ctx, "not a phone") is False
        assert ctx.is_authenticated is False

    @pytest.mark.asyncio
    async def test_complete_onboarding(self, accounts, account_id):
        ctx = SessionContext()
        await accounts.sign_in(ctx, "+6591234567")

        assert await accounts.complete_onboarding(account_id, ctx) is True
        assert ctx.onboarding_completed is True
        stored = await accounts.get(account_id)
        assert stored.onboarding_completed is True

    @pytest.mark.asyncio
    async def test_complete_onboarding_unknown_account(self, accounts):
        assert await accounts.complete_onboarding("missing") is False


class TestMessages:
    def test_already_checked_in_is_distinct(self):
        res = CheckinResult(ok=True, already=True, coins_awarded=0)
        assert "already checked in" in describe_checkin(res)

    def test_checkin_success(self):
        status = LedgerStatus.zeroed(date(2024, 3, 11))
        res = CheckinResult(ok=True, already=False, coins_awarded=1, status=status)
        assert "+1 coin" in describe_checkin(res)

    def test_insufficient_balance_is_distinct(self):
        res = RedeemResult(ok=False, error=LedgerError.INSUFFICIENT_BALANCE)
        text = describe_redeem(res)
        assert "Not enough coins" in text
        assert text != TRY_AGAIN

    def test_remote_failure_says_try_again(self):
        assert describe_redeem(RedeemResult(ok=False, error=LedgerError.REMOTE_UNAVAILABLE)) == TRY_AGAIN
        res = CheckinResult(ok=False, already=False, coins_awarded=0, error=LedgerError.REMOTE_UNAVAILABLE)
        assert describe_checkin(res) == TRY_AGAIN
