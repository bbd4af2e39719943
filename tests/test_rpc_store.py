"""Tests for RpcLedgerStore using httpx.MockTransport."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from eldercare.config import Settings
from eldercare.services.checkin import CheckinService
from eldercare.services.results import LedgerError
from eldercare.services.rewards import RedemptionService
from eldercare.stores import RejectReason, RpcLedgerStore, StoreRejected, StoreUnavailable

BASE_URL = "https://ledger.test/rest/v1"

LEDGER = {
    "account_id": "acc-1",
    "coins": 4,
    "streak": 2,
    "last_checkin_date": "2024-03-10",
    "checkin_dates": ["2024-03-09", "2024-03-10"],
}

VOUCHER = {
    "account_id": "acc-1",
    "reward_id": "kopitiam5",
    "code": "EC-7K2Q-M0ZD",
    "request_id": "req-1",
    "cost": 9,
    "redeemed_at": "2024-03-11T02:15:00+00:00",
}


def make_store(handler, **kwargs) -> RpcLedgerStore:
    kwargs.setdefault("min_wait", 0)
    kwargs.setdefault("max_wait", 0)
    return RpcLedgerStore(BASE_URL, "service-key", transport=httpx.MockTransport(handler), **kwargs)


class TestRpcReads:
    @pytest.mark.asyncio
    async def test_read_ledger_parses_snapshot(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            seen["apikey"] = request.headers["apikey"]
            return httpx.Response(200, json=LEDGER)

        store = make_store(handler)
        snap = await store.read_ledger("acc-1")
        await store.close()

        assert seen == {"path": "/rest/v1/rpc/ec_read_ledger", "body": {"p_account": "acc-1"}, "apikey": "service-key"}
        assert snap.coins == 4
        assert snap.last_checkin_date == date(2024, 3, 10)
        assert snap.checkin_dates == frozenset({date(2024, 3, 9), date(2024, 3, 10)})

    @pytest.mark.asyncio
    async def test_read_ledger_since_is_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=LEDGER)

        store = make_store(handler)
        await store.read_ledger("acc-1", since=date(2024, 3, 5))
        await store.close()

        assert seen["body"] == {"p_account": "acc-1", "p_since": "2024-03-05"}

    @pytest.mark.asyncio
    async def test_read_ledger_null_means_no_row(self):
        store = make_store(lambda request: httpx.Response(200, content=b"null"))
        assert await store.read_ledger("acc-1") is None
        await store.close()

    @pytest.mark.asyncio
    async def test_malformed_reply_is_unavailable(self):
        bad = dict(LEDGER, coins=-3)
        store = make_store(lambda request: httpx.Response(200, json=bad))

        with pytest.raises(StoreUnavailable):
            await store.read_ledger("acc-1")
        await store.close()

    @pytest.mark.asyncio
    async def test_inconsistent_last_checkin_is_rejected_at_boundary(self):
        bad = dict(LEDGER, last_checkin_date="2024-03-09")
        store = make_store(lambda request: httpx.Response(200, json=bad))

        with pytest.raises(StoreUnavailable):
            await store.read_ledger("acc-1")
        await store.close()

    @pytest.mark.asyncio
    async def test_list_vouchers(self):
        store = make_store(lambda request: httpx.Response(200, json=[VOUCHER]))
        vouchers = await store.list_vouchers("acc-1")
        await store.close()

        assert [v.code for v in vouchers] == ["EC-7K2Q-M0ZD"]


class TestRpcErrors:
    @pytest.mark.asyncio
    async def test_known_reject_reason(self):
        def handler(request):
            return httpx.Response(400, json={"code": "P0001", "message": "backdated_checkin", "details": None})

        store = make_store(handler)
        with pytest.raises(StoreRejected) as exc:
            await store.atomic_checkin("acc-1", date(2024, 3, 1))
        await store.close()

        assert exc.value.reason == RejectReason.BACKDATED_CHECKIN

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        store = make_store(lambda request: httpx.Response(503, text="upstream down"))

        with pytest.raises(StoreUnavailable):
            await store.read_ledger("acc-1")
        await store.close()

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json={"applied": True, "ledger": LEDGER})

        store = make_store(handler, max_attempts=3)
        reply = await store.atomic_checkin("acc-1", date(2024, 3, 10))
        await store.close()

        assert calls["n"] == 2
        assert reply.applied is True

    @pytest.mark.asyncio
    async def test_transport_error_exhausts_attempts(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            raise httpx.ReadTimeout("timed out", request=request)

        store = make_store(handler, max_attempts=2)
        with pytest.raises(StoreUnavailable):
            await store.read_ledger("acc-1")
        await store.close()

        assert calls["n"] == 2

    def test_prefix_that_cannot_form_a_code_is_refused(self):
        with pytest.raises(ValueError):
            make_store(lambda request: httpx.Response(200), voucher_prefix="ELDERCARE1")

    @pytest.mark.asyncio
    async def test_server_prefix_guard_is_unavailable(self):
        store = make_store(lambda request: httpx.Response(400, json={"message": "invalid_prefix"}))

        with pytest.raises(StoreUnavailable):
            await store.atomic_redeem("acc-1", reward_id="ntuc5", cost=10, request_id="req-1")
        await store.close()


class TestServicesOverRpc:
    @pytest.mark.asyncio
    async def test_checkin_payload_and_result(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            ledger = dict(LEDGER, coins=5, streak=3, last_checkin_date="2024-03-11",
                          checkin_dates=["2024-03-09", "2024-03-10", "2024-03-11"])
            return httpx.Response(200, json={"applied": True, "ledger": ledger})

        store = make_store(handler)
        res = await CheckinService(store, Settings()).check_in("acc-1", date(2024, 3, 11))
        await store.close()

        assert seen["body"] == {"p_account": "acc-1", "p_today": "2024-03-11", "p_coins": 1}
        assert res.ok is True
        assert res.status.streak == 3
        assert res.status.today_checked is True

    @pytest.mark.asyncio
    async def test_redeem_insufficient_funds(self):
        def handler(request):
            return httpx.Response(200, json={"status": "insufficient_funds", "coins": 4, "voucher": None})

        store = make_store(handler)
        res = await RedemptionService(store, Settings()).redeem("acc-1", "ntuc5", request_id="req-9")
        await store.close()

        assert res.ok is False
        assert res.error == LedgerError.INSUFFICIENT_BALANCE
        assert res.coins == 4

    @pytest.mark.asyncio
    async def test_redeem_sends_idempotency_key(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "ok", "coins": 0, "voucher": VOUCHER})

        store = make_store(handler)
        res = await RedemptionService(store, Settings()).redeem("acc-1", "kopitiam5", request_id="req-1")
        await store.close()

        assert seen["body"] == {
            "p_account": "acc-1",
            "p_reward": "kopitiam5",
            "p_cost": 9,
            "p_request": "req-1",
            "p_prefix": "EC",
        }
        assert res.ok is True
        assert res.voucher.code == "EC-7K2Q-M0ZD"

    @pytest.mark.asyncio
    async def test_unknown_account_maps_to_not_authenticated(self):
        def handler(request):
            return httpx.Response(400, json={"message": "unknown_account"})

        store = make_store(handler)
        res = await RedemptionService(store, Settings()).redeem("ghost", "ntuc5")
        await store.close()

        assert res.error == LedgerError.NOT_AUTHENTICATED
