# eldercare/stores/rpc.py
"""Ledger store backed by the hosted database's stored procedures.

The procedures live in ``sql/ledger_procedures.sql`` and are called through the
PostgREST ``/rpc/<name>`` endpoint. Both mutating procedures are idempotent
(check-in per day, redeem per request id), which is what makes retrying a
timed-out call safe.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from eldercare.schemas import CheckinReply, LedgerSnapshot, RedeemReply, VoucherRecord
from eldercare.stores.base import RejectReason, StoreRejected, StoreUnavailable
from eldercare.utils.codes import normalize_voucher_prefix

logger = logging.getLogger(__name__)

_REJECT_REASONS = {r.value: r for r in RejectReason}
_VOUCHER_LIST = TypeAdapter(list[VoucherRecord])


class RpcLedgerStore:
    """Calls ``ec_read_ledger``, ``ec_atomic_checkin``, ``ec_atomic_redeem`` and
    ``ec_list_vouchers`` on the hosted backend.

    Usage:
        store = RpcLedgerStore(base_url, api_key)
        snap = await store.read_ledger(account_id)
        await store.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        max_attempts: int = 3,
        voucher_prefix: str = "EC",
        transport: httpx.AsyncBaseTransport | None = None,
        min_wait: float = 0.2,
        max_wait: float = 2.0,
    ):
        """Initialize the store.

        Args:
            base_url: REST root of the hosted backend, e.g. ``https://<ref>.supabase.co/rest/v1``
            api_key: Service key sent as ``apikey`` and bearer token
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per call on transport errors
            voucher_prefix: Tag placed in front of generated voucher codes (1-8 of A-Z, 0-9)
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.voucher_prefix = normalize_voucher_prefix(voucher_prefix)
        self._max_attempts = max_attempts
        self._min_wait = min_wait
        self._max_wait = max_wait
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _call(self, fn: str, payload: dict[str, Any]) -> Any:
        """POST to ``/rpc/<fn>`` with retry on transport errors.

        Raises:
            StoreRejected: the procedure raised one of the known reject reasons
            StoreUnavailable: network failure after retries, or any other error status
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._min_wait, min=self._min_wait, max=self._max_wait),
                retry=retry_if_exception_type(httpx.TransportError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post(f"/rpc/{fn}", json=payload)
        except httpx.TransportError as e:
            logger.error("RPC %s failed after %s attempts: %s", fn, self._max_attempts, e)
            raise StoreUnavailable(f"{fn}: {e}") from e

        if response.status_code >= 400:
            self._raise_for_error(fn, response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailable(f"{fn}: response is not JSON") from e

    @staticmethod
    def _raise_for_error(fn: str, response: httpx.Response) -> None:
        body: dict[str, Any] = {}
        try:
            parsed = response.json()
            if isinstance(parsed, dict):
                body = parsed
        except ValueError:
            pass
        message = str(body.get("message") or "")

        reason = _REJECT_REASONS.get(message.strip())
        if reason is not None and response.status_code < 500:
            raise StoreRejected(reason, body.get("details") or None)

        logger.error("RPC %s returned HTTP %s: %s", fn, response.status_code, message or response.text[:200])
        raise StoreUnavailable(f"{fn}: HTTP {response.status_code}")

    @staticmethod
    def _validate(fn: str, model, data: Any):
        try:
            if isinstance(model, TypeAdapter):
                return model.validate_python(data)
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("RPC %s returned an unexpected shape: %s", fn, e)
            raise StoreUnavailable(f"{fn}: malformed response") from e

    async def read_ledger(self, account_id: str, *, since: date | None = None) -> LedgerSnapshot | None:
        payload: dict[str, Any] = {"p_account": account_id}
        if since is not None:
            payload["p_since"] = since.isoformat()
        data = await self._call("ec_read_ledger", payload)
        if data is None:
            return None
        return self._validate("ec_read_ledger", LedgerSnapshot, data)

    async def atomic_checkin(self, account_id: str, today: date, *, coins: int = 1) -> CheckinReply:
        data = await self._call(
            "ec_atomic_checkin",
            {"p_account": account_id, "p_today": today.isoformat(), "p_coins": int(coins)},
        )
        return self._validate("ec_atomic_checkin", CheckinReply, data)

    async def atomic_redeem(
        self,
        account_id: str,
        *,
        reward_id: str,
        cost: int,
        request_id: str,
    ) -> RedeemReply:
        data = await self._call(
            "ec_atomic_redeem",
            {
                "p_account": account_id,
                "p_reward": reward_id,
                "p_cost": int(cost),
                "p_request": request_id,
                "p_prefix": self.voucher_prefix,
            },
        )
        return self._validate("ec_atomic_redeem", RedeemReply, data)

    async def list_vouchers(self, account_id: str) -> list[VoucherRecord]:
        data = await self._call("ec_list_vouchers", {"p_account": account_id})
        return self._validate("ec_list_vouchers", _VOUCHER_LIST, data or [])
