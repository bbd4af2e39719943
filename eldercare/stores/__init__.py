from __future__ import annotations

from eldercare.config import Settings
from eldercare.database.session import Database

from .base import LedgerStore, RejectReason, StoreError, StoreRejected, StoreUnavailable
from .rpc import RpcLedgerStore
from .sql import SqlLedgerStore


def build_store(settings: Settings, db: Database | None = None) -> LedgerStore:
    """Pick the ledger backend configured by LEDGER_BACKEND."""
    if settings.ledger_backend == "rpc":
        assert settings.rpc_url and settings.rpc_api_key  # enforced by Settings.load
        return RpcLedgerStore(
            settings.rpc_url,
            settings.rpc_api_key,
            timeout=settings.remote_timeout_seconds,
            max_attempts=settings.remote_max_attempts,
            voucher_prefix=settings.voucher_prefix,
        )
    return SqlLedgerStore(db or Database(settings.database_url), voucher_prefix=settings.voucher_prefix)


__all__ = [
    "LedgerStore",
    "RejectReason",
    "StoreError",
    "StoreRejected",
    "StoreUnavailable",
    "RpcLedgerStore",
    "SqlLedgerStore",
    "build_store",
]
