# eldercare/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from eldercare.utils.codes import normalize_voucher_prefix

BACKENDS = ("sql", "rpc")

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./eldercare.db"
DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_COINS_PER_CHECKIN = 1
DEFAULT_VOUCHER_PREFIX = "EC"
DEFAULT_TIMEZONE = "Asia/Singapore"


def _require(env: Mapping[str, str], key: str) -> str:
    v = env.get(key)
    if v is None or not v.strip():
        raise RuntimeError(f"Missing required environment variable: {key}")
    return v.strip()


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _to_float(value: str, key_name: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid number for {key_name}: {value!r}") from e


def _to_bool(raw: str | None, key_name: str, default: bool) -> bool:
    """
    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    Empty or missing -> default.
    """
    if raw is None or not raw.strip():
        return default
    v = raw.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    raise RuntimeError(f"Invalid boolean for {key_name}: {raw!r}")


@dataclass(frozen=True, slots=True)
class Settings:
    # --- storage ---
    database_url: str = DEFAULT_DATABASE_URL
    ledger_backend: str = "sql"  # sql | rpc

    # --- hosted rpc backend (only when ledger_backend == "rpc") ---
    rpc_url: Optional[str] = None
    rpc_api_key: Optional[str] = None

    # --- remote calls ---
    remote_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    remote_max_attempts: int = DEFAULT_MAX_ATTEMPTS

    # --- ledger behaviour ---
    # When True a failed status read shows an empty ledger instead of an error.
    ledger_fail_open: bool = False
    coins_per_checkin: int = DEFAULT_COINS_PER_CHECKIN
    voucher_prefix: str = DEFAULT_VOUCHER_PREFIX

    # --- time ---
    timezone: str = DEFAULT_TIMEZONE

    # --- environment ---
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @classmethod
    def load(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast for malformed values.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        database_url = (env.get("DATABASE_URL") or DEFAULT_DATABASE_URL).strip()

        ledger_backend = (env.get("LEDGER_BACKEND") or "sql").strip().lower()
        if ledger_backend not in BACKENDS:
            raise RuntimeError(f"Invalid LEDGER_BACKEND: {ledger_backend!r} (expected one of {BACKENDS})")

        rpc_url: Optional[str] = None
        rpc_api_key: Optional[str] = None
        if ledger_backend == "rpc":
            rpc_url = _require(env, "RPC_URL").rstrip("/")
            rpc_api_key = _require(env, "RPC_API_KEY")

        timeout_raw = (env.get("REMOTE_TIMEOUT_SECONDS") or "").strip()
        remote_timeout_seconds = (
            _to_float(timeout_raw, "REMOTE_TIMEOUT_SECONDS") if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        )
        if remote_timeout_seconds <= 0:
            raise RuntimeError("REMOTE_TIMEOUT_SECONDS must be positive")

        attempts_raw = (env.get("REMOTE_MAX_ATTEMPTS") or "").strip()
        remote_max_attempts = (
            _to_int(attempts_raw, "REMOTE_MAX_ATTEMPTS") if attempts_raw else DEFAULT_MAX_ATTEMPTS
        )
        if remote_max_attempts < 1:
            raise RuntimeError("REMOTE_MAX_ATTEMPTS must be at least 1")

        coins_raw = (env.get("COINS_PER_CHECKIN") or "").strip()
        coins_per_checkin = _to_int(coins_raw, "COINS_PER_CHECKIN") if coins_raw else DEFAULT_COINS_PER_CHECKIN
        if coins_per_checkin < 1:
            raise RuntimeError("COINS_PER_CHECKIN must be at least 1")

        try:
            voucher_prefix = normalize_voucher_prefix(env.get("VOUCHER_PREFIX") or DEFAULT_VOUCHER_PREFIX)
        except ValueError as e:
            raise RuntimeError(f"Invalid VOUCHER_PREFIX: {e}") from e

        timezone = (env.get("TIMEZONE") or DEFAULT_TIMEZONE).strip() or DEFAULT_TIMEZONE
        try:
            ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise RuntimeError(f"Unknown TIMEZONE: {timezone!r}") from e

        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        return cls(
            database_url=database_url,
            ledger_backend=ledger_backend,
            rpc_url=rpc_url,
            rpc_api_key=rpc_api_key,
            remote_timeout_seconds=remote_timeout_seconds,
            remote_max_attempts=remote_max_attempts,
            ledger_fail_open=_to_bool(env.get("LEDGER_FAIL_OPEN"), "LEDGER_FAIL_OPEN", False),
            coins_per_checkin=coins_per_checkin,
            voucher_prefix=voucher_prefix,
            timezone=timezone,
            environment=environment,
        )
