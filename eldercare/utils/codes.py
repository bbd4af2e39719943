# eldercare/utils/codes.py
from __future__ import annotations

import re
import secrets
import string

ALPHABET = string.digits + string.ascii_uppercase  # base-36
SEGMENT_LENGTH = 4

# shared by config validation, code generation and VoucherRecord
PREFIX_RULE = r"[A-Z0-9]{1,8}"
_PREFIX_RE = re.compile(PREFIX_RULE)


def normalize_voucher_prefix(prefix: str) -> str:
    """Upper-cases `prefix`; raises ValueError unless it is 1-8 ASCII letters/digits."""
    value = (prefix or "").strip().upper()
    if not _PREFIX_RE.fullmatch(value):
        raise ValueError(f"Invalid voucher prefix: {prefix!r} (expected 1-8 characters A-Z or 0-9)")
    return value


def _segment(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def generate_voucher_code(prefix: str = "EC") -> str:
    """
    Display code for a redeemed voucher, e.g. "EC-7K2Q-M0ZD".

    Two base-36 segments (36**8 combinations at the default length). This is a
    human-presentable reference, not a secret; uniqueness is enforced by the store.
    """
    return f"{normalize_voucher_prefix(prefix)}-{_segment(SEGMENT_LENGTH)}-{_segment(SEGMENT_LENGTH)}"
