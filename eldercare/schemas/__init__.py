from .ledger import (
    CheckinReply,
    LedgerSnapshot,
    RedeemReply,
    VOUCHER_CODE_PATTERN,
    VoucherRecord,
)

__all__ = [
    "CheckinReply",
    "LedgerSnapshot",
    "RedeemReply",
    "VOUCHER_CODE_PATTERN",
    "VoucherRecord",
]
