from .account import Account, new_account_id
from .ledger import CoinLedger, CheckinDay
from .voucher import Voucher

__all__ = [
    "Account",
    "new_account_id",
    "CoinLedger",
    "CheckinDay",
    "Voucher",
]
