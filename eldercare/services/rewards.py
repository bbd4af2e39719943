# eldercare/services/rewards.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from eldercare.config import Settings
from eldercare.services.remote import bounded, rejection_error
from eldercare.services.results import LedgerError, RedeemResult, VouchersResult
from eldercare.stores.base import LedgerStore, StoreRejected, StoreUnavailable

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RewardItem:
    id: str
    title_key: str
    desc_key: str
    terms_key: str
    cost: int
    icon: str | None = None


def _item(item_id: str, cost: int, icon: str) -> RewardItem:
    return RewardItem(
        id=item_id,
        title_key=f"rewards.items.{item_id}.title",
        desc_key=f"rewards.items.{item_id}.desc",
        terms_key=f"rewards.items.{item_id}.terms",
        cost=cost,
        icon=icon,
    )


CATALOG: tuple[RewardItem, ...] = (
    _item("ntuc5", 10, "cart-outline"),
    _item("ntuc10", 18, "cart-outline"),
    _item("kopitiam5", 9, "cafe-outline"),
    _item("guardian5", 9, "medkit-outline"),
)

_BY_ID = {item.id: item for item in CATALOG}


def catalog() -> tuple[RewardItem, ...]:
    return CATALOG


def get_reward(item_id: str) -> RewardItem:
    """Raises KeyError for an id that is not in the catalog."""
    return _BY_ID[item_id]


def new_request_id() -> str:
    return uuid.uuid4().hex


class RedemptionService:
    """
    Coins -> vouchers. The debit and the voucher insert are one store call
    (atomic_redeem); a retried request_id returns the first voucher instead of
    debiting again.
    """

    def __init__(self, store: LedgerStore, settings: Settings | None = None) -> None:
        self.store = store
        self.settings = settings or Settings()

    async def redeem(self, account_id: str | None, item_id: str, request_id: str | None = None) -> RedeemResult:
        if not account_id:
            return RedeemResult(ok=False, error=LedgerError.NOT_AUTHENTICATED)

        try:
            item = get_reward(item_id)
        except KeyError:
            return RedeemResult(ok=False, error=LedgerError.INVALID_ARGUMENT, detail=f"unknown reward {item_id!r}")

        request_id = request_id or new_request_id()
        try:
            reply = await bounded(
                self.store.atomic_redeem(
                    account_id,
                    reward_id=item.id,
                    cost=item.cost,
                    request_id=request_id,
                ),
                self.settings.remote_timeout_seconds,
                shield=True,
            )
        except StoreRejected as e:
            log.info("Redeem rejected account=%s reward=%s: %s", account_id, item.id, e)
            return RedeemResult(ok=False, error=rejection_error(e), detail=str(e))
        except StoreUnavailable as e:
            log.warning("Redeem failed account=%s reward=%s request=%s: %s", account_id, item.id, request_id, e)
            return RedeemResult(ok=False, error=LedgerError.REMOTE_UNAVAILABLE, detail=str(e))

        if reply.status == "insufficient_funds":
            return RedeemResult(ok=False, coins=reply.coins, error=LedgerError.INSUFFICIENT_BALANCE)

        return RedeemResult(
            ok=True,
            replayed=reply.status == "replayed",
            voucher=reply.voucher,
            coins=reply.coins,
        )

    async def list_vouchers(self, account_id: str | None) -> VouchersResult:
        if not account_id:
            return VouchersResult(ok=False, error=LedgerError.NOT_AUTHENTICATED)
        try:
            vouchers = await bounded(self.store.list_vouchers(account_id), self.settings.remote_timeout_seconds)
        except StoreUnavailable as e:
            log.warning("Voucher list failed account=%s: %s", account_id, e)
            return VouchersResult(ok=False, error=LedgerError.REMOTE_UNAVAILABLE)
        return VouchersResult(ok=True, vouchers=tuple(vouchers))
