# eldercare/services/messages.py
from __future__ import annotations

from eldercare.services.results import CheckinResult, LedgerError, RedeemResult

TRY_AGAIN = "Something went wrong. Please try again."

_ERROR_TEXT = {
    LedgerError.NOT_AUTHENTICATED: "Please sign in first.",
    LedgerError.INSUFFICIENT_BALANCE: "Not enough coins for this reward yet. Keep checking in daily!",
    LedgerError.REMOTE_UNAVAILABLE: TRY_AGAIN,
    LedgerError.INVALID_ARGUMENT: "This request could not be processed.",
}


def coins_label(n: int) -> str:
    return f"{n} coin" if n == 1 else f"{n} coins"


def describe_error(error: LedgerError | None) -> str:
    if error is None:
        return TRY_AGAIN
    return _ERROR_TEXT.get(error, TRY_AGAIN)


def describe_checkin(res: CheckinResult) -> str:
    if not res.ok:
        return describe_error(res.error)

    if res.already:
        return "✅ You have already checked in today. Come back tomorrow!"

    text = f"🔥 Check-in successful! +{coins_label(res.coins_awarded)}."
    if res.status is not None:
        text += f" Balance: {coins_label(res.status.coins)}. Streak: {res.status.streak} day(s)."
    return text


def describe_redeem(res: RedeemResult) -> str:
    if not res.ok:
        return describe_error(res.error)

    code = res.voucher.code if res.voucher else "-"
    return f"🎉 Redeemed! Your voucher code is {code}."
