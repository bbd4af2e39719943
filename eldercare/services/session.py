# eldercare/services/session.py
from __future__ import annotations

from dataclasses import dataclass

from eldercare.database.models import Account
from eldercare.services.results import NotAuthenticated


@dataclass(slots=True)
class SessionContext:
    """
    The signed-in account for one app session. Passed explicitly to whoever
    needs it; logout() clears every field so no stale account id survives.
    """

    account_id: str | None = None
    phone: str | None = None
    onboarding_completed: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.account_id)

    def login(self, account: Account) -> None:
        self.account_id = account.id
        self.phone = account.phone
        self.onboarding_completed = bool(account.onboarding_completed)

    def logout(self) -> None:
        self.account_id = None
        self.phone = None
        self.onboarding_completed = False

    def require_account_id(self) -> str:
        if not self.account_id:
            raise NotAuthenticated("no account is signed in")
        return self.account_id
