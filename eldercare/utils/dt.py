from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo


@dataclass(frozen=True, slots=True)
class TimeProvider:
    timezone: str = "Asia/Singapore"

    def now(self) -> datetime:
        return datetime.now(tz=ZoneInfo(self.timezone))

    def today(self) -> date:
        return self.now().date()
