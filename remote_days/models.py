"""Dataclasses representing Remote Days domain models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True, slots=True)
class Reason:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Absence:
    id: str
    assigned_to_id: str
    approver_id: str | None
    start: datetime
    end: datetime
    reason_id: str | None = None

    def covers(self, instant: datetime) -> bool:
        """Inclusive at both ends."""

        return self.start <= instant <= self.end


@dataclass(frozen=True, slots=True)
class MonthWindow:
    """Instant bounds used to query the absences of one month."""

    lower: datetime
    upper: datetime


@dataclass(slots=True)
class MonthPlan:
    label: str
    window: MonthWindow
    remote_days: List[datetime]
    uncovered_days: List[datetime]
    existing_absences: int


@dataclass(slots=True)
class CreationResult:
    day: datetime
    absence: Optional[Absence] = None
    error: Optional[BaseException] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None


class Answer(enum.Enum):
    YES = "yes"
    NO = "no"


class RunOutcome(enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


__all__ = [
    "User",
    "Reason",
    "Absence",
    "MonthWindow",
    "MonthPlan",
    "CreationResult",
    "Answer",
    "RunOutcome",
]
