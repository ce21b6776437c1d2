"""Core orchestration logic for Remote Days."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from .absence_client import AbsenceClient
from .config import Settings
from .console import Console
from .errors import AbsenceCreationError, ReasonNotFoundError, UserNotFoundError
from .models import (
    Absence,
    Answer,
    CreationResult,
    MonthPlan,
    MonthWindow,
    Reason,
    RunOutcome,
    User,
)
from .planner import (
    day_bounds,
    month_label,
    month_window,
    remote_days_for_month,
    shift_months,
    uncovered_days,
)

PAGE_SIZE = 1000

logger = logging.getLogger(__name__)


def format_day(day: datetime) -> str:
    return day.strftime("%a %d.%m.%Y")


class RemoteWorkService:
    """Reconciles the configured remote weekdays with absence.io, month by month."""

    def __init__(self, settings: Settings, client: AbsenceClient, console: Console) -> None:
        self.settings = settings
        self.client = client
        self.console = console
        self.zone = settings.timezone
        self._user: Optional[User] = None
        self._reason: Optional[Reason] = None

    # region Lookups
    async def resolve_user(self) -> User:
        if self._user is None:
            user = await self.client.find_user_by_email(self.settings.email)
            if user is None:
                raise UserNotFoundError(self.settings.email)
            logger.info("Resolved %s to user %s", self.settings.email, user.id)
            self._user = user
        return self._user

    async def resolve_reason(self) -> Reason:
        if self._reason is None:
            reason = await self.client.find_reason_by_name(self.settings.reason_name)
            if reason is None:
                raise ReasonNotFoundError(self.settings.reason_name)
            self._reason = reason
        return self._reason

    async def fetch_month_absences(self, user_id: str, window: MonthWindow) -> List[Absence]:
        """Collect every page of absences; a short page is the last one."""

        absences: List[Absence] = []
        page = 0
        while True:
            records = await self.client.fetch_absences(
                user_id,
                window.lower,
                window.upper,
                limit=PAGE_SIZE,
                skip=page * PAGE_SIZE,
            )
            absences.extend(records)
            page += 1
            if len(records) < PAGE_SIZE:
                break
        logger.debug("Fetched %d absence(s) in %d page(s)", len(absences), page)
        return absences

    # endregion

    # region Planning
    def localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self.zone)
        return value.astimezone(self.zone)

    async def plan_month(self, user: User, anchor: datetime) -> MonthPlan:
        await self.resolve_reason()
        window = month_window(anchor, self.zone)
        absences = await self.fetch_month_absences(user.id, window)
        days = remote_days_for_month(anchor, self.settings.remote_weekdays)
        return MonthPlan(
            label=month_label(anchor),
            window=window,
            remote_days=days,
            uncovered_days=uncovered_days(days, absences),
            existing_absences=len(absences),
        )

    async def preview_month(self, anchor: Optional[datetime] = None) -> MonthPlan:
        """Plan a single month without prompting or creating anything."""

        anchor = self.localize(anchor or datetime.now(self.zone))
        user = await self.resolve_user()
        return await self.plan_month(user, anchor)

    # endregion

    # region Creation
    async def _create_one(self, user: User, reason: Reason, day: datetime) -> Absence:
        start, end = day_bounds(day, self.zone)
        absence = await self.client.create_absence(
            assignee_id=user.id,
            approver_id=user.id,
            start=start,
            end=end,
            reason_id=reason.id,
        )
        self.console.print_line(f"Created absence for {format_day(day)}")
        return absence

    async def create_absences(self, user: User, days: List[datetime]) -> List[CreationResult]:
        """Create one absence per day concurrently and collect every outcome.

        Raises ``AbsenceCreationError`` once all requests have finished if any
        of them failed. Absences that were created are left in place.
        """

        reason = await self.resolve_reason()
        outcomes = await asyncio.gather(
            *(self._create_one(user, reason, day) for day in days),
            return_exceptions=True,
        )
        results: List[CreationResult] = []
        for day, outcome in zip(days, outcomes):
            if isinstance(outcome, BaseException):
                logger.error("Creating absence for %s failed: %s", day.date(), outcome)
                self.console.print_line(f"Failed to create absence for {format_day(day)}: {outcome}")
                results.append(CreationResult(day=day, error=outcome))
            else:
                results.append(CreationResult(day=day, absence=outcome))
        if any(not result.ok for result in results):
            raise AbsenceCreationError(results)
        return results

    # endregion

    async def run(self, reference: Optional[datetime] = None, *, dry_run: bool = False) -> RunOutcome:
        """Reconcile month after month until the operator stops."""

        reference = self.localize(reference or datetime.now(self.zone))
        user = await self.resolve_user()

        offset = 0
        while True:
            anchor = shift_months(reference, offset)
            plan = await self.plan_month(user, anchor)

            if not plan.uncovered_days:
                self.console.print_line(
                    f'No new "{self.settings.reason_name}" absences found for {plan.label}'
                )
            elif dry_run:
                self.console.print_line(f"Absences that would be created for {plan.label}:")
                for day in plan.uncovered_days:
                    self.console.print_line(format_day(day))
            else:
                self.console.print_line(f"Days without an absence in {plan.label}:")
                for day in plan.uncovered_days:
                    self.console.print_line(format_day(day))
                question = f'Create {len(plan.uncovered_days)} "{self.settings.reason_name}" absence(s)?'
                if await self.console.confirm(question) is Answer.NO:
                    self.console.print_line("Ok, nothing was created.")
                    return RunOutcome.CANCELLED
                await self.create_absences(user, plan.uncovered_days)

            offset += 1
            upcoming = month_label(shift_months(reference, offset))
            answer = await self.console.confirm(
                f'Reconcile "{self.settings.reason_name}" for {upcoming}?'
            )
            if answer is Answer.NO:
                break

        self.console.print_line(self.settings.calendar_url)
        self.console.print_line("Done")
        return RunOutcome.COMPLETED


__all__ = ["RemoteWorkService", "PAGE_SIZE", "format_day"]
