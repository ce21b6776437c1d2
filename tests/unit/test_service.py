"""Tests for the reconciliation loop in remote_days/service.py"""

import asyncio
from datetime import timedelta

import pytest

from remote_days.errors import AbsenceCreationError, ReasonNotFoundError, UserNotFoundError
from remote_days.models import Absence, Answer, RunOutcome
from remote_days.planner import month_window
from remote_days.service import PAGE_SIZE, RemoteWorkService
from tests.fakes import (
    BERLIN,
    FakeAbsenceClient,
    GatedAbsenceClient,
    ScriptedConsole,
    berlin,
    make_settings,
)

YES, NO = Answer.YES, Answer.NO


def existing(start, end, user_id="user-1") -> Absence:
    return Absence(id="existing", assigned_to_id=user_id, approver_id=user_id, start=start, end=end)


def filler(count: int):
    return [existing(berlin(2024, 1, 1), berlin(2024, 1, 2)) for _ in range(count)]


class TestFetchMonthAbsences:
    @pytest.mark.asyncio
    async def test_short_page_ends_pagination(self, settings, me):
        client = FakeAbsenceClient(user=me, pages=[filler(1000), filler(1000), filler(3)])
        service = RemoteWorkService(settings, client, ScriptedConsole())

        absences = await service.fetch_month_absences(me.id, month_window(berlin(2024, 2, 1), BERLIN))

        assert len(absences) == 2003
        assert [call["skip"] for call in client.fetch_calls] == [0, 1000, 2000]
        assert {call["limit"] for call in client.fetch_calls} == {PAGE_SIZE}

    @pytest.mark.asyncio
    async def test_full_page_followed_by_empty_page(self, settings, me):
        client = FakeAbsenceClient(user=me, pages=[filler(1000), []])
        service = RemoteWorkService(settings, client, ScriptedConsole())

        absences = await service.fetch_month_absences(me.id, month_window(berlin(2024, 2, 1), BERLIN))

        assert len(absences) == 1000
        assert len(client.fetch_calls) == 2

    @pytest.mark.asyncio
    async def test_empty_first_page(self, settings, me):
        client = FakeAbsenceClient(user=me, pages=[[]])
        service = RemoteWorkService(settings, client, ScriptedConsole())

        absences = await service.fetch_month_absences(me.id, month_window(berlin(2024, 2, 1), BERLIN))

        assert absences == []
        assert len(client.fetch_calls) == 1

    @pytest.mark.asyncio
    async def test_page_failure_propagates(self, settings, me):
        client = FakeAbsenceClient(user=me, pages=[filler(1000), filler(1000)])
        client.fail_fetch_on_call = 2
        service = RemoteWorkService(settings, client, ScriptedConsole())

        with pytest.raises(ConnectionError):
            await service.fetch_month_absences(me.id, month_window(berlin(2024, 2, 1), BERLIN))
        assert len(client.fetch_calls) == 2

    @pytest.mark.asyncio
    async def test_window_is_passed_through(self, settings, client, me):
        service = RemoteWorkService(settings, client, ScriptedConsole())
        window = month_window(berlin(2024, 2, 1), BERLIN)

        await service.fetch_month_absences(me.id, window)

        call = client.fetch_calls[0]
        assert (call["user_id"], call["lower"], call["upper"]) == (me.id, window.lower, window.upper)


class TestRun:
    @pytest.mark.asyncio
    async def test_decline_creates_nothing_and_stops(self, me):
        settings = make_settings("monday")
        client = FakeAbsenceClient(user=me, absences=[existing(berlin(2024, 2, 12), berlin(2024, 2, 13))])
        console = ScriptedConsole([NO])
        service = RemoteWorkService(settings, client, console)

        outcome = await service.run(berlin(2024, 2, 10, 9))

        assert outcome is RunOutcome.CANCELLED
        assert client.create_calls == []
        assert console.lines[1:4] == ["Mon 05.02.2024", "Mon 19.02.2024", "Mon 26.02.2024"]
        assert console.questions == ['Create 3 "Remote Work" absence(s)?']
        assert len(client.fetch_calls) == 1
        assert "Done" not in console.lines

    @pytest.mark.asyncio
    async def test_accept_creates_one_absence_per_day(self, me):
        settings = make_settings("friday")
        client = FakeAbsenceClient(user=me)
        console = ScriptedConsole([YES, NO])
        service = RemoteWorkService(settings, client, console)

        outcome = await service.run(berlin(2024, 3, 4, 16, 20))

        assert outcome is RunOutcome.COMPLETED
        assert len(client.create_calls) == 5
        starts = sorted(call["start"] for call in client.create_calls)
        assert [start.day for start in starts] == [1, 8, 15, 22, 29]
        for call in client.create_calls:
            assert call["assignee_id"] == call["approver_id"] == me.id
            assert call["reason_id"] == "reason-remote"
            assert call["start"].tzinfo is BERLIN
            assert (call["start"].hour, call["start"].minute) == (0, 0)
            assert call["end"] == call["start"] + timedelta(days=1)
        assert console.questions[-1] == 'Reconcile "Remote Work" for 04.2024?'
        assert console.lines[-2:] == [settings.calendar_url, "Done"]

    @pytest.mark.asyncio
    async def test_month_without_missing_days(self, me):
        settings = make_settings("monday")
        client = FakeAbsenceClient(user=me, absences=[existing(berlin(2024, 2, 1), berlin(2024, 3, 1))])
        console = ScriptedConsole([NO])
        service = RemoteWorkService(settings, client, console)

        outcome = await service.run(berlin(2024, 2, 10, 9))

        assert outcome is RunOutcome.COMPLETED
        assert console.lines[0] == 'No new "Remote Work" absences found for 02.2024'
        assert console.questions == ['Reconcile "Remote Work" for 03.2024?']
        assert client.create_calls == []

    @pytest.mark.asyncio
    async def test_rolls_over_into_next_year(self, me):
        settings = make_settings("monday")
        client = FakeAbsenceClient(user=me)
        console = ScriptedConsole([YES, YES, NO])
        service = RemoteWorkService(settings, client, console)

        await service.run(berlin(2024, 12, 5, 9), dry_run=True)

        assert console.questions == [
            'Reconcile "Remote Work" for 01.2025?',
            'Reconcile "Remote Work" for 02.2025?',
            'Reconcile "Remote Work" for 03.2025?',
        ]
        assert client.fetch_calls[1]["lower"] == berlin(2024, 12, 31)
        assert client.fetch_calls[1]["upper"] == berlin(2025, 2, 1)
        january = console.lines.index("Absences that would be created for 01.2025:")
        assert console.lines[january + 1 : january + 5] == [
            "Mon 06.01.2025",
            "Mon 13.01.2025",
            "Mon 20.01.2025",
            "Mon 27.01.2025",
        ]
        assert client.create_calls == []

    @pytest.mark.asyncio
    async def test_end_of_month_reference_advances_one_month(self, me):
        settings = make_settings("monday")
        client = FakeAbsenceClient(user=me)
        console = ScriptedConsole([YES, NO])
        service = RemoteWorkService(settings, client, console)

        await service.run(berlin(2024, 1, 31, 9), dry_run=True)

        assert [call["upper"] for call in client.fetch_calls] == [berlin(2024, 2, 1), berlin(2024, 3, 1)]
        assert console.questions[0] == 'Reconcile "Remote Work" for 02.2024?'

    @pytest.mark.asyncio
    async def test_created_absences_are_skipped_next_time(self, me):
        settings = make_settings("friday")
        client = FakeAbsenceClient(user=me)
        service = RemoteWorkService(settings, client, ScriptedConsole([YES, NO]))
        await service.run(berlin(2024, 3, 4, 9))

        console = ScriptedConsole([NO])
        await RemoteWorkService(settings, client, console).run(berlin(2024, 3, 4, 9))

        assert console.lines[0] == 'No new "Remote Work" absences found for 03.2024'
        assert len(client.create_calls) == 5

    @pytest.mark.asyncio
    async def test_unknown_user(self, settings):
        client = FakeAbsenceClient(user=None)
        service = RemoteWorkService(settings, client, ScriptedConsole())

        with pytest.raises(UserNotFoundError, match="me@example.com"):
            await service.run(berlin(2024, 2, 10))
        assert client.fetch_calls == []

    @pytest.mark.asyncio
    async def test_missing_reason_aborts_run(self, settings, me):
        client = FakeAbsenceClient(user=me, reasons=[])
        service = RemoteWorkService(settings, client, ScriptedConsole([YES]))

        with pytest.raises(ReasonNotFoundError):
            await service.run(berlin(2024, 2, 10))
        assert client.fetch_calls == []

    @pytest.mark.asyncio
    async def test_reason_is_resolved_once(self, settings, client):
        console = ScriptedConsole([YES, YES, NO])
        service = RemoteWorkService(settings, client, console)

        await service.run(berlin(2024, 2, 10), dry_run=True)

        assert len(client.fetch_calls) == 3
        assert client.reason_lookups == ["Remote Work"]
        assert client.user_lookups == ["me@example.com"]


class TestCreateAbsences:
    @pytest.mark.asyncio
    async def test_requests_are_all_in_flight_together(self, settings, me):
        days = [berlin(2024, 2, day, 9) for day in (5, 7, 12, 14, 19)]
        client = GatedAbsenceClient(user=me, expected=len(days))
        service = RemoteWorkService(settings, client, ScriptedConsole())

        results = await asyncio.wait_for(service.create_absences(me, days), timeout=5)

        assert client.peak_in_flight == len(days)
        assert all(result.ok for result in results)
        assert len(client.create_calls) == len(days)

    @pytest.mark.asyncio
    async def test_failing_day_does_not_stop_siblings(self, settings, me):
        days = [berlin(2024, 2, day, 9) for day in (5, 7, 12, 14)]
        client = GatedAbsenceClient(user=me, expected=len(days))
        client.fail_days = {berlin(2024, 2, 7).date()}
        service = RemoteWorkService(settings, client, ScriptedConsole())

        with pytest.raises(AbsenceCreationError) as excinfo:
            await asyncio.wait_for(service.create_absences(me, days), timeout=5)

        assert client.peak_in_flight == len(days)
        assert [result.day.day for result in excinfo.value.failed] == [7]
        assert [result.day.day for result in excinfo.value.created] == [5, 12, 14]
        assert sorted(absence.start.day for absence in client.absences) == [5, 12, 14]

    @pytest.mark.asyncio
    async def test_partial_failure_is_reported(self, me):
        settings = make_settings("friday")
        client = FakeAbsenceClient(user=me)
        client.fail_days = {berlin(2024, 3, 15).date()}
        console = ScriptedConsole([YES])
        service = RemoteWorkService(settings, client, console)

        with pytest.raises(AbsenceCreationError) as excinfo:
            await service.run(berlin(2024, 3, 4, 9))

        error = excinfo.value
        assert len(client.create_calls) == 5
        assert [result.day.day for result in error.failed] == [15]
        assert [result.day.day for result in error.created] == [1, 8, 22, 29]
        assert "1 of 5" in str(error)
        assert any(line.startswith("Failed to create absence for Fri 15.03.2024") for line in console.lines)
        assert sum(line.startswith("Created absence for") for line in console.lines) == 4

    @pytest.mark.asyncio
    async def test_results_follow_day_order(self, settings, client, me):
        service = RemoteWorkService(settings, client, ScriptedConsole())
        days = [berlin(2024, 2, 5, 9), berlin(2024, 2, 7, 9)]

        results = await service.create_absences(me, days)

        assert [result.day for result in results] == days
        assert all(result.ok and result.absence is not None for result in results)


class TestPreviewMonth:
    @pytest.mark.asyncio
    async def test_preview_does_not_prompt_or_create(self, settings, me):
        client = FakeAbsenceClient(user=me, absences=[existing(berlin(2024, 2, 5), berlin(2024, 2, 8))])
        console = ScriptedConsole()
        service = RemoteWorkService(settings, client, console)

        plan = await service.preview_month(berlin(2024, 2, 10, 9))

        assert plan.label == "02.2024"
        assert len(plan.remote_days) == 8
        assert [day.day for day in plan.uncovered_days] == [12, 14, 19, 21, 26, 28]
        assert plan.existing_absences == 1
        assert console.questions == [] and console.lines == []
        assert client.create_calls == []
