"""Tests for GoogleCalendarAgent."""

from __future__ import annotations

import time
from unittest.mock import Mock

import pytest
from googleapiclient.errors import HttpError
from voice_command.config import Settings
from voice_command.tools.calendar_agent import GoogleCalendarAgent, normalise_event
from voice_command.tools.errors import CalendarUnavailable


def _service(list_response=None, insert_response=None, error=None):
    service = Mock()
    events = service.events.return_value
    if error is not None:
        events.list.return_value.execute.side_effect = error
        events.insert.return_value.execute.side_effect = error
    else:
        events.list.return_value.execute.return_value = list_response or {}
        events.insert.return_value.execute.return_value = insert_response or {}
    return service


class TestNormaliseEvent:
    def test_missing_title_and_optional_fields(self) -> None:
        event = normalise_event(
            {
                "id": "e1",
                "start": {"dateTime": "2026-10-15T09:00:00-04:00"},
                "end": {"dateTime": "2026-10-15T10:00:00-04:00"},
            }
        )
        assert event.summary == "No title"
        assert event.description == ""
        assert event.location == ""
        assert event.start == "2026-10-15T09:00:00-04:00"

    def test_all_day_event_keeps_date_strings(self) -> None:
        event = normalise_event(
            {"id": "e2", "summary": "Holiday", "start": {"date": "2026-10-15"}, "end": {"date": "2026-10-16"}}
        )
        assert event.start == "2026-10-15"
        assert event.end == "2026-10-16"

    def test_prefers_timed_value(self) -> None:
        event = normalise_event(
            {"start": {"dateTime": "2026-10-15T09:00:00Z", "date": "2026-10-15"}, "end": {}}
        )
        assert event.start == "2026-10-15T09:00:00Z"
        assert event.end is None


class TestListEvents:
    def test_requests_single_ordered_events(self) -> None:
        service = _service({"items": [{"id": "a", "summary": "Standup", "location": "Room 1"}]})
        agent = GoogleCalendarAgent(service=service)

        events = agent.list_events_sync("2026-10-15T00:00:00Z", "2026-10-16T00:00:00Z", "standup")

        service.events.return_value.list.assert_called_once_with(
            calendarId="primary",
            timeMin="2026-10-15T00:00:00Z",
            timeMax="2026-10-16T00:00:00Z",
            singleEvents=True,
            orderBy="startTime",
            q="standup",
        )
        assert [e.summary for e in events] == ["Standup"]
        assert events[0].location == "Room 1"

    def test_omits_empty_query(self) -> None:
        service = _service({})
        agent = GoogleCalendarAgent(service=service)

        assert agent.list_events_sync("a", "b") == []
        assert "q" not in service.events.return_value.list.call_args.kwargs

    def test_http_error_becomes_unavailable(self) -> None:
        error = HttpError(Mock(status=503, reason="Service Unavailable"), b"{}")
        agent = GoogleCalendarAgent(service=_service(error=error))

        with pytest.raises(CalendarUnavailable) as exc_info:
            agent.list_events_sync("a", "b")
        assert exc_info.value.__cause__ is error

    def test_unconfigured(self) -> None:
        agent = GoogleCalendarAgent.from_settings(Settings(timezone=Mock()))

        with pytest.raises(CalendarUnavailable):
            agent.list_events_sync("a", "b")


class TestCreateEvent:
    def test_wraps_attendees(self) -> None:
        service = _service(
            insert_response={
                "id": "new-1",
                "summary": "Review",
                "start": {"dateTime": "2026-10-15T14:00:00-04:00"},
                "end": {"dateTime": "2026-10-15T15:00:00-04:00"},
                "htmlLink": "https://calendar.google.com/event?eid=new-1",
            }
        )
        agent = GoogleCalendarAgent(service=service)

        created = agent.create_event_sync(
            "Review",
            "2026-10-15T14:00:00-04:00",
            "2026-10-15T15:00:00-04:00",
            attendees=["a@example.com", "b@example.com"],
        )

        body = service.events.return_value.insert.call_args.kwargs["body"]
        assert body["attendees"] == [{"email": "a@example.com"}, {"email": "b@example.com"}]
        assert body["start"] == {"dateTime": "2026-10-15T14:00:00-04:00"}
        assert body["description"] == ""
        assert created.id == "new-1"
        assert created.htmlLink.endswith("new-1")

    def test_failure(self) -> None:
        agent = GoogleCalendarAgent(service=_service(error=RuntimeError("socket closed")))

        with pytest.raises(CalendarUnavailable):
            agent.create_event_sync("x", "a", "b")


@pytest.mark.anyio
async def test_async_wrapper_runs_in_thread() -> None:
    agent = GoogleCalendarAgent(service=_service({"items": [{"summary": "Gym"}]}))

    events = await agent.list_events("a", "b")

    assert events[0].summary == "Gym"


@pytest.mark.anyio
async def test_timeout_becomes_unavailable() -> None:
    service = Mock()
    service.events.return_value.list.return_value.execute.side_effect = lambda: time.sleep(0.5)
    agent = GoogleCalendarAgent(service=service, timeout=0.05)

    with pytest.raises(CalendarUnavailable):
        await agent.list_events("a", "b")
