"""Shared fixtures: a fixed clock, OpenAI response doubles and gateway doubles."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
from voice_command.chat.command_dispatcher import CommandDispatcher
from voice_command.tools.models import CalendarEvent, CreatedEvent

EASTERN = timezone(timedelta(hours=-4))

# Wednesday afternoon
FIXED_NOW = datetime(2026, 10, 14, 15, 30, tzinfo=EASTERN)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def make_completion(content: str | None = None, tool_name: str | None = None, arguments: dict | str | None = None):
    """Build an object shaped like an OpenAI chat completion."""
    tool_calls = None
    if tool_name is not None:
        raw = arguments if isinstance(arguments, str) else json.dumps(arguments or {})
        tool_calls = [
            SimpleNamespace(
                id="call_1",
                type="function",
                function=SimpleNamespace(name=tool_name, arguments=raw),
            )
        ]
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])


@pytest.fixture
def openai_client():
    client = Mock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def calendar():
    agent = Mock()
    agent.list_events = AsyncMock(
        return_value=[
            CalendarEvent(
                id="evt-1",
                summary="Dentist",
                start="2026-10-15T09:00:00-04:00",
                end="2026-10-15T10:00:00-04:00",
            )
        ]
    )
    agent.create_event = AsyncMock(
        return_value=CreatedEvent(
            id="evt-2",
            summary="Lunch with Sam",
            start="2026-10-15T12:00:00-04:00",
            end="2026-10-15T13:00:00-04:00",
            htmlLink="https://calendar.google.com/event?eid=evt-2",
        )
    )
    return agent


@pytest.fixture
def synthesizer():
    synth = Mock()
    synth.default_voice_id = "default-voice"
    synth.synthesize = AsyncMock(return_value=b"ID3-audio")
    return synth


@pytest.fixture
def dispatcher(openai_client, calendar, synthesizer):
    return CommandDispatcher(
        openai_client,
        calendar,
        synthesizer,
        model="gpt-test",
        tz=EASTERN,
        clock=lambda: FIXED_NOW,
    )
