"""Function-calling catalogue offered to the model, and parsing of its tool calls."""

import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path

import jsonschema

from ..tools.dates import normalise_instant
from ..tools.errors import UpstreamModelError
from ..tools.models import (
    CreateEventCall,
    FunctionCallIntent,
    GetCurrentTimeCall,
    ListEventsCall,
    UnsupportedCall,
)

logger = logging.getLogger(__name__)

BUSINESS_DIR = Path(__file__).resolve().parent.parent / "business"

LIST_EVENTS = "listEvents"
CREATE_EVENT = "createEvent"
GET_CURRENT_TIME = "getCurrentTime"


@lru_cache(maxsize=4)
def _load_schema(name: str = "command_functions.json") -> dict:
    with open(BUSINESS_DIR / name, "r", encoding="utf-8") as f:
        return json.load(f)


def build_tools(schema: dict | None = None) -> list[dict]:
    """Build the OpenAI `tools` list from the function catalogue."""
    schema = schema or _load_schema()
    return [
        {
            "type": "function",
            "function": {
                "name": name,
                "description": definition["description"],
                "parameters": definition["parameters"],
            },
        }
        for name, definition in schema.items()
    ]


def decode_arguments(name: str, raw: str | None) -> dict:
    if not raw or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        if name not in _load_schema():
            # reported as an unknown function, not as bad arguments
            return {}
        raise UpstreamModelError(f"Model returned unparsable arguments for {name}: {e.msg}") from e
    if not isinstance(parsed, dict):
        if name not in _load_schema():
            return {}
        raise UpstreamModelError(f"Model returned non-object arguments for {name}")
    return parsed


def _instant(name: str, field: str, value: str, ref: datetime) -> str:
    try:
        return normalise_instant(value, ref)
    except ValueError as e:
        raise UpstreamModelError(f"Invalid {field} for {name}: {value!r}") from e


def build_intent(name: str, arguments: dict, ref: datetime) -> FunctionCallIntent:
    """
    Validate decoded arguments against the declared schema and return the
    matching variant. Names outside the catalogue become UnsupportedCall.
    """
    schema = _load_schema()
    if name not in schema:
        return UnsupportedCall(name=name, arguments=arguments)

    try:
        jsonschema.validate(arguments, schema[name]["parameters"])
    except jsonschema.ValidationError as e:
        raise UpstreamModelError(f"Invalid arguments for {name}: {e.message}") from e

    if name == LIST_EVENTS:
        return ListEventsCall(
            time_min=_instant(name, "timeMin", arguments["timeMin"], ref),
            time_max=_instant(name, "timeMax", arguments["timeMax"], ref),
            query=arguments.get("query") or None,
        )
    if name == CREATE_EVENT:
        return CreateEventCall(
            summary=arguments["summary"],
            start=_instant(name, "start", arguments["start"], ref),
            end=_instant(name, "end", arguments["end"], ref),
            description=arguments.get("description") or "",
            attendees=list(arguments.get("attendees") or []),
        )
    if name == GET_CURRENT_TIME:
        return GetCurrentTimeCall()
    return UnsupportedCall(name=name, arguments=arguments)
