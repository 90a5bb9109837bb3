"""Turn one utterance into a spoken-style reply via OpenAI function calling."""

import json
import logging
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable

import openai
from openai import AsyncOpenAI

from ..config import Settings
from ..tools.calendar_agent import GoogleCalendarAgent
from ..tools.dates import find_relative_cue, resolve_relative_window
from ..tools.errors import InvalidRequest, SynthesisUnavailable, UnknownFunction, UpstreamModelError
from ..tools.models import (
    CommandRequest,
    CommandResult,
    CreateEventCall,
    EnhancedCommandRequest,
    FunctionCallIntent,
    GetCurrentTimeCall,
    ListEventsCall,
    SynthesisOutcome,
    UnsupportedCall,
)
from ..tools.speech import ElevenLabsSynthesizer
from ..utils.timezone import TIMEZONE, zone_name
from . import functions

logger = logging.getLogger(__name__)

PROMPT_DIR = Path(__file__).resolve().parent / "prompt"

CLOSING_STANDARD = "Be conversational and natural in your responses, as they will be spoken aloud."
CLOSING_CONCISE = "Keep responses concise and conversational for text-to-speech."


@lru_cache(maxsize=4)
def _load_prompt(name: str) -> str:
    with open(PROMPT_DIR / name, "r", encoding="utf-8") as f:
        return f.read().strip()


class CommandDispatcher:
    def __init__(
        self,
        client: AsyncOpenAI | None,
        calendar: GoogleCalendarAgent,
        synthesizer: ElevenLabsSynthesizer | None = None,
        *,
        model: str = "gpt-4",
        tz: tzinfo = TIMEZONE,
        clock: Callable[[], datetime] | None = None,
        client_factory: Callable[[], AsyncOpenAI] | None = None,
    ):
        self._client = client
        self._client_factory = client_factory
        self.calendar = calendar
        self.synthesizer = synthesizer
        self.model = model
        self.tz = tz
        self._clock = clock or (lambda: datetime.now(self.tz))

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommandDispatcher":
        def client_factory() -> AsyncOpenAI:
            return AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout, max_retries=0)

        return cls(
            None,
            GoogleCalendarAgent.from_settings(settings),
            ElevenLabsSynthesizer.from_settings(settings),
            model=settings.openai_model,
            tz=settings.timezone,
            client_factory=client_factory,
        )

    @property
    def client(self) -> AsyncOpenAI:
        # built on first use; a missing OPENAI_API_KEY only fails the request
        if self._client is None:
            if self._client_factory is None:
                raise UpstreamModelError("OpenAI client not configured")
            try:
                self._client = self._client_factory()
            except openai.OpenAIError as e:
                logger.error("OpenAI client unavailable: %s", e)
                raise UpstreamModelError(f"OpenAI client unavailable: {e}") from e
        return self._client

    def now(self) -> datetime:
        return self._clock()

    async def handle(self, request: CommandRequest) -> CommandResult:
        """
        Run one command through the pipeline:
        intent call -> optional function -> final call -> optional synthesis.
        An EnhancedCommandRequest gets concise prompts and, when asked for, audio.
        """
        message = (request.message or "").strip()
        if not message:
            raise InvalidRequest("Message is required")

        enhanced = isinstance(request, EnhancedCommandRequest)
        user_id = request.user_id or "anonymous"
        logger.info("Processing command for %s: %r", user_id, message[:200])

        current_dt = self.now()
        system_prompt = _load_prompt("command_system.txt").format(
            current_datetime=current_dt.isoformat(),
            timezone_name=zone_name(self.tz),
            closing=CLOSING_CONCISE if enhanced else CLOSING_STANDARD,
        )
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ]

        response = await self._complete(messages, tools=functions.build_tools())
        reply = response.choices[0].message
        function_name = None

        if not reply.tool_calls:
            final_response = reply.content or ""
        else:
            tool_call = reply.tool_calls[0]
            function_name = tool_call.function.name
            arguments = functions.decode_arguments(function_name, tool_call.function.arguments)

            if function_name == functions.LIST_EVENTS:
                cue = find_relative_cue(message)
                if cue:
                    window = resolve_relative_window(cue, current_dt)
                    arguments["timeMin"] = window.start.isoformat()
                    arguments["timeMax"] = window.end.isoformat()

            intent = functions.build_intent(function_name, arguments, current_dt)
            logger.info("Calling function: %s %s", function_name, arguments)
            result = await self.execute(intent)

            final_prompt = "final_reply_concise.txt" if enhanced else "final_reply.txt"
            follow_up = await self._complete([
                {"role": "system", "content": _load_prompt(final_prompt)},
                {"role": "user", "content": message},
                {
                    "role": "assistant",
                    "content": reply.content,
                    "tool_calls": [
                        {
                            "id": tool_call.id,
                            "type": "function",
                            "function": {
                                "name": function_name,
                                "arguments": tool_call.function.arguments or "{}",
                            },
                        }
                    ],
                },
                {
                    "role": "tool",
                    "tool_call_id": tool_call.id,
                    "content": json.dumps(result, ensure_ascii=False, default=str),
                },
            ])
            final_response = follow_up.choices[0].message.content or ""

        logger.info("Final response (%d chars): %r", len(final_response), final_response[:200])

        synthesis = None
        if enhanced:
            if request.use_elevenlabs and self.synthesizer is not None:
                synthesis = await self.synthesize_reply(final_response, request.voice_id)
            else:
                synthesis = SynthesisOutcome(voice_id=self.voice_for(request.voice_id))

        return CommandResult(
            response=final_response,
            user_id=user_id,
            function_name=function_name,
            synthesis=synthesis,
        )

    async def execute(self, intent: FunctionCallIntent) -> Any:
        if isinstance(intent, ListEventsCall):
            events = await self.calendar.list_events(intent.time_min, intent.time_max, intent.query)
            return [event.model_dump() for event in events]
        if isinstance(intent, CreateEventCall):
            created = await self.calendar.create_event(
                intent.summary,
                intent.start,
                intent.end,
                intent.description,
                intent.attendees,
            )
            return created.model_dump()
        if isinstance(intent, GetCurrentTimeCall):
            return {
                "currentTime": self.now().astimezone(timezone.utc).isoformat(),
                "timezone": zone_name(self.tz),
            }
        if isinstance(intent, UnsupportedCall):
            raise UnknownFunction(intent.name)
        raise UnknownFunction(type(intent).__name__)

    def voice_for(self, voice_id: str | None) -> str | None:
        if voice_id:
            return voice_id
        return self.synthesizer.default_voice_id if self.synthesizer else None

    async def synthesize_reply(self, text: str, voice_id: str | None = None) -> SynthesisOutcome:
        voice = self.voice_for(voice_id)
        try:
            audio_bytes = await self.synthesizer.synthesize(text, voice)
        except SynthesisUnavailable as e:
            logger.exception("ElevenLabs TTS failed, falling back to text response: %s", e)
            return SynthesisOutcome(voice_id=voice, error=e.message)
        return SynthesisOutcome(voice_id=voice, audio=audio_bytes)

    async def _complete(self, messages: list[dict], tools: list[dict] | None = None):
        kwargs: dict[str, Any] = dict(model=self.model, messages=messages)
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            logger.exception("OpenAI request failed: %s", e)
            raise UpstreamModelError(f"OpenAI request failed: {e}") from e
        if not response.choices:
            raise UpstreamModelError("OpenAI returned no choices")
        return response
