from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Union

from pydantic import BaseModel

@dataclass(frozen=True)
class TimeWindow:
  # 半开区间 [start, end)
  start: datetime
  end: datetime

  @property
  def duration(self) -> timedelta:
    return self.end - self.start

# 模型选择的函数调用，每个受支持的函数一个变体
@dataclass
class ListEventsCall:
  time_min: str
  time_max: str
  query: str | None = None

@dataclass
class CreateEventCall:
  summary: str
  start: str
  end: str
  description: str = ""
  attendees: list[str] = field(default_factory=list)

@dataclass
class GetCurrentTimeCall:
  pass

@dataclass
class UnsupportedCall:
  name: str
  arguments: dict[str, Any] = field(default_factory=dict)

FunctionCallIntent = Union[ListEventsCall, CreateEventCall, GetCurrentTimeCall, UnsupportedCall]

@dataclass
class SynthesisOutcome:
  # 语音合成结果：失败时 audio 为 None，不影响文字回复
  voice_id: str | None
  audio: bytes | None = None
  error: str | None = None

  @property
  def succeeded(self) -> bool:
    return self.audio is not None

@dataclass
class CommandResult:
  # Dispatcher 的输出
  response: str
  user_id: str
  function_name: str | None = None
  synthesis: SynthesisOutcome | None = None

class CalendarEvent(BaseModel):
  id: str | None = None
  summary: str
  start: str | None = None
  end: str | None = None
  description: str = ""
  location: str = ""

class CreatedEvent(BaseModel):
  id: str | None = None
  summary: str | None = None
  start: str | None = None
  end: str | None = None
  htmlLink: str | None = None

class CommandRequest(BaseModel):
  # /api/process-command
  message: str | None = None
  user_id: str | None = None

class EnhancedCommandRequest(CommandRequest):
  # /api/process-command-enhanced
  voice_id: str | None = None
  use_elevenlabs: bool = True

class CommandResponse(BaseModel):
  response: str
  user_id: str

class EnhancedCommandResponse(CommandResponse):
  audio: str | None = None  # base64 mp3
  voice_used: str | None = None

class StreamTTSRequest(BaseModel):
  text: str | None = None
  voice_id: str | None = None

class WebhookRequest(BaseModel):
  text: str | None = None
  user_id: str | None = None

class WebhookResponse(BaseModel):
  response_text: str
