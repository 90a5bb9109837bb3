import os
from dataclasses import dataclass, field
from datetime import tzinfo

from .utils.timezone import load_timezone

DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"  # Bella
DEFAULT_REDIRECT_URI = "http://localhost:3000/auth/google/callback"


def _int_env(name: str, default: int) -> int:
  raw = os.getenv(name)
  if raw is None:
    return default
  try:
    return int(raw)
  except ValueError:
    return default


def _float_env(name: str, default: float) -> float:
  raw = os.getenv(name)
  if raw is None:
    return default
  try:
    return float(raw)
  except ValueError:
    return default


def _list_env(name: str, default: str) -> list[str]:
  raw = os.getenv(name, default)
  return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
  # 启动时读取一次，之后只读
  openai_api_key: str | None = None
  openai_model: str = "gpt-4"
  openai_timeout: float = 30.0

  google_client_id: str | None = None
  google_client_secret: str | None = None
  google_redirect_uri: str = DEFAULT_REDIRECT_URI
  google_refresh_token: str | None = None
  calendar_timeout: float = 20.0

  elevenlabs_api_key: str | None = None
  elevenlabs_voice_id: str = DEFAULT_VOICE_ID
  elevenlabs_timeout: float = 30.0

  timezone: tzinfo = field(default_factory=load_timezone)
  host: str = "0.0.0.0"
  port: int = 3000
  cors_allow_origins: list[str] = field(default_factory=lambda: ["*"])

  @property
  def calendar_enabled(self) -> bool:
    return bool(self.google_refresh_token)

  @property
  def synthesis_enabled(self) -> bool:
    return bool(self.elevenlabs_api_key)

  @classmethod
  def from_env(cls) -> "Settings":
    return cls(
      openai_api_key=os.getenv("OPENAI_API_KEY"),
      openai_model=os.getenv("OPENAI_MODEL") or "gpt-4",
      openai_timeout=_float_env("OPENAI_TIMEOUT_SECONDS", 30.0),
      google_client_id=os.getenv("GOOGLE_CLIENT_ID"),
      google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET"),
      google_redirect_uri=os.getenv("GOOGLE_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
      google_refresh_token=os.getenv("GOOGLE_REFRESH_TOKEN") or None,
      calendar_timeout=_float_env("GOOGLE_CALENDAR_TIMEOUT_SECONDS", 20.0),
      elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or None,
      elevenlabs_voice_id=os.getenv("ELEVENLABS_VOICE_ID") or DEFAULT_VOICE_ID,
      elevenlabs_timeout=_float_env("ELEVENLABS_TIMEOUT_SECONDS", 30.0),
      timezone=load_timezone(),
      host=os.getenv("HOST", "0.0.0.0"),
      port=_int_env("PORT", 3000),
      cors_allow_origins=_list_env("CORS_ALLOW_ORIGINS", "*"),
    )
