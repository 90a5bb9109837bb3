import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from ..config import DEFAULT_VOICE_ID, Settings
from .errors import SynthesisUnavailable

logger = logging.getLogger(__name__)

# TTS
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"
MODEL_ID = "eleven_monolingual_v1"
DEFAULT_VOICE_SETTINGS = {
  "stability": 0.5,
  "similarity_boost": 0.75,
  "style": 0.0,
  "use_speaker_boost": True,
}
STREAM_VOICE_SETTINGS = {
  "stability": 0.5,
  "similarity_boost": 0.75,
}

class ElevenLabsSynthesizer:
  # ElevenLabs 文本转语音（mp3）
  def __init__(
    self,
    api_key: str,
    default_voice_id: str = DEFAULT_VOICE_ID,
    *,
    timeout: float = 30.0,
    base_url: str = ELEVENLABS_BASE_URL,
    client: httpx.AsyncClient | None = None,
  ):
    self.api_key = api_key
    self.default_voice_id = default_voice_id or DEFAULT_VOICE_ID
    self.timeout = timeout
    self.base_url = base_url.rstrip("/")
    self._client = client

  @classmethod
  def from_settings(cls, settings: Settings) -> "ElevenLabsSynthesizer | None":
    if not settings.synthesis_enabled:
      logger.info("ElevenLabs API key not provided, speech synthesis disabled")
      return None
    logger.info("ElevenLabs service initialized (default voice %s)", settings.elevenlabs_voice_id)
    return cls(
      settings.elevenlabs_api_key,
      settings.elevenlabs_voice_id,
      timeout=settings.elevenlabs_timeout,
    )

  @property
  def _headers(self) -> dict[str, str]:
    return {
      "Accept": "audio/mpeg",
      "Content-Type": "application/json",
      "xi-api-key": self.api_key,
    }

  @asynccontextmanager
  async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
    if self._client is not None:
      yield self._client
      return
    async with httpx.AsyncClient(timeout=self.timeout) as client:
      yield client

  async def synthesize(
    self,
    text: str,
    voice_id: str | None = None,
    voice_settings: dict | None = None,
  ) -> bytes:
    voice = voice_id or self.default_voice_id
    payload = {
      "text": text,
      "model_id": MODEL_ID,
      "voice_settings": voice_settings or DEFAULT_VOICE_SETTINGS,
    }
    try:
      async with self._session() as client:
        response = await client.post(
          f"{self.base_url}/text-to-speech/{voice}",
          json=payload,
          headers=self._headers,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
      logger.error("ElevenLabs TTS error %s: %s", e.response.status_code, e.response.text[:300])
      raise SynthesisUnavailable(f"TTS conversion failed: HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
      logger.error("ElevenLabs TTS error: %s", e)
      raise SynthesisUnavailable(f"TTS conversion failed: {e}") from e
    except Exception as e:
      logger.exception("Unexpected ElevenLabs TTS error: %s", e)
      raise SynthesisUnavailable(f"TTS conversion failed: {e}") from e

    audio_bytes = response.content
    if not audio_bytes:
      raise SynthesisUnavailable("TTS conversion failed: no audio was received")
    return audio_bytes

  async def synthesize_stream(self, text: str, voice_id: str | None = None) -> AsyncIterator[bytes]:
    # 逐块返回，不缓冲整段音频；只能迭代一次
    voice = voice_id or self.default_voice_id
    payload = {
      "text": text,
      "model_id": MODEL_ID,
      "voice_settings": STREAM_VOICE_SETTINGS,
    }
    try:
      async with self._session() as client:
        async with client.stream(
          "POST",
          f"{self.base_url}/text-to-speech/{voice}/stream",
          json=payload,
          headers=self._headers,
        ) as response:
          if response.is_error:
            body = await response.aread()
            logger.error("ElevenLabs streaming error %s: %s", response.status_code, body[:300])
            raise SynthesisUnavailable(f"TTS streaming failed: HTTP {response.status_code}")
          async for chunk in response.aiter_bytes():
            if chunk:
              yield chunk
    except SynthesisUnavailable:
      raise
    except httpx.HTTPError as e:
      logger.error("ElevenLabs streaming error: %s", e)
      raise SynthesisUnavailable(f"TTS streaming failed: {e}") from e
    except Exception as e:
      logger.exception("Unexpected ElevenLabs streaming error: %s", e)
      raise SynthesisUnavailable(f"TTS streaming failed: {e}") from e

  async def list_voices(self) -> list[dict]:
    try:
      async with self._session() as client:
        response = await client.get(
          f"{self.base_url}/voices",
          headers={"xi-api-key": self.api_key},
        )
        response.raise_for_status()
        voices = response.json().get("voices", [])
    except httpx.HTTPError as e:
      logger.error("Error fetching voices: %s", e)
      raise SynthesisUnavailable("Failed to fetch voices") from e
    except Exception as e:
      logger.exception("Unexpected error fetching voices: %s", e)
      raise SynthesisUnavailable("Failed to fetch voices") from e
    return voices
