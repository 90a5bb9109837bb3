import asyncio
import logging
from typing import Any, Iterable

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import Settings
from .errors import CalendarUnavailable
from .models import CalendarEvent, CreatedEvent

CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
CALENDAR_ID = "primary"

logger = logging.getLogger(__name__)

def _pick_time(value: dict | None) -> str | None:
  # 优先 dateTime，全天事件只有 date
  if not value:
    return None
  return value.get("dateTime") or value.get("date")

def normalise_event(item: dict[str, Any]) -> CalendarEvent:
  return CalendarEvent(
    id=item.get("id"),
    summary=item.get("summary") or "No title",
    start=_pick_time(item.get("start")),
    end=_pick_time(item.get("end")),
    description=item.get("description") or "",
    location=item.get("location") or "",
  )

class GoogleCalendarAgent:
  # Google Calendar v3 API，同步客户端放到线程里执行
  def __init__(
    self,
    credentials: Credentials | None = None,
    *,
    service: Any = None,
    timeout: float = 20.0,
  ):
    self._credentials = credentials
    self._service = service
    self.timeout = timeout

  @classmethod
  def from_settings(cls, settings: Settings) -> "GoogleCalendarAgent":
    credentials = None
    if settings.calendar_enabled:
      credentials = Credentials(
        token=None,
        refresh_token=settings.google_refresh_token,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        token_uri=TOKEN_URI,
        scopes=CALENDAR_SCOPES,
      )
    else:
      logger.warning("GOOGLE_REFRESH_TOKEN not set; calendar functions will be unavailable")
    return cls(credentials, timeout=settings.calendar_timeout)

  @property
  def service(self) -> Any:
    if self._service is None:
      if self._credentials is None:
        raise CalendarUnavailable("Google Calendar is not configured. Visit /auth/google to obtain a refresh token.")
      self._service = build("calendar", "v3", credentials=self._credentials, cache_discovery=False)
    return self._service

  async def list_events(self, time_min: str, time_max: str, query: str | None = None) -> list[CalendarEvent]:
    return await self._run(self.list_events_sync, time_min, time_max, query)

  async def create_event(
    self,
    summary: str,
    start: str,
    end: str,
    description: str = "",
    attendees: Iterable[str] = (),
  ) -> CreatedEvent:
    return await self._run(self.create_event_sync, summary, start, end, description, list(attendees))

  async def _run(self, func, *args):
    try:
      return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout)
    except asyncio.TimeoutError as e:
      logger.error("Google Calendar call timed out after %ss", self.timeout)
      raise CalendarUnavailable(f"Google Calendar timed out after {self.timeout}s") from e

  def list_events_sync(self, time_min: str, time_max: str, query: str | None = None) -> list[CalendarEvent]:
    params = {
      "calendarId": CALENDAR_ID,
      "timeMin": time_min,
      "timeMax": time_max,
      "singleEvents": True,
      "orderBy": "startTime",
    }
    if query:
      params["q"] = query

    logger.info("Listing events %s -> %s (q=%r)", time_min, time_max, query)
    try:
      response = self.service.events().list(**params).execute()
    except CalendarUnavailable:
      raise
    except (HttpError, GoogleAuthError) as e:
      logger.exception("Error fetching calendar events: %s", e)
      raise CalendarUnavailable("Failed to fetch calendar events") from e
    except Exception as e:
      logger.exception("Unexpected error fetching calendar events: %s", e)
      raise CalendarUnavailable("Failed to fetch calendar events") from e

    items = response.get("items") or []
    logger.info("Fetched %d events", len(items))
    return [normalise_event(item) for item in items]

  def create_event_sync(
    self,
    summary: str,
    start: str,
    end: str,
    description: str = "",
    attendees: list[str] | None = None,
  ) -> CreatedEvent:
    body = {
      "summary": summary,
      "start": {"dateTime": start},
      "end": {"dateTime": end},
      "description": description or "",
      "attendees": [{"email": email} for email in (attendees or [])],
    }

    logger.info("Creating event %r %s -> %s", summary, start, end)
    try:
      created = self.service.events().insert(calendarId=CALENDAR_ID, body=body).execute()
    except CalendarUnavailable:
      raise
    except (HttpError, GoogleAuthError) as e:
      logger.exception("Error creating calendar event: %s", e)
      raise CalendarUnavailable("Failed to create calendar event") from e
    except Exception as e:
      logger.exception("Unexpected error creating calendar event: %s", e)
      raise CalendarUnavailable("Failed to create calendar event") from e

    return CreatedEvent(
      id=created.get("id"),
      summary=created.get("summary"),
      start=(created.get("start") or {}).get("dateTime"),
      end=(created.get("end") or {}).get("dateTime"),
      htmlLink=created.get("htmlLink"),
    )
