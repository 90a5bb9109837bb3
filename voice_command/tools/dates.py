from datetime import datetime, timedelta

import dateparser

from .models import TimeWindow

# 按顺序匹配，先命中者优先
RELATIVE_CUES = ("today", "tomorrow", "this week")

def find_relative_cue(text: str) -> str | None:
  text_l = (text or "").lower()
  for cue in RELATIVE_CUES:
    if cue in text_l:
      return cue
  return None

def start_of_day(now: datetime) -> datetime:
  return now.replace(hour=0, minute=0, second=0, microsecond=0)

def resolve_relative_window(cue: str, now: datetime) -> TimeWindow:
  """
    "today"     -> [今天 00:00, 明天 00:00)
    "tomorrow"  -> [明天 00:00, 后天 00:00)
    "this week" -> 本周日 00:00 起 7 天
    其他         -> 同 "today"
  """
  text_l = (cue or "").lower()
  today = start_of_day(now)

  if "today" in text_l:
    return TimeWindow(start=today, end=today + timedelta(days=1))
  if "tomorrow" in text_l:
    tomorrow = today + timedelta(days=1)
    return TimeWindow(start=tomorrow, end=tomorrow + timedelta(days=1))
  if "this week" in text_l:
    # weekday(): 周一为 0；一周从周日开始
    week_start = today - timedelta(days=(today.weekday() + 1) % 7)
    return TimeWindow(start=week_start, end=week_start + timedelta(days=7))

  return TimeWindow(start=today, end=today + timedelta(days=1))

def normalise_instant(value: str, ref: datetime) -> str:
  """Return an RFC3339 instant; naive values are read in ref's zone."""
  value = (value or "").strip()
  if not value:
    raise ValueError("empty datetime value")

  iso = value[:-1] + "+00:00" if value.endswith("Z") else value
  try:
    parsed = datetime.fromisoformat(iso)
  except ValueError:
    parsed = dateparser.parse(value, settings={
      "PREFER_DATES_FROM": "future",
      "RELATIVE_BASE": ref.replace(tzinfo=None),
    })
    if parsed is None:
      raise ValueError(f"unparsable datetime: {value!r}")

  if parsed.tzinfo is None:
    parsed = parsed.replace(tzinfo=ref.tzinfo)
  return parsed.isoformat()
