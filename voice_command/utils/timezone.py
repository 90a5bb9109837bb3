"""Server wall-clock helpers. The zone comes from APP_TIMEZONE, then TZ, then UTC."""

import logging
import os
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)


def load_timezone(name: str | None = None) -> tzinfo:
    name = name or os.getenv("APP_TIMEZONE") or os.getenv("TZ") or "UTC"
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return timezone.utc


TIMEZONE = load_timezone()


def zone_name(tz: tzinfo) -> str:
    return getattr(tz, "key", None) or str(tz)
