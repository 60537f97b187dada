from dateparser import parse as dateparse
from datetime import date, datetime, time, timezone
from typing import Optional, Union
import logging

logger = logging.getLogger("utils.dateparse")

DATEPARSER_SETTINGS = {
    "RETURN_AS_TIMEZONE_AWARE": True,
    "TIMEZONE": "UTC",
    "TO_TIMEZONE": "UTC",
}


def to_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_date_only(raw) -> bool:
    """True for a plain date or a YYYY-MM-DD string without a time part."""
    if isinstance(raw, datetime):
        return False
    if isinstance(raw, date):
        return True
    if not isinstance(raw, str):
        return False
    try:
        date.fromisoformat(raw.strip())
        return True
    except ValueError:
        return False


def parse_timestamp(raw: Union[str, datetime, date, int, float, None]) -> Optional[datetime]:
    """
    Parse a call timestamp into a UTC-aware datetime.
    Accepts datetimes, dates, epoch milliseconds, ISO 8601 strings and
    anything dateparser understands. Returns None when the value is missing
    or cannot be parsed.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return to_utc(raw)
    if isinstance(raw, date):
        return datetime.combine(raw, time.min, tzinfo=timezone.utc)
    if isinstance(raw, (int, float)):
        # VAPI reports carry epoch milliseconds
        try:
            return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.debug("Cannot parse epoch timestamp", extra={"raw_time": raw})
            return None
    if not isinstance(raw, str) or not raw.strip():
        return None

    value = raw.strip()
    try:
        return to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        pass

    dt = dateparse(value, settings=DATEPARSER_SETTINGS)
    if not dt:
        logger.debug("Cannot parse timestamp", extra={"raw_time": raw})
        return None
    return to_utc(dt)
