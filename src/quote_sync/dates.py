"""Normalise Simpro date values to HubSpot date properties (midnight UTC, epoch ms)."""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Epoch values below this are seconds, at or above it milliseconds
_MILLIS_THRESHOLD = 10_000_000_000

_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
)


def _midnight_millis(d: date) -> int:
    return int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp() * 1000)


def _parse_string(value: str) -> Optional[date]:
    value = value.strip()
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _FORMATS:
        try:
            return datetime.strptime(value[:19], fmt).date()
        except ValueError:
            continue
    return None


def to_hubspot_date(value: Any) -> Optional[int]:
    """
    Midnight-UTC epoch milliseconds for a Simpro date.
    Offset timestamps keep the calendar day they were written on.
    Accepts epoch seconds, epoch milliseconds, date/datetime objects and
    date strings. Blank input returns None; unparsable input is logged and
    returns None.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        logger.warning("Unparsable date value %r", value)
        return None
    if isinstance(value, datetime):
        return _midnight_millis(value.date())
    if isinstance(value, date):
        return _midnight_millis(value)
    if isinstance(value, (int, float)):
        seconds = value if value < _MILLIS_THRESHOLD else value / 1000
        try:
            moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            logger.warning("Unparsable date value %r: %s", value, e)
            return None
        return _midnight_millis(moment.date())
    if isinstance(value, str):
        parsed = _parse_string(value)
        if parsed is None:
            logger.warning("Unparsable date value %r", value)
            return None
        return _midnight_millis(parsed)
    logger.warning("Unsupported date value type %s", type(value).__name__)
    return None
