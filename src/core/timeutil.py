"""Time normalization - Pure functions.

All times shown to consumers are civil time in Japan (UTC+9), formatted
as YYYY-MM-DDTHH:MM:SS+09:00. Nothing here reads the clock unless asked
to via now_jst_iso().
"""

from datetime import datetime, timedelta, timezone


JST = timezone(timedelta(hours=9))

JST_FORMAT = "%Y-%m-%dT%H:%M:%S+09:00"


def parse_instant(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601-like instant into an aware UTC datetime.

    Pure function. Accepts a trailing 'Z', explicit offsets and
    fractional seconds. Naive values are treated as UTC.

    Args:
        value: ISO-8601 string or datetime

    Returns:
        Aware datetime in UTC, or None if the input can't be parsed
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def to_jst_iso(value: str | datetime | None) -> str | None:
    """Convert an instant to a JST ISO string.

    Pure function. Re-normalizing an already normalized string returns
    it unchanged.

    Args:
        value: ISO-8601 string or datetime

    Returns:
        'YYYY-MM-DDTHH:MM:SS+09:00', or None if the input can't be parsed
    """
    instant = parse_instant(value)
    if instant is None:
        return None
    return instant.astimezone(JST).strftime(JST_FORMAT)


def now_jst_iso(now: datetime | None = None) -> str:
    """Format the current time (or the given one) as a JST ISO string."""
    if now is None:
        now = datetime.now(timezone.utc)
    return to_jst_iso(now) or ""
