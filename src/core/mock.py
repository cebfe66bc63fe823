"""Development mock data - Pure functions.

Canned data for building the frontend without hitting JMA. Only served
when Config.allow_mock is set; never enabled in production.
"""

from datetime import datetime, timedelta, timezone

from src.core.dedup import RecentItem
from src.core.intensity import normalize_intensity
from src.core.timeutil import to_jst_iso


MOCK_SOURCE = "MOCK"
DEFAULT_MOCK_INTENSITY = "4"

MOCK_LINK = "https://www.jma.go.jp/jma/index.html"

# (event id, minutes ago, area, magnitude)
_MOCK_EVENTS = [
    ("mock-001", 2, "Off the coast of Ibaraki", "M5.2"),
    ("mock-002", 5, "Near the coast of Chiba", "M4.1"),
    ("mock-003", 12, "Off the coast of Fukushima", "M3.8"),
    ("mock-004", 18, "Near the coast of Miyagi", "M4.5"),
    ("mock-005", 25, "Off the coast of Iwate", "M3.2"),
]


def mock_recent_items(now: datetime | None = None) -> list[RecentItem]:
    """Build canned recent items relative to now, newest first."""
    if now is None:
        now = datetime.now(timezone.utc)

    items = []
    for event_id, minutes_ago, area, magnitude in _MOCK_EVENTS:
        updated = now - timedelta(minutes=minutes_ago)
        items.append(RecentItem(
            event_id=event_id,
            updated_at=to_jst_iso(updated),
            area_name=area,
            magnitude=magnitude,
            link=MOCK_LINK,
            updated=updated,
        ))
    return items


def mock_intensity(requested: str | None) -> str:
    """Forced intensity for mock status; falls back to '4' if unrecognised."""
    return normalize_intensity(requested) or DEFAULT_MOCK_INTENSITY
