"""Event deduplication and ranking - Pure functions.

JMA publishes several bulletins per earthquake (preliminary, revised,
final), all carrying the same EventID. This module keeps one item per
event and ranks the result. All functions are pure with no side effects.

Ordering uses the index entry's <updated> instant only. Feed order is
used to decide which entries to look at, never to rank them.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from src.core.bulletin import BulletinDetail, FeedEntry, is_allowed_entry
from src.core.timeutil import to_jst_iso


MAX_ITEMS = 5
MAX_ENTRIES_TO_CHECK = 20

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class RecentItem:
    """Public projection of one earthquake event.

    Attributes:
        event_id: JMA EventID
        updated_at: JST string of the index entry's <updated>
        area_name: Epicentre area name
        magnitude: Formatted magnitude (e.g. 'M5.2')
        link: Bulletin document URL
        updated: Instant used for ranking (not serialized)
    """
    event_id: str
    updated_at: str | None
    area_name: str | None
    magnitude: str | None
    link: str | None
    updated: datetime | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "eventId": self.event_id,
            "updatedAtJst": self.updated_at,
            "hypocenterAreaName": self.area_name,
            "magnitude": self.magnitude,
            "link": self.link,
        }


def build_recent_item(entry: FeedEntry, detail: BulletinDetail) -> RecentItem:
    """Merge an index entry with its parsed bulletin.

    Pure function. The timestamp always comes from the index entry.
    """
    return RecentItem(
        event_id=detail.event_id,
        updated_at=to_jst_iso(entry.updated_at),
        area_name=detail.hypocenter_area_name,
        magnitude=detail.magnitude,
        link=entry.document_link,
        updated=entry.updated_at,
    )


def _sort_key(item: RecentItem) -> datetime:
    return item.updated or _EPOCH


def select_candidate_entries(
    entries: list[FeedEntry],
    allow_prefixes: Iterable[str],
    max_entries: int = MAX_ENTRIES_TO_CHECK,
) -> list[FeedEntry]:
    """Pick the allowed entries worth fetching, in feed order.

    Pure function. Caps the number of bulletin fetches per refresh.

    Args:
        entries: Parsed index feed entries
        allow_prefixes: Allowed bulletin type prefixes
        max_entries: Maximum number of entries to return

    Returns:
        At most max_entries allowed entries
    """
    prefixes = tuple(allow_prefixes)
    allowed = [e for e in entries if is_allowed_entry(e, prefixes)]
    return allowed[:max_entries]


def latest_entry(
    entries: list[FeedEntry],
    allow_prefixes: Iterable[str] | None = None,
) -> FeedEntry | None:
    """The entry with the latest <updated> time.

    Pure function. With allow_prefixes, allowed entries are preferred and
    the whole feed is only used when none is allowed. Ties keep feed order.

    Args:
        entries: Parsed index feed entries
        allow_prefixes: Allowed bulletin type prefixes (optional)

    Returns:
        Latest entry, or None for an empty feed
    """
    pool = entries
    if allow_prefixes is not None:
        prefixes = tuple(allow_prefixes)
        allowed = [e for e in entries if is_allowed_entry(e, prefixes)]
        pool = allowed or entries

    latest: FeedEntry | None = None
    for entry in pool:
        if latest is None or (entry.updated_at or _EPOCH) > (latest.updated_at or _EPOCH):
            latest = entry
    return latest


def rank_recent_items(
    pairs: Iterable[tuple[FeedEntry, BulletinDetail | None]],
    max_items: int = MAX_ITEMS,
) -> list[RecentItem]:
    """Reduce (entry, bulletin) pairs to the most recent distinct events.

    Pure function (given a pure iterable). Pairs whose bulletin is None
    are skipped and don't count as an event. Consumption stops as soon as
    max_items distinct events are known, so a lazy iterable never fetches
    more bulletins than needed.

    Args:
        pairs: (FeedEntry, BulletinDetail or None), in feed order
        max_items: Maximum number of items to return

    Returns:
        One RecentItem per EventID (latest <updated> wins), sorted by
        updated time descending
    """
    if max_items <= 0:
        return []

    by_event: dict[str, RecentItem] = {}

    for entry, detail in pairs:
        if detail is None or not detail.event_id:
            continue

        item = build_recent_item(entry, detail)
        existing = by_event.get(item.event_id)
        if existing is None or _sort_key(item) > _sort_key(existing):
            by_event[item.event_id] = item

        if len(by_event) >= max_items:
            break

    ranked = sorted(by_event.values(), key=_sort_key, reverse=True)
    return ranked[:max_items]


def prefix_distribution(
    entries: list[FeedEntry],
    limit: int = MAX_ENTRIES_TO_CHECK,
) -> dict[str, int]:
    """Count bulletin type prefixes among the first entries.

    Pure function. Used for diagnostic logging only.
    """
    counts: dict[str, int] = {}
    for entry in entries[:limit]:
        if entry.bulletin_kind:
            counts[entry.bulletin_kind] = counts.get(entry.bulletin_kind, 0) + 1
    return counts
