"""Status assembly and response payloads - Pure functions.

Combines cached feed data with per-prefecture intensity extraction into
the payloads served to the web frontend. Nothing here does I/O; the
service layer hands in whatever the cache returned.

'connected' and data freshness are reported separately: a failed
refresh still serves the last good data, flagged as stale.
"""

from dataclasses import dataclass, field
from typing import Any

from src.core.bulletin import BulletinDetail, extract_region_intensity, parse_bulletin
from src.core.dedup import RecentItem
from src.core.errors import ParseError
from src.core.intensity import get_guidance, get_tone
from src.core.regions import to_native_region_name


SOURCE_NAME = "JMA"
STATUS_MESSAGE = "Status will appear when official data is available."
STATUS_LEVEL_PENDING = "PENDING"


@dataclass(frozen=True)
class CacheInfo:
    """Cache metadata attached to every payload.

    Attributes:
        hit: True if the value came from the cache rather than this request
        age_seconds: Age of the served value in whole seconds
    """
    hit: bool = False
    age_seconds: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"hit": self.hit, "ageSeconds": self.age_seconds}


@dataclass(frozen=True)
class RawSnapshot:
    """Cached value for the raw feed slot.

    Attributes:
        fetched_at: JST time the snapshot was fetched
        source: URL the preview was taken from
        content_type: Content-Type of that response
        size_bytes: Body size of that response
        preview: First characters of the body
        official_updated_at: JST <updated> of the latest index entry
        document: Latest bulletin document body (None if unavailable)
        document_url: URL of that bulletin
    """
    fetched_at: str
    source: str
    content_type: str
    size_bytes: int
    preview: str
    official_updated_at: str | None = None
    document: bytes | None = None
    document_url: str | None = None


@dataclass(frozen=True)
class RecentSnapshot:
    """Cached value for the recent-items slot."""
    fetched_at: str
    source: str
    items: tuple[RecentItem, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StatusResult:
    """Status of one prefecture.

    Attributes:
        region: Requested prefecture (English)
        source_name: Upstream name ('JMA')
        connected: Whether this request's index feed check succeeded
        checked_at: JST time of this request
        official_updated_at: JST <updated> of the latest index entry
        intensity: Max intensity for the prefecture, None if no reading
        stale: True if the feed data is from an earlier successful fetch
        error_category: Category of the failure, if any
    """
    region: str
    source_name: str
    connected: bool
    checked_at: str
    official_updated_at: str | None
    intensity: str | None
    stale: bool = False
    error_category: str | None = None
    message: str = STATUS_MESSAGE
    status_level: str = STATUS_LEVEL_PENDING

    @property
    def tone(self) -> str:
        return get_tone(self.intensity)

    def to_dict(self) -> dict[str, Any]:
        guidance = get_guidance(self.intensity)
        payload: dict[str, Any] = {
            "ok": self.connected,
            "region": self.region,
            "sourceName": self.source_name,
            "connected": self.connected,
            "message": self.message,
            "checkedAt": self.checked_at,
            "officialUpdatedAt": self.official_updated_at,
            "statusLevel": self.status_level,
            "intensity": self.intensity,
            "tone": self.tone,
            "guidance": None,
            "stale": self.stale,
        }
        if guidance is not None:
            payload["guidance"] = {"label": guidance.label, "text": guidance.text}
        if self.error_category:
            payload["errorCategory"] = self.error_category
        return payload


@dataclass(frozen=True)
class RecentResult:
    """Recent activity payload.

    Attributes:
        ok: Whether this request's refresh (or fresh cache hit) succeeded
        fetched_at: JST time the served items were fetched
        source: Feed URL
        items: At most five items, newest first
        cache: Cache metadata
        error: Failure description, if any
        error_category: Failure category, if any
    """
    ok: bool
    fetched_at: str
    source: str
    items: tuple[RecentItem, ...] = field(default_factory=tuple)
    cache: CacheInfo = field(default_factory=CacheInfo)
    error: str | None = None
    error_category: str | None = None

    @property
    def stale(self) -> bool:
        return not self.ok and self.cache.hit

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": self.ok,
            "fetchedAtJst": self.fetched_at,
            "source": self.source,
            "items": [item.to_dict() for item in self.items],
            "cache": self.cache.to_dict(),
            "stale": self.stale,
        }
        if self.error:
            payload["error"] = self.error
        if self.error_category:
            payload["errorCategory"] = self.error_category
        return payload


@dataclass(frozen=True)
class RawResult:
    """Raw feed preview payload."""
    ok: bool
    fetched_at: str
    source: str
    snapshot: RawSnapshot | None = None
    cache: CacheInfo = field(default_factory=CacheInfo)
    error: str | None = None
    error_category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "ok": self.ok,
            "fetchedAtJst": self.fetched_at,
            "source": self.source,
            "cache": self.cache.to_dict(),
            "stale": not self.ok and self.snapshot is not None,
        }
        if self.snapshot is not None:
            payload.update({
                "contentType": self.snapshot.content_type,
                "sizeBytes": self.snapshot.size_bytes,
                "preview": self.snapshot.preview,
                "officialUpdatedAtJst": self.snapshot.official_updated_at,
            })
        if self.error:
            payload["error"] = self.error
        if self.error_category:
            payload["errorCategory"] = self.error_category
        return payload


def detail_from_snapshot(snapshot: RawSnapshot | None) -> BulletinDetail | None:
    """Parse the bulletin stored in a raw snapshot.

    Pure function. A missing or malformed document yields None.
    """
    if snapshot is None or snapshot.document is None:
        return None
    try:
        return parse_bulletin(snapshot.document)
    except ParseError:
        return None


def resolve_region_intensity(
    region: str,
    snapshot: RawSnapshot | None,
) -> str | None:
    """Max intensity for a prefecture from the cached bulletin.

    Pure function. Unmapped prefectures return None without parsing.
    """
    native_name = to_native_region_name(region)
    if native_name is None:
        return None
    return extract_region_intensity(detail_from_snapshot(snapshot), native_name)


def build_status(
    region: str,
    snapshot: RawSnapshot | None,
    connected: bool,
    checked_at: str,
    error_category: str | None = None,
    intensity_override: str | None = None,
) -> StatusResult:
    """Assemble the status payload for one prefecture.

    Pure function.

    Args:
        region: English prefecture name
        snapshot: Last good raw snapshot (None if there never was one)
        connected: Outcome of this request's index feed check
        checked_at: JST time of this request
        error_category: Failure category of this request, if any
        intensity_override: Forced intensity (development mock mode)

    Returns:
        StatusResult
    """
    if intensity_override is not None:
        intensity = intensity_override
    else:
        intensity = resolve_region_intensity(region, snapshot)

    return StatusResult(
        region=region,
        source_name=SOURCE_NAME,
        connected=connected,
        checked_at=checked_at,
        official_updated_at=snapshot.official_updated_at if snapshot else None,
        intensity=intensity,
        stale=not connected and snapshot is not None,
        error_category=error_category,
    )
