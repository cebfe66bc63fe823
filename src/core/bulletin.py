"""JMA feed and bulletin parsing - Pure functions.

This module projects the JMA Atom index feed and individual JMA XML
bulletins into typed records. All functions are pure with no side effects.

xmltodict gives a loose shape: any element may come back as a plain
string, a dict of '@attribute' / '#text' / children, a list (when
repeated), or None (when empty). The shape helpers below collapse those
variants into one canonical form so the extraction code never has to care.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable
from urllib.parse import urlparse
from xml.parsers.expat import ExpatError

import xmltodict

from src.core.errors import ParseError
from src.core.intensity import intensity_rank, normalize_intensity
from src.core.timeutil import parse_instant


# Bulletin type prefixes treated as earthquake-related
DEFAULT_ALLOW_PREFIXES: tuple[str, ...] = ("VXSE",)

_PREFIX_RE = re.compile(r"(?:^|_)([A-Z]+)")


@dataclass(frozen=True)
class FeedEntry:
    """One entry of the Atom index feed.

    Attributes:
        id: Upstream-assigned entry id
        updated_at: Entry <updated> instant (UTC), the only time source
        document_link: URL of the bulletin document
        bulletin_kind: Filename prefix of the link (e.g. 'VXSE')
        title: Entry title
    """
    id: str
    updated_at: datetime | None
    document_link: str | None
    bulletin_kind: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class RegionIntensity:
    """Maximum intensity observed in one prefecture."""
    name: str
    max_intensity: str | None


@dataclass(frozen=True)
class BulletinDetail:
    """Fields extracted from one JMA bulletin document.

    Attributes:
        event_id: JMA EventID (required)
        hypocenter_area_name: Epicentre area name
        magnitude: Formatted magnitude (e.g. 'M5.2')
        max_intensity: Overall maximum intensity key
        region_intensities: Per-prefecture readings
    """
    event_id: str
    hypocenter_area_name: str | None = None
    magnitude: str | None = None
    max_intensity: str | None = None
    region_intensities: tuple[RegionIntensity, ...] = field(default_factory=tuple)


# ----- shape helpers -----

def _local_name(key: str) -> str:
    return key.rsplit(":", 1)[-1]


def as_list(node: Any) -> list[Any]:
    """Normalize a node that may be absent, single or repeated to a list."""
    if node is None:
        return []
    if isinstance(node, list):
        return node
    return [node]


def child(node: Any, name: str) -> Any:
    """Get a child element by local name, ignoring namespace prefixes.

    If the node is a list, the first element is searched.
    """
    if isinstance(node, list):
        node = node[0] if node else None
    if not isinstance(node, dict):
        return None
    for key, value in node.items():
        if key.startswith(("@", "#")):
            continue
        if _local_name(key) == name:
            return value
    return None


def attr(node: Any, name: str) -> str | None:
    """Get an attribute value by local name, ignoring namespace prefixes."""
    if not isinstance(node, dict):
        return None
    for key, value in node.items():
        if key.startswith("@") and not key.startswith("@xmlns") and _local_name(key[1:]) == name:
            return value
    return None


def find_path(node: Any, *names: str) -> Any:
    """Walk a chain of child names; None as soon as one is missing."""
    for name in names:
        node = child(node, name)
        if node is None:
            return None
    return node


def scalar_text(node: Any, *attribute_names: str) -> str | None:
    """Collapse any node shape to one optional, stripped string.

    Plain values are returned as text. For elements with attributes the
    element text wins, then the first of attribute_names that is set.
    For repeated elements the first usable value wins.
    """
    if node is None:
        return None

    if isinstance(node, list):
        for item in node:
            text = scalar_text(item, *attribute_names)
            if text is not None:
                return text
        return None

    if isinstance(node, dict):
        text = node.get("#text")
        if text is not None and str(text).strip():
            return str(text).strip()
        for name in attribute_names:
            value = attr(node, name)
            if value is not None and str(value).strip():
                return str(value).strip()
        return None

    text = str(node).strip()
    return text or None


def _parse_xml(data: bytes | str) -> dict[str, Any]:
    try:
        return xmltodict.parse(data)
    except ExpatError as e:
        raise ParseError(f"Malformed XML: {e}") from e


# ----- index feed -----

def extract_file_prefix(url: str | None) -> str | None:
    """Extract the bulletin type prefix from a document URL.

    The prefix is the first run of uppercase letters that starts the
    filename or follows an underscore:
    'https://.../VXSE51_270000.xml' -> 'VXSE',
    'https://.../20240101071015_0_VXSE53_270000.xml' -> 'VXSE'.

    Args:
        url: Bulletin document URL

    Returns:
        Leading uppercase letters of the filename, or None
    """
    if not url:
        return None
    try:
        path = urlparse(url).path
    except ValueError:
        return None
    filename = path.rsplit("/", 1)[-1]
    match = _PREFIX_RE.search(filename)
    return match.group(1) if match else None


def _select_link(entry: Any) -> str | None:
    for link in as_list(child(entry, "link")):
        if isinstance(link, dict):
            href = attr(link, "href")
            rel = attr(link, "rel")
            if href and rel in (None, "", "alternate"):
                return href.strip()
        elif link is not None and str(link).strip():
            return str(link).strip()
    return None


def parse_feed_entry(entry: Any) -> FeedEntry:
    """Parse a single Atom <entry> node into a FeedEntry.

    Pure function. Missing pieces become None; the entry is kept so the
    caller decides whether it is usable.
    """
    link = _select_link(entry)
    return FeedEntry(
        id=scalar_text(child(entry, "id")) or "",
        updated_at=parse_instant(scalar_text(child(entry, "updated"))),
        document_link=link,
        bulletin_kind=extract_file_prefix(link),
        title=scalar_text(child(entry, "title")),
    )


def parse_feed(data: bytes | str) -> list[FeedEntry]:
    """Parse the Atom index feed into entries, in feed order.

    Pure function. A feed with a single <entry> yields a one-element
    list; a feed with none yields an empty list.

    Args:
        data: Raw feed body

    Returns:
        List of FeedEntry objects

    Raises:
        ParseError: If the body is not well-formed XML
    """
    document = _parse_xml(data)
    feed = child(document, "feed")
    if not isinstance(feed, dict):
        return []
    return [parse_feed_entry(entry) for entry in as_list(child(feed, "entry"))]


def is_allowed_entry(
    entry: FeedEntry,
    allow_prefixes: Iterable[str] = DEFAULT_ALLOW_PREFIXES,
) -> bool:
    """Check that an entry links to an allowed bulletin type.

    Entries with no link, or whose link has no parsable prefix, are
    never allowed.
    """
    if not entry.document_link or not entry.bulletin_kind:
        return False
    return any(entry.bulletin_kind.startswith(p) for p in allow_prefixes)


# ----- bulletin document -----

def _is_number(text: str) -> bool:
    try:
        value = float(text)
    except ValueError:
        return False
    return value == value  # NaN is JMA's "unknown"


def _extract_magnitude(node: Any) -> str | None:
    if node is None:
        return None

    if isinstance(node, list):
        node = node[0] if node else None

    if isinstance(node, dict):
        for value in (node.get("#text"), attr(node, "Magnitude")):
            if value is not None and _is_number(str(value).strip()):
                return f"M{str(value).strip()}"
        description = attr(node, "description")
        return description.strip() if description else None

    text = scalar_text(node)
    if text is None:
        return None
    return f"M{text}" if _is_number(text) else text


def _extract_region_intensities(observation: Any) -> tuple[RegionIntensity, ...]:
    regions = []
    for pref in as_list(child(observation, "Pref")):
        name = attr(pref, "Name") or scalar_text(child(pref, "Name"))
        if not name:
            continue
        regions.append(RegionIntensity(
            name=name,
            max_intensity=normalize_intensity(
                scalar_text(child(pref, "MaxInt"), "MaxInt")
            ),
        ))
    return tuple(regions)


def parse_bulletin(data: bytes | str) -> BulletinDetail | None:
    """Parse a JMA bulletin document.

    Pure function. A document without Report/Head/EventID is not an
    earthquake bulletin we can use and yields None. Every other field
    degrades to None on its own when missing.

    Args:
        data: Raw bulletin XML

    Returns:
        BulletinDetail, or None if there is no EventID

    Raises:
        ParseError: If the body is not well-formed XML
    """
    document = _parse_xml(data)
    report = child(document, "Report")

    event_id = scalar_text(find_path(report, "Head", "EventID"))
    if not event_id:
        return None

    body = child(report, "Body")
    earthquake = child(body, "Earthquake")
    observation = find_path(body, "Intensity", "Observation")

    return BulletinDetail(
        event_id=event_id,
        hypocenter_area_name=scalar_text(
            find_path(earthquake, "Hypocenter", "Area", "Name")
        ),
        magnitude=_extract_magnitude(child(earthquake, "Magnitude")),
        max_intensity=normalize_intensity(
            scalar_text(child(observation, "MaxInt"), "MaxInt")
        ),
        region_intensities=_extract_region_intensities(observation),
    )


def extract_region_intensity(
    detail: BulletinDetail | None,
    native_name: str | None,
) -> str | None:
    """Find the maximum intensity reported for one prefecture.

    Pure function. Matches when the record name contains the native name,
    so '東京都' also matches a record named '東京都２３区'. If several
    records match, the strongest reading wins.

    Args:
        detail: Parsed bulletin (or None)
        native_name: Prefecture name as JMA writes it

    Returns:
        Intensity key, or None when the bulletin has no reading there
    """
    if detail is None or not native_name:
        return None
    readings = [
        region.max_intensity
        for region in detail.region_intensities
        if native_name in region.name and region.max_intensity is not None
    ]
    if not readings:
        return None
    return max(readings, key=intensity_rank)


def build_preview(data: bytes | str, limit: int = 1000) -> str:
    """Short text preview of a document body.

    JSON bodies are pretty-printed first; anything else is shown raw.
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    try:
        text = json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except ValueError:
        pass
    return text[:limit]
