"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Time normalization to JST
- Intensity scale normalization and guidance
- JMA feed and bulletin parsing
- Event deduplication and ranking
- Status payload assembly

All functions here are deterministic and have no I/O.
"""

from src.core.timeutil import to_jst_iso, parse_instant, now_jst_iso
from src.core.intensity import normalize_intensity, get_tone, get_guidance
from src.core.regions import to_native_region_name
from src.core.bulletin import (
    FeedEntry,
    BulletinDetail,
    parse_feed,
    parse_bulletin,
    extract_region_intensity,
    is_allowed_entry,
)
from src.core.dedup import RecentItem, rank_recent_items, select_candidate_entries
from src.core.status import StatusResult, RecentResult, RawResult, build_status

__all__ = [
    # Time
    "to_jst_iso",
    "parse_instant",
    "now_jst_iso",
    # Intensity
    "normalize_intensity",
    "get_tone",
    "get_guidance",
    # Regions
    "to_native_region_name",
    # Bulletin
    "FeedEntry",
    "BulletinDetail",
    "parse_feed",
    "parse_bulletin",
    "extract_region_intensity",
    "is_allowed_entry",
    # Dedup
    "RecentItem",
    "rank_recent_items",
    "select_candidate_entries",
    # Status
    "StatusResult",
    "RecentResult",
    "RawResult",
    "build_status",
]
