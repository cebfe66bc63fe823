"""Feed Service - Wires Functional Core and Imperative Shell.

This module coordinates the flow of data between the pure functional
core and the I/O-performing shell components: fetch the JMA index feed,
parse it, fetch bulletin documents, rank events and keep the results in
the TTL caches.

Refresh steps never raise for upstream failures. They return a
RefreshResult and the cache decides whether to serve the previous value.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterator

from src.core.bulletin import (
    BulletinDetail,
    FeedEntry,
    build_preview,
    parse_bulletin,
    parse_feed,
)
from src.core.config import Config
from src.core.dedup import (
    RecentItem,
    latest_entry,
    prefix_distribution,
    rank_recent_items,
    select_candidate_entries,
)
from src.core.errors import FeedError
from src.core.mock import MOCK_SOURCE, mock_intensity, mock_recent_items
from src.core.status import (
    CacheInfo,
    RawResult,
    RawSnapshot,
    RecentResult,
    RecentSnapshot,
    StatusResult,
    build_status,
)
from src.core.timeutil import now_jst_iso, to_jst_iso
from src.shell.cache import CacheRead, RefreshResult, TTLCache
from src.shell.jma_client import FetchedDocument, JMAClient


logger = logging.getLogger(__name__)


class FeedService:
    """Serves earthquake status and recent activity from the JMA feed.

    This class wires together:
    - JMA client (fetches the feed and bulletin documents)
    - Core functions (parsing, dedup/ranking, status assembly)
    - Two TTL caches ('raw' for the latest bulletin, 'recent' for the
      ranked event list)

    Construct one per process and share it between requests.
    """

    def __init__(
        self,
        config: Config,
        jma_client: JMAClient | None = None,
        raw_cache: TTLCache[RawSnapshot] | None = None,
        recent_cache: TTLCache[RecentSnapshot] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize service with configuration.

        Args:
            config: Application configuration
            jma_client: JMA client (created if not provided)
            raw_cache: Cache for the raw slot (created if not provided)
            recent_cache: Cache for the recent slot (created if not provided)
            now: Wall clock for JST timestamps
        """
        self.config = config
        self.jma_client = jma_client or JMAClient(
            feed_url=config.feed_url,
            timeout=config.fetch_timeout_seconds,
            user_agent=config.user_agent,
        )
        self.raw_cache = raw_cache or TTLCache("raw", config.cache_ttl_seconds)
        self.recent_cache = recent_cache or TTLCache("recent", config.cache_ttl_seconds)
        self._now = now or (lambda: datetime.now(timezone.utc))

    def _now_jst(self) -> str:
        return now_jst_iso(self._now())

    def _fetch_entries(self) -> tuple[FetchedDocument, list[FeedEntry]]:
        """Fetch and parse the index feed.

        Raises:
            FeedError: On timeout, transport or parse failure
        """
        feed = self.jma_client.fetch_feed()
        try:
            entries = parse_feed(feed.content)
        except FeedError as e:
            e.url = e.url or feed.url
            raise
        return feed, entries

    def _fetch_bulletin(self, entry: FeedEntry) -> BulletinDetail | None:
        """Fetch and parse one bulletin; None if unavailable or not usable."""
        if not entry.document_link:
            return None
        try:
            document = self.jma_client.fetch_document(entry.document_link)
            detail = parse_bulletin(document.content)
        except FeedError as e:
            logger.warning(
                "Skipping bulletin: %s (category=%s, url=%s)",
                e.message,
                e.category,
                entry.document_link,
            )
            return None

        if detail is None:
            logger.debug("No EventID in bulletin, skipping: %s", entry.document_link)
        return detail

    def _bulletin_pairs(
        self,
        entries: list[FeedEntry],
    ) -> Iterator[tuple[FeedEntry, BulletinDetail | None]]:
        # Lazy so the ranker's early stop also stops the fetching
        for entry in entries:
            yield entry, self._fetch_bulletin(entry)

    def _log_feed_error(self, error: FeedError) -> None:
        logger.error(
            "Failed to fetch JMA feed: %s (category=%s, url=%s)",
            error.message,
            error.category,
            error.url or self.config.feed_url,
        )

    def _refresh_recent(self) -> RefreshResult[RecentSnapshot]:
        """Build a new recent-items snapshot.

        Steps:
        1. Fetch the index feed
        2. Keep allowed (earthquake) entries, at most max_entries_to_check
        3. Fetch bulletins one by one until max_items events are known
        4. Rank by the entries' updated time
        """
        fetched_at = self._now_jst()

        try:
            _, entries = self._fetch_entries()
        except FeedError as e:
            self._log_feed_error(e)
            return RefreshResult.failed(e.category, e.message)

        logger.debug(
            "Prefix distribution (first %d entries): %s",
            self.config.max_entries_to_check,
            prefix_distribution(entries, self.config.max_entries_to_check),
        )

        candidates = select_candidate_entries(
            entries,
            self.config.allow_prefixes,
            self.config.max_entries_to_check,
        )
        items = rank_recent_items(
            self._bulletin_pairs(candidates),
            max_items=self.config.max_items,
        )

        logger.info(
            "%d recent events from %d candidate entries (of %d total)",
            len(items),
            len(candidates),
            len(entries),
        )

        return RefreshResult.ok(RecentSnapshot(
            fetched_at=fetched_at,
            source=self.config.feed_url,
            items=tuple(items),
        ))

    def _refresh_raw(self) -> RefreshResult[RawSnapshot]:
        """Build a new raw snapshot: latest entry plus its bulletin.

        Only the index feed is required. If the bulletin can't be
        fetched, the previous snapshot is kept as a whole; with nothing
        cached yet, the snapshot holds the feed preview and no document.
        """
        fetched_at = self._now_jst()
        limit = self.config.preview_chars

        try:
            feed, entries = self._fetch_entries()
        except FeedError as e:
            self._log_feed_error(e)
            return RefreshResult.failed(e.category, e.message)

        feed_snapshot = RawSnapshot(
            fetched_at=fetched_at,
            source=feed.url,
            content_type=feed.content_type,
            size_bytes=feed.size_bytes,
            preview=build_preview(feed.content, limit),
        )

        entry = latest_entry(entries, self.config.allow_prefixes)
        if entry is None:
            logger.info("JMA feed has no entries")
            return RefreshResult.ok(feed_snapshot)

        official_updated_at = to_jst_iso(entry.updated_at)

        feed_snapshot = replace(feed_snapshot, official_updated_at=official_updated_at)

        if not entry.document_link:
            return RefreshResult.ok(feed_snapshot)

        try:
            document = self.jma_client.fetch_document(entry.document_link)
        except FeedError as e:
            previous = self.raw_cache.peek()
            if previous is not None and previous.value.document is not None:
                logger.warning(
                    "Bulletin document unavailable, keeping previous snapshot: "
                    "%s (category=%s, url=%s)",
                    e.message,
                    e.category,
                    entry.document_link,
                )
                return RefreshResult.ok(previous.value)
            logger.warning(
                "Bulletin document unavailable: %s (category=%s, url=%s)",
                e.message,
                e.category,
                entry.document_link,
            )
            return RefreshResult.ok(feed_snapshot)

        return RefreshResult.ok(RawSnapshot(
            fetched_at=fetched_at,
            source=document.url,
            content_type=document.content_type,
            size_bytes=document.size_bytes,
            preview=build_preview(document.content, limit),
            official_updated_at=official_updated_at,
            document=document.content,
            document_url=document.url,
        ))

    def _mock_enabled(self, mock: bool) -> bool:
        if mock and not self.config.allow_mock:
            logger.debug("Mock requested but not enabled; ignoring")
        return mock and self.config.allow_mock

    def get_status(
        self,
        region: str,
        mock: bool = False,
        mock_max_int: str | None = None,
    ) -> StatusResult:
        """Status of one prefecture.

        Args:
            region: English prefecture name (e.g. 'Tokyo')
            mock: Force an intensity (only if allow_mock is set)
            mock_max_int: Intensity to force in mock mode

        Returns:
            StatusResult; 'connected' reflects this request's feed check
        """
        checked_at = self._now_jst()
        read: CacheRead[RawSnapshot] = self.raw_cache.get(self._refresh_raw)

        override = None
        if self._mock_enabled(mock):
            override = mock_intensity(mock_max_int)

        return build_status(
            region=region,
            snapshot=read.value,
            connected=read.ok,
            checked_at=checked_at,
            error_category=read.error_category,
            intensity_override=override,
        )

    def get_recent(self, mock: bool = False) -> RecentResult:
        """Recent distinct earthquake events, newest first."""
        if self._mock_enabled(mock):
            return RecentResult(
                ok=True,
                fetched_at=self._now_jst(),
                source=MOCK_SOURCE,
                items=tuple(mock_recent_items(self._now())),
            )

        read: CacheRead[RecentSnapshot] = self.recent_cache.get(self._refresh_recent)

        if read.value is None:
            return RecentResult(
                ok=False,
                fetched_at=self._now_jst(),
                source=self.config.feed_url,
                error=read.error,
                error_category=read.error_category,
            )

        return RecentResult(
            ok=read.ok,
            fetched_at=read.value.fetched_at,
            source=read.value.source,
            items=read.value.items,
            cache=CacheInfo(hit=read.hit, age_seconds=read.age_seconds),
            error=read.error,
            error_category=read.error_category,
        )

    def get_recent_items(self) -> list[RecentItem]:
        """At most max_items recent events (empty if never fetched)."""
        return list(self.get_recent().items)

    def get_raw(self) -> RawResult:
        """Preview of the latest bulletin (or of the feed)."""
        read: CacheRead[RawSnapshot] = self.raw_cache.get(self._refresh_raw)

        if read.value is None:
            return RawResult(
                ok=False,
                fetched_at=self._now_jst(),
                source=self.config.feed_url,
                error=read.error,
                error_category=read.error_category,
            )

        return RawResult(
            ok=read.ok,
            fetched_at=read.value.fetched_at,
            source=read.value.source,
            snapshot=read.value,
            cache=CacheInfo(hit=read.hit, age_seconds=read.age_seconds),
            error=read.error,
            error_category=read.error_category,
        )
