"""Unit tests for status assembly and payloads.

Pure function tests - no mocks needed.
"""

import pytest

from src.core.dedup import RecentItem
from src.core.status import (
    CacheInfo,
    RawResult,
    RawSnapshot,
    RecentResult,
    build_status,
    detail_from_snapshot,
    resolve_region_intensity,
)


CHECKED_AT = "2024-01-01T09:00:05+09:00"

BULLETIN = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<Report xmlns="http://xml.kishou.go.jp/jmaxml1/">'
    '<Head xmlns="http://xml.kishou.go.jp/jmaxml1/informationBasis1/">'
    "<EventID>20240101000000</EventID>"
    "</Head>"
    '<Body xmlns="http://xml.kishou.go.jp/jmaxml1/body/seismology1/">'
    "<Intensity><Observation>"
    "<MaxInt>6-</MaxInt>"
    "<Pref><Name>東京都</Name><Code>13</Code><MaxInt>5-</MaxInt></Pref>"
    "<Pref><Name>神奈川県</Name><Code>14</Code><MaxInt>4</MaxInt></Pref>"
    "</Observation></Intensity>"
    "</Body>"
    "</Report>"
).encode("utf-8")


def make_snapshot(document: bytes | None = BULLETIN) -> RawSnapshot:
    return RawSnapshot(
        fetched_at="2024-01-01T09:00:01+09:00",
        source="https://www.data.jma.go.jp/developer/xml/data/VXSE53.xml",
        content_type="application/xml",
        size_bytes=len(document or b""),
        preview="<?xml",
        official_updated_at="2024-01-01T09:00:00+09:00",
        document=document,
    )


class TestBuildStatus:
    """Tests for build_status() function."""

    def test_region_with_reading(self):
        """Should report the prefecture's reading from the latest bulletin."""
        result = build_status("Tokyo", make_snapshot(), connected=True, checked_at=CHECKED_AT)

        assert result.intensity == "5-"
        assert result.connected is True
        assert result.official_updated_at == "2024-01-01T09:00:00+09:00"
        assert result.source_name == "JMA"
        assert result.stale is False
        assert result.tone == "high"

    def test_region_without_reading(self):
        """Should not fall back to the overall maximum."""
        result = build_status("Hokkaido", make_snapshot(), connected=True, checked_at=CHECKED_AT)

        assert result.intensity is None
        assert result.tone == "unknown"

    def test_unmapped_region(self):
        """Should return no intensity for an unknown prefecture."""
        result = build_status("Atlantis", make_snapshot(), connected=True, checked_at=CHECKED_AT)

        assert result.intensity is None
        assert result.region == "Atlantis"

    def test_failed_check_with_cached_data(self):
        """Should keep cached data but report not connected and stale."""
        result = build_status(
            "Tokyo",
            make_snapshot(),
            connected=False,
            checked_at=CHECKED_AT,
            error_category="timeout",
        )

        assert result.connected is False
        assert result.stale is True
        assert result.intensity == "5-"
        assert result.official_updated_at == "2024-01-01T09:00:00+09:00"
        assert result.error_category == "timeout"

    def test_failed_check_without_data(self):
        """Should report nulls when nothing was ever fetched."""
        result = build_status(
            "Tokyo", None, connected=False, checked_at=CHECKED_AT, error_category="transport",
        )

        assert result.intensity is None
        assert result.official_updated_at is None
        assert result.stale is False

    def test_snapshot_without_document(self):
        """Should report no intensity when the bulletin was unavailable."""
        result = build_status("Tokyo", make_snapshot(document=None), connected=True, checked_at=CHECKED_AT)

        assert result.intensity is None
        assert result.official_updated_at == "2024-01-01T09:00:00+09:00"

    def test_intensity_override(self):
        """Should use the forced intensity in mock mode."""
        result = build_status("Tokyo", None, connected=True, checked_at=CHECKED_AT, intensity_override="6+")
        assert result.intensity == "6+"

    def test_to_dict(self):
        """Should serialize with the frontend's key names."""
        payload = build_status("Tokyo", make_snapshot(), connected=True, checked_at=CHECKED_AT).to_dict()

        assert payload["ok"] is True
        assert payload["region"] == "Tokyo"
        assert payload["sourceName"] == "JMA"
        assert payload["checkedAt"] == CHECKED_AT
        assert payload["officialUpdatedAt"] == "2024-01-01T09:00:00+09:00"
        assert payload["intensity"] == "5-"
        assert payload["statusLevel"] == "PENDING"
        assert payload["guidance"]["label"] == "Shindo 5-"
        assert "errorCategory" not in payload

    def test_to_dict_without_intensity(self):
        """Should serialize guidance as null without a reading."""
        payload = build_status("Tokyo", None, connected=False, checked_at=CHECKED_AT, error_category="parse").to_dict()

        assert payload["intensity"] is None
        assert payload["guidance"] is None
        assert payload["errorCategory"] == "parse"


class TestResolveRegionIntensity:
    """Tests for resolve_region_intensity() and detail_from_snapshot()."""

    def test_other_prefecture(self):
        """Should read each prefecture's own record."""
        assert resolve_region_intensity("Kanagawa", make_snapshot()) == "4"

    def test_no_snapshot(self):
        """Should return None without a snapshot."""
        assert resolve_region_intensity("Tokyo", None) is None

    def test_malformed_document(self):
        """Should treat a malformed cached bulletin as no reading."""
        snapshot = make_snapshot(document=b"<Report><Head>")
        assert detail_from_snapshot(snapshot) is None
        assert resolve_region_intensity("Tokyo", snapshot) is None


class TestRecentResult:
    """Tests for RecentResult payloads."""

    @pytest.fixture
    def item(self):
        return RecentItem(
            event_id="E1",
            updated_at="2024-01-01T09:00:00+09:00",
            area_name="石川県能登地方",
            magnitude="M7.6",
            link="https://example.com/E1.xml",
        )

    def test_fresh_payload(self, item):
        """Should serialize items and cache metadata."""
        result = RecentResult(
            ok=True,
            fetched_at="2024-01-01T09:00:00+09:00",
            source="https://example.com/eqvol.xml",
            items=(item,),
            cache=CacheInfo(hit=True, age_seconds=12),
        )

        payload = result.to_dict()

        assert payload["ok"] is True
        assert payload["items"][0]["eventId"] == "E1"
        assert payload["cache"] == {"hit": True, "ageSeconds": 12}
        assert payload["stale"] is False
        assert "error" not in payload

    def test_stale_payload(self, item):
        """Should flag served cache data after a failed refresh."""
        result = RecentResult(
            ok=False,
            fetched_at="2024-01-01T09:00:00+09:00",
            source="https://example.com/eqvol.xml",
            items=(item,),
            cache=CacheInfo(hit=True, age_seconds=90),
            error="Timed out",
            error_category="timeout",
        )

        payload = result.to_dict()

        assert payload["stale"] is True
        assert payload["errorCategory"] == "timeout"
        assert payload["error"] == "Timed out"

    def test_failure_without_cache(self):
        """Should return empty items when nothing was cached."""
        result = RecentResult(
            ok=False,
            fetched_at=CHECKED_AT,
            source="https://example.com/eqvol.xml",
            error_category="transport",
        )

        payload = result.to_dict()

        assert payload["items"] == []
        assert payload["stale"] is False


class TestRawResult:
    """Tests for RawResult payloads."""

    def test_with_snapshot(self):
        """Should include the preview fields."""
        snapshot = make_snapshot()
        payload = RawResult(
            ok=True,
            fetched_at=snapshot.fetched_at,
            source=snapshot.source,
            snapshot=snapshot,
        ).to_dict()

        assert payload["contentType"] == "application/xml"
        assert payload["sizeBytes"] == len(BULLETIN)
        assert payload["preview"] == "<?xml"
        assert payload["officialUpdatedAtJst"] == "2024-01-01T09:00:00+09:00"

    def test_without_snapshot(self):
        """Should omit preview fields when nothing is cached."""
        payload = RawResult(
            ok=False,
            fetched_at=CHECKED_AT,
            source="https://example.com/eqvol.xml",
            error_category="timeout",
        ).to_dict()

        assert "preview" not in payload
        assert payload["stale"] is False
        assert payload["errorCategory"] == "timeout"
