"""Unit tests for configuration validation.

Pure function tests - no mocks needed.
"""

import pytest

from src.core.config import (
    JMA_FEED_URL,
    Config,
    ValidationResult,
    ValidationError,
    validate_config,
    validate_url,
)


class TestConfigDefaults:
    """Tests for Config defaults."""

    def test_defaults(self):
        """Should default to the JMA feed and the documented limits."""
        config = Config()

        assert config.feed_url == JMA_FEED_URL
        assert config.fetch_timeout_seconds == 8.0
        assert config.cache_ttl_seconds == 60.0
        assert config.max_items == 5
        assert config.max_entries_to_check == 20
        assert config.allow_prefixes == ("VXSE",)
        assert config.allow_mock is False

    def test_default_origins_not_shared(self):
        """Should give every instance its own origins list."""
        a = Config()
        b = Config()
        a.allowed_origins.append("https://example.com")
        assert "https://example.com" not in b.allowed_origins


class TestValidateUrl:
    """Tests for validate_url() function."""

    def test_valid(self):
        """Should accept an https URL."""
        assert validate_url(JMA_FEED_URL, "feed_url") == []

    @pytest.mark.parametrize("url", ["", "ftp://example.com/feed.xml", "example.com/feed.xml", None])
    def test_invalid(self, url):
        """Should reject anything but an absolute http(s) URL."""
        errors = validate_url(url, "feed_url")
        assert len(errors) == 1
        assert errors[0].field == "feed_url"


class TestValidateConfig:
    """Tests for validate_config() function."""

    def test_default_config_is_valid(self):
        """Should accept the defaults without warnings."""
        result = validate_config(Config())

        assert result.valid is True
        assert result.errors == []

    def test_bad_feed_url(self):
        """Should reject a bad feed URL."""
        result = validate_config(Config(feed_url="not a url"))

        assert result.valid is False
        assert result.critical_errors[0].field == "feed_url"

    @pytest.mark.parametrize("field_name,value", [
        ("fetch_timeout_seconds", 0),
        ("fetch_timeout_seconds", -1),
        ("cache_ttl_seconds", 0),
        ("max_items", 0),
    ])
    def test_non_positive_values(self, field_name, value):
        """Should reject non-positive limits."""
        result = validate_config(Config(**{field_name: value}))

        assert result.valid is False
        assert [e.field for e in result.critical_errors] == [field_name]

    def test_max_items_above_scan_window(self):
        """Should reject more items than entries checked."""
        result = validate_config(Config(max_items=30, max_entries_to_check=20))

        assert result.valid is False
        assert result.critical_errors[0].field == "max_items"

    def test_empty_allow_prefixes(self):
        """Should reject an empty prefix allow-list."""
        result = validate_config(Config(allow_prefixes=()))

        assert result.valid is False
        assert result.critical_errors[0].field == "allow_prefixes"

    def test_mock_mode_is_a_warning(self):
        """Should warn, not fail, when mock mode is on."""
        result = validate_config(Config(allow_mock=True))

        assert result.valid is True
        assert [w.field for w in result.warnings] == ["allow_mock"]

    def test_preview_chars_is_a_warning(self):
        """Should warn on a non-positive preview length."""
        result = validate_config(Config(preview_chars=0))

        assert result.valid is True
        assert result.warnings[0].field == "preview_chars"


class TestValidationResult:
    """Tests for ValidationResult helpers."""

    def test_splits_by_severity(self):
        """Should separate warnings from critical errors."""
        result = ValidationResult(
            valid=False,
            errors=[
                ValidationError(field="a", message="bad"),
                ValidationError(field="b", message="meh", severity="warning"),
            ],
        )

        assert [e.field for e in result.critical_errors] == ["a"]
        assert [e.field for e in result.warnings] == ["b"]
