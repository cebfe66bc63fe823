"""Configuration models - Pure data structures.

These are domain models for configuration. The actual loading
(I/O) is handled by the shell layer.
"""

from dataclasses import dataclass, field
from urllib.parse import urlparse

from src.core.bulletin import DEFAULT_ALLOW_PREFIXES
from src.core.dedup import MAX_ENTRIES_TO_CHECK, MAX_ITEMS


JMA_FEED_URL = "https://www.data.jma.go.jp/developer/xml/feed/eqvol.xml"
DEFAULT_USER_AGENT = "Japan-Earthquake-Status/1.0"


@dataclass
class Config:
    """Application configuration.

    This is a pure data structure - no I/O or side effects.

    Attributes:
        feed_url: JMA Atom index feed URL
        user_agent: User-Agent sent with every upstream request
        fetch_timeout_seconds: Hard upper bound for one upstream call
        cache_ttl_seconds: How long a cached value counts as fresh
        max_items: Maximum recent items served
        max_entries_to_check: Maximum bulletins fetched per refresh
        allow_prefixes: Bulletin type prefixes treated as earthquakes
        preview_chars: Length of the raw preview
        allow_mock: Serve canned data for ?mock=1 (development only)
        allowed_origins: CORS origins for the web API
    """
    feed_url: str = JMA_FEED_URL
    user_agent: str = DEFAULT_USER_AGENT
    fetch_timeout_seconds: float = 8.0
    cache_ttl_seconds: float = 60.0
    max_items: int = MAX_ITEMS
    max_entries_to_check: int = MAX_ENTRIES_TO_CHECK
    allow_prefixes: tuple[str, ...] = DEFAULT_ALLOW_PREFIXES
    preview_chars: int = 1000
    allow_mock: bool = False
    allowed_origins: list[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:3001",
    ])


@dataclass
class ValidationError:
    """A configuration validation error.

    Attributes:
        field: The field that has an error
        message: Human-readable error description
        severity: 'error' or 'warning'
    """
    field: str
    message: str
    severity: str = "error"


@dataclass
class ValidationResult:
    """Result of validating configuration.

    Attributes:
        valid: True if no errors (warnings are OK)
        errors: List of validation errors/warnings
    """
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def warnings(self) -> list[ValidationError]:
        """Get only warnings."""
        return [e for e in self.errors if e.severity == "warning"]

    @property
    def critical_errors(self) -> list[ValidationError]:
        """Get only critical errors."""
        return [e for e in self.errors if e.severity == "error"]


def validate_url(url: str, field_name: str) -> list[ValidationError]:
    """Validate that a URL is absolute http(s).

    Pure function.
    """
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return [ValidationError(
            field=field_name,
            message=f"Expected an http(s) URL, got '{url}'",
        )]
    return []


def validate_config(config: Config) -> ValidationResult:
    """Validate configuration for errors and warnings.

    Pure function.

    Args:
        config: Configuration to validate

    Returns:
        ValidationResult with any errors/warnings found
    """
    errors: list[ValidationError] = []

    errors.extend(validate_url(config.feed_url, "feed_url"))

    if config.fetch_timeout_seconds <= 0:
        errors.append(ValidationError(
            field="fetch_timeout_seconds",
            message=f"Timeout must be positive, got {config.fetch_timeout_seconds}",
        ))

    if config.cache_ttl_seconds <= 0:
        errors.append(ValidationError(
            field="cache_ttl_seconds",
            message=f"Cache TTL must be positive, got {config.cache_ttl_seconds}",
        ))

    if config.max_items <= 0:
        errors.append(ValidationError(
            field="max_items",
            message=f"max_items must be positive, got {config.max_items}",
        ))
    elif config.max_items > config.max_entries_to_check:
        errors.append(ValidationError(
            field="max_items",
            message=(
                f"max_items ({config.max_items}) > max_entries_to_check "
                f"({config.max_entries_to_check})"
            ),
        ))

    if not config.allow_prefixes:
        errors.append(ValidationError(
            field="allow_prefixes",
            message="No bulletin prefixes allowed; recent items will always be empty",
        ))

    if config.preview_chars <= 0:
        errors.append(ValidationError(
            field="preview_chars",
            message=f"preview_chars must be positive, got {config.preview_chars}",
            severity="warning",
        ))

    if config.allow_mock:
        errors.append(ValidationError(
            field="allow_mock",
            message="Mock mode is enabled; do not use in production",
            severity="warning",
        ))

    has_critical = any(e.severity == "error" for e in errors)

    return ValidationResult(
        valid=not has_critical,
        errors=errors,
    )
