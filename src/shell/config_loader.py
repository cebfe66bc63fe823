"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

The Config model is defined in src/core/config.py to avoid information
leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from src.core.config import Config, validate_config


logger = logging.getLogger(__name__)


_TRUE_VALUES = {"1", "true", "yes", "on"}


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} environment placeholder.

    Non-string values and plain strings are returned unchanged. An unset
    variable leaves the placeholder in place.
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_prefixes(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    return tuple(str(p).strip() for p in value if str(p).strip())


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    defaults = Config()

    allowed_origins = defaults.allowed_origins
    if "allowed_origins" in data:
        allowed_origins = [_resolve_value(o) for o in data["allowed_origins"]]

    allow_prefixes = defaults.allow_prefixes
    if "allow_prefixes" in data:
        allow_prefixes = _parse_prefixes(data["allow_prefixes"])

    return Config(
        feed_url=_resolve_value(data.get("feed_url", defaults.feed_url)),
        user_agent=_resolve_value(data.get("user_agent", defaults.user_agent)),
        fetch_timeout_seconds=float(
            data.get("fetch_timeout_seconds", defaults.fetch_timeout_seconds)
        ),
        cache_ttl_seconds=float(
            data.get("cache_ttl_seconds", defaults.cache_ttl_seconds)
        ),
        max_items=int(data.get("max_items", defaults.max_items)),
        max_entries_to_check=int(
            data.get("max_entries_to_check", defaults.max_entries_to_check)
        ),
        allow_prefixes=allow_prefixes,
        preview_chars=int(data.get("preview_chars", defaults.preview_chars)),
        allow_mock=_parse_bool(data.get("allow_mock", defaults.allow_mock)),
        allowed_origins=allowed_origins,
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)
    _log_validation(config)

    logger.info(
        "Loaded config: feed=%s, ttl=%ss, timeout=%ss",
        config.feed_url,
        config.cache_ttl_seconds,
        config.fetch_timeout_seconds,
    )

    return config


def load_config_from_env() -> Config:
    """Load configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        JMA_FEED_URL: Atom index feed URL
        USER_AGENT: User-Agent for upstream requests
        FETCH_TIMEOUT_SECONDS: Time budget per upstream call
        CACHE_TTL_SECONDS: Cache validity window
        ALLOW_PREFIXES: Comma-separated bulletin prefixes
        ALLOW_MOCK: Enable ?mock=1 (development only)
        ALLOWED_ORIGINS: Comma-separated CORS origins

    Returns:
        Config object from environment
    """
    data: dict[str, Any] = {}

    env_map = {
        "JMA_FEED_URL": "feed_url",
        "USER_AGENT": "user_agent",
        "FETCH_TIMEOUT_SECONDS": "fetch_timeout_seconds",
        "CACHE_TTL_SECONDS": "cache_ttl_seconds",
        "ALLOW_PREFIXES": "allow_prefixes",
        "ALLOW_MOCK": "allow_mock",
    }
    for env_name, key in env_map.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value

    origins = os.environ.get("ALLOWED_ORIGINS")
    if origins:
        data["allowed_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

    config = load_config_from_dict(data)
    _log_validation(config)
    return config


def _log_validation(config: Config) -> None:
    result = validate_config(config)
    for error in result.errors:
        if error.severity == "error":
            logger.error("Config error in %s: %s", error.field, error.message)
        else:
            logger.warning("Config warning in %s: %s", error.field, error.message)
