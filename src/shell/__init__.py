"""Imperative Shell - I/O and side effects.

This module contains all code that interacts with external systems:
- JMA feed client (HTTP)
- TTL read-through cache (shared in-memory state)
- Configuration loading (environment/files)

Keep this layer thin and simple. All business logic should be in core.
"""

from src.shell.jma_client import JMAClient, FetchedDocument
from src.shell.cache import TTLCache, CacheRead, RefreshResult
from src.shell.config_loader import load_config, load_config_from_env

__all__ = [
    "JMAClient",
    "FetchedDocument",
    "TTLCache",
    "CacheRead",
    "RefreshResult",
    "load_config",
    "load_config_from_env",
]
