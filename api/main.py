"""Earthquake Status API - FastAPI service.

Serves JMA earthquake status and recent activity to the web frontend.
Deployed as a single long-lived service so the in-memory caches are
shared by all requests of the process.
"""

import logging
import os
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from src.core.config import Config
from src.core.regions import list_regions, to_native_region_name
from src.service import FeedService
from src.shell.config_loader import load_config, load_config_from_env


log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _get_config() -> Config:
    """Load configuration from file or environment."""
    config_path = os.environ.get("CONFIG_PATH")

    if config_path:
        return load_config(config_path)
    return load_config_from_env()


config = _get_config()

app = FastAPI(
    title="Japan Earthquake Status API",
    description="Serves near-real-time earthquake status from the JMA XML feed",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


_service: FeedService | None = None


def get_service() -> FeedService:
    """Process-wide FeedService, created on first use."""
    global _service
    if _service is None:
        _service = FeedService(config)
        logger.info("Feed service initialized for %s", config.feed_url)
    return _service


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/status")
def get_status(
    prefecture: str | None = Query(None, description="English prefecture name"),
    mock: str | None = Query(None),
    max_int: str | None = Query(None, alias="maxInt"),
    service: FeedService = Depends(get_service),
) -> dict[str, Any]:
    """Earthquake status for one prefecture.

    'connected' reports whether JMA answered this check; the data fields
    may still come from an earlier successful fetch (see 'stale').
    """
    if not prefecture:
        raise HTTPException(status_code=400, detail="prefecture parameter is required")

    result = service.get_status(prefecture, mock=mock == "1", mock_max_int=max_int)
    return result.to_dict()


@app.get("/api/jma/recent")
def get_recent(
    mock: str | None = Query(None),
    service: FeedService = Depends(get_service),
) -> dict[str, Any]:
    """Up to five recent distinct earthquake events, newest first."""
    return service.get_recent(mock=mock == "1").to_dict()


@app.get("/api/jma/raw")
def get_raw(service: FeedService = Depends(get_service)) -> dict[str, Any]:
    """Preview of the latest JMA bulletin, without interpretation."""
    return service.get_raw().to_dict()


@app.get("/api/regions")
def get_regions() -> dict[str, Any]:
    """Supported prefectures and their JMA names."""
    return {
        "regions": [
            {"name": name, "nativeName": to_native_region_name(name)}
            for name in list_regions()
        ]
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8080")))
