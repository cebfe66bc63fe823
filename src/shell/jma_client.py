"""JMA Feed Client - Imperative Shell.

This module handles HTTP communication with the JMA XML feed service.
All I/O is contained here; parsing is in the core module.

Every call has a hard time budget. requests' own timeout only bounds
each socket operation, so the download runs on a worker thread and the
caller stops waiting once the budget is spent. Inside the worker the
socket timeouts are capped at the remaining budget and the deadline is
checked between chunks, so an abandoned download ends soon after.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Callable

import requests

from src.core.config import DEFAULT_USER_AGENT, JMA_FEED_URL
from src.core.errors import FetchTimeout, TransportError


logger = logging.getLogger(__name__)


# Hard upper bound for one upstream call (seconds)
DEFAULT_TIMEOUT = 8.0

CHUNK_SIZE = 16 * 1024

# Concurrent downloads per client
MAX_WORKERS = 8


@dataclass(frozen=True)
class FetchedDocument:
    """Body and metadata of one successful fetch.

    Attributes:
        url: Requested URL
        content: Response body
        content_type: Content-Type header ('unknown' if absent)
        status_code: HTTP status code
    """
    url: str
    content: bytes
    content_type: str
    status_code: int

    @property
    def size_bytes(self) -> int:
        return len(self.content)


class JMAClient:
    """Client for fetching the JMA Atom feed and bulletin documents.

    This is part of the imperative shell - it handles HTTP I/O.
    It holds no per-request state, so one instance can serve concurrent
    requests for different URLs.
    """

    def __init__(
        self,
        feed_url: str = JMA_FEED_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize JMA client.

        Args:
            feed_url: Atom index feed URL
            timeout: Total time budget per request in seconds
            user_agent: User-Agent header value
            clock: Monotonic clock used for the deadline
        """
        self.feed_url = feed_url
        self.timeout = timeout
        self.user_agent = user_agent
        self._clock = clock
        self._pool = ThreadPoolExecutor(
            max_workers=MAX_WORKERS,
            thread_name_prefix="jma-fetch",
        )

    def _timed_out(self, url: str) -> FetchTimeout:
        return FetchTimeout(f"Request timed out after {self.timeout}s", url)

    def _remaining(self, deadline: float, url: str) -> float:
        """Seconds left before the deadline; FetchTimeout once it has passed."""
        remaining = deadline - self._clock()
        if remaining <= 0:
            raise self._timed_out(url)
        return remaining

    def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
    ) -> FetchedDocument:
        """Fetch a URL within the time budget.

        This method performs HTTP I/O. It returns or raises within
        `timeout` seconds, however slowly the upstream answers.

        Args:
            url: URL to fetch
            headers: Extra request headers

        Returns:
            FetchedDocument with the full body

        Raises:
            FetchTimeout: If the time budget ran out
            TransportError: On connection failure or non-2xx status
        """
        request_headers = {"User-Agent": self.user_agent}
        if headers:
            request_headers.update(headers)

        deadline = self._clock() + self.timeout
        pending: dict[str, requests.Response] = {}

        logger.debug("Fetching %s", url)

        future = self._pool.submit(self._download, url, request_headers, deadline, pending)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout as e:
            # Unblocks the worker if it is still reading the body
            response = pending.get("response")
            if response is not None:
                response.close()
            logger.warning("Request timed out: %s", url)
            raise self._timed_out(url) from e

    def _download(
        self,
        url: str,
        headers: dict[str, str],
        deadline: float,
        pending: dict[str, requests.Response],
    ) -> FetchedDocument:
        """Run one GET on a worker thread, honouring the deadline."""
        try:
            response = requests.get(
                url,
                headers=headers,
                timeout=self._remaining(deadline, url),
                stream=True,
            )
        except requests.Timeout as e:
            logger.warning("Request timed out: %s", url)
            raise self._timed_out(url) from e
        except requests.RequestException as e:
            logger.warning("Request failed: %s - %s", url, str(e))
            raise TransportError(f"Request failed: {e}", url) from e

        pending["response"] = response

        try:
            if not 200 <= response.status_code < 300:
                logger.warning(
                    "Upstream returned non-2xx: %d - %s",
                    response.status_code,
                    url,
                )
                raise TransportError(
                    f"Upstream returned HTTP {response.status_code}",
                    url,
                    status_code=response.status_code,
                )

            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                self._remaining(deadline, url)
                chunks.append(chunk)

            self._remaining(deadline, url)

        except requests.Timeout as e:
            logger.warning("Read timed out: %s", url)
            raise self._timed_out(url) from e
        except requests.RequestException as e:
            logger.warning("Read failed: %s - %s", url, str(e))
            raise TransportError(f"Read failed: {e}", url) from e
        finally:
            response.close()

        content = b"".join(chunks)

        logger.debug("Fetched %d bytes from %s", len(content), url)

        return FetchedDocument(
            url=url,
            content=content,
            content_type=response.headers.get("Content-Type", "unknown"),
            status_code=response.status_code,
        )

    def fetch_feed(self) -> FetchedDocument:
        """Fetch the Atom index feed."""
        return self.fetch(self.feed_url)

    def fetch_document(self, url: str) -> FetchedDocument:
        """Fetch one bulletin document linked from the feed."""
        return self.fetch(url)
