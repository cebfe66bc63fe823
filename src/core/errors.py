"""Feed error taxonomy - Pure data structures.

Every failure the ingestion layer can surface carries a category string
so callers and payloads can report it without inspecting exception types.

A missing required field (e.g. a bulletin without an EventID) is not an
error here: the parser returns None and the item is simply skipped.
"""


TIMEOUT = "timeout"
TRANSPORT = "transport"
PARSE = "parse"


class FeedError(Exception):
    """Base class for upstream feed failures.

    Attributes:
        message: Human-readable description
        url: Upstream URL involved (if known)
    """
    category = "unknown"

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url


class FetchTimeout(FeedError):
    """The upstream call exceeded its time budget."""
    category = TIMEOUT


class TransportError(FeedError):
    """Connection, DNS or non-2xx HTTP failure."""
    category = TRANSPORT

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code


class ParseError(FeedError):
    """Upstream returned malformed XML."""
    category = PARSE
