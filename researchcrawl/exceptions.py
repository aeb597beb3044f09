"""Custom exceptions for ResearchCrawl services."""

from typing import Optional


class HttpFetchError(Exception):
    """Raised when an HTTP fetch fails due to network/transport errors.

    `retryable` is False for failures a second attempt cannot fix, such as an
    oversized body or a cancelled run.
    """

    def __init__(self, url: str, original: Exception, retryable: bool = True):
        self.url = url
        self.original = original
        self.retryable = retryable
        super().__init__(f"HTTP fetch failed for {url}: {original}")


class ContentTooLargeError(Exception):
    """Raised when a response body exceeds the configured size limit."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"response of {size} bytes exceeds limit of {limit} bytes")


class FetchCancelledError(Exception):
    """Raised when a fetch is abandoned because its research run was cancelled."""

    def __init__(self):
        super().__init__("fetch cancelled")


class ClassifierUnavailableError(Exception):
    """Raised when the relevance classifier cannot produce evaluations."""

    def __init__(self, reason: str, original: Optional[Exception] = None):
        self.reason = reason
        self.original = original
        message = f"Relevance classifier unavailable: {reason}"
        if original is not None:
            message = f"{message} ({original})"
        super().__init__(message)


class InvalidRequestError(Exception):
    """Raised when a crawl request is rejected before any ledger mutation."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid '{field}': {reason}")


class ResearchNotFoundError(Exception):
    """Raised when a research run id is unknown."""

    def __init__(self, research_id: int):
        self.research_id = research_id
        super().__init__(f"Research run {research_id} not found")
