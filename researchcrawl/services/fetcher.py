from __future__ import annotations

import logging
from typing import Optional, Protocol

from researchcrawl.domain import FetchResult
from researchcrawl.services.http_service import HttpService
from researchcrawl.services.page_extractor import PageExtractor

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Fetch a URL and return its content plus extracted links.

    Raises `HttpFetchError` on transport failure, oversized bodies and
    cancellation through `stop_event`; HTTP error statuses come back
    in `FetchResult.http_status`.
    """

    def fetch(self, url: str, timeout: Optional[float] = None, stop_event=None) -> FetchResult: ...


def _is_html(content_type: Optional[str]) -> bool:
    if not content_type:
        # servers that omit the header are usually serving HTML
        return True
    ct = content_type.lower()
    return "html" in ct or "xml" in ct


class HtmlPageFetcher:
    def __init__(self, http_service: HttpService, extractor: Optional[PageExtractor] = None):
        self._http_service = http_service
        self._extractor = extractor or PageExtractor()

    def fetch(self, url: str, timeout: Optional[float] = None, stop_event=None) -> FetchResult:
        response = self._http_service.fetch(url, timeout=timeout, stop_event=stop_event)
        if response.status_code >= 400:
            return FetchResult(response.status_code, response.text or "", [])

        if not _is_html(response.content_type):
            logger.debug("Skipping extraction for %s (%s)", url, response.content_type)
            clean = response.text if "text/plain" in (response.content_type or "") else None
            return FetchResult(response.status_code, response.text or "", [], None, clean, {"content_type": response.content_type})

        page = self._extractor.extract(url, response.text)
        metadata = dict(page.metadata)
        if response.content_type:
            metadata["content_type"] = response.content_type
        return FetchResult(
            http_status=response.status_code,
            raw_content=response.text or "",
            extracted_links=page.links,
            title=page.title,
            clean_content=page.clean_content,
            metadata=metadata,
        )
