import threading
from typing import Callable, List, Optional

import requests

from researchcrawl.domain.http_response import HttpResponse
from researchcrawl.exceptions import ContentTooLargeError, FetchCancelledError, HttpFetchError

DEFAULT_MAX_CONTENT_BYTES = 10 * 1024 * 1024
CHUNK_BYTES = 64 * 1024


class HttpService:
    """
    Thin wrapper over an injected HTTP GET callable (`requests.get` in production).

    Bodies are streamed so a cancelled run or an oversized response stops the
    download early. Transport errors, timeouts, oversized bodies and
    cancellation surface as `HttpFetchError`; HTTP error statuses are returned
    as-is for the caller to classify.
    """

    def __init__(
        self,
        user_agent: str,
        http_client: Callable,
        timeout: int = 10,
        max_content_bytes: Optional[int] = DEFAULT_MAX_CONTENT_BYTES,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self.http_client = http_client
        self.max_content_bytes = max_content_bytes if max_content_bytes and max_content_bytes > 0 else None

    def _too_large(self, url: str, size: int) -> HttpFetchError:
        return HttpFetchError(url, ContentTooLargeError(size, self.max_content_bytes), retryable=False)

    def _check_declared_size(self, url: str, content_length: Optional[str]) -> None:
        if self.max_content_bytes is None or not content_length:
            return
        try:
            declared = int(content_length)
        except (TypeError, ValueError):
            return
        if declared > self.max_content_bytes:
            raise self._too_large(url, declared)

    def _read_body(self, url: str, resp, stop_event: Optional[threading.Event]) -> str:
        chunks: List[bytes] = []
        size = 0
        try:
            for chunk in resp.iter_content(chunk_size=CHUNK_BYTES):
                if stop_event is not None and stop_event.is_set():
                    raise HttpFetchError(url, FetchCancelledError(), retryable=False)
                if not chunk:
                    continue
                size += len(chunk)
                if self.max_content_bytes is not None and size > self.max_content_bytes:
                    raise self._too_large(url, size)
                chunks.append(chunk)
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(url, e) from e

        body = b"".join(chunks)
        try:
            return body.decode(resp.encoding or "utf-8", errors="replace")
        except LookupError:
            return body.decode("utf-8", errors="replace")

    def fetch(self, url: str, timeout: Optional[float] = None, stop_event: Optional[threading.Event] = None) -> HttpResponse:
        if stop_event is not None and stop_event.is_set():
            raise HttpFetchError(url, FetchCancelledError(), retryable=False)

        headers = {"User-Agent": self.user_agent}
        try:
            resp = self.http_client(url, headers=headers, timeout=timeout or self.timeout, stream=True)
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(url, e) from e

        try:
            resp_headers = getattr(resp, "headers", None) or {}
            self._check_declared_size(url, resp_headers.get("Content-Length"))
            text = self._read_body(url, resp, stop_event)
        finally:
            resp.close()

        return HttpResponse(resp.status_code, text, resp_headers.get("Content-Type"))
