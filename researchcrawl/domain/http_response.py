from typing import NamedTuple, Optional


class HttpResponse(NamedTuple):
    """Raw response from an HTTP fetch."""
    status_code: int
    text: str
    content_type: Optional[str] = None
