from typing import Any, Dict, List, NamedTuple, Optional


class FetchResult(NamedTuple):
    """Response from the fetch+extract collaborator."""
    http_status: int
    raw_content: str
    extracted_links: List[str]
    title: Optional[str] = None
    clean_content: Optional[str] = None
    metadata: Dict[str, Any] = {}
