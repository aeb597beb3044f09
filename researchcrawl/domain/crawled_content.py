from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class CrawledContent:
    """Fetched and cleaned result of a URL, keyed by its URL hash."""

    url_hash: str
    url: str
    crawled_at: datetime
    title: Optional[str] = None
    clean_content: Optional[str] = None
    raw_snapshot: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    outbound_links: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.url_hash:
            raise ValueError("url_hash is required")
        self.metadata = dict(self.metadata or {})
        self.outbound_links = list(self.outbound_links or [])

    def preview(self, length: int = 200) -> str:
        return (self.clean_content or "")[:length]

    def __repr__(self):
        return f"<CrawledContent {self.url} links={len(self.outbound_links)}>"
