from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Domain:
    """Per-domain politeness state: crawl delay, robots directives, last fetch."""

    domain: str
    crawl_delay_ms: int = 1000
    robots_directives: Optional[str] = None
    last_crawl_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.domain:
            raise ValueError("domain is required")
        if self.crawl_delay_ms is None or int(self.crawl_delay_ms) < 0:
            raise ValueError(f"crawl_delay_ms must be >= 0, got {self.crawl_delay_ms!r}")
        self.crawl_delay_ms = int(self.crawl_delay_ms)

    def __repr__(self):
        return f"<Domain {self.domain} delay={self.crawl_delay_ms}ms last={self.last_crawl_at}>"
