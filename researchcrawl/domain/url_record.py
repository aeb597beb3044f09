from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional


class UrlStatus(str, Enum):
    PENDING = "pending"
    CRAWLED = "crawled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not UrlStatus.PENDING


@dataclass
class UrlRecord:
    """A URL accepted into a research run's ledger.

    `url_hash`, `domain` and `depth` never change after creation.
    """

    research_id: int
    url: str
    url_hash: str
    domain: str
    depth: int
    discovered_at: datetime
    status: UrlStatus = UrlStatus.PENDING
    priority: int = 5
    relevance_score: float = 0.5
    http_status: Optional[int] = None
    attempts: int = 0
    last_error: Optional[str] = None
    last_crawled_at: Optional[datetime] = None
    next_eligible_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.url_hash:
            raise ValueError("url_hash is required")
        if self.depth is None or self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth!r}")
        if not 1 <= self.priority <= 10:
            raise ValueError(f"priority must be in [1, 10], got {self.priority!r}")
        if not 0.0 <= self.relevance_score <= 1.0:
            raise ValueError(f"relevance_score must be in [0, 1], got {self.relevance_score!r}")
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")
        self.status = UrlStatus(self.status)

    def __repr__(self):
        return f"<UrlRecord {self.url} depth={self.depth} status={self.status.value} priority={self.priority}>"


class RegisterResult(NamedTuple):
    """Outcome of a ledger registration attempt."""
    accepted: bool
    url_hash: str
