from dataclasses import dataclass


@dataclass(frozen=True)
class CrawlProgress:
    """Read-only progress view, recomputed from the ledger on every query."""

    urls_crawled: int = 0
    urls_pending: int = 0
    urls_failed: int = 0
    current_depth: int = 0

    def __post_init__(self):
        for name in ("urls_crawled", "urls_pending", "urls_failed"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

    def to_dict(self) -> dict:
        return {
            "urlsCrawled": self.urls_crawled,
            "urlsPending": self.urls_pending,
            "urlsFailed": self.urls_failed,
            "currentDepth": self.current_depth,
        }
