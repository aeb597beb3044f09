from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

MIN_DEPTH = 1
MAX_DEPTH = 5

RUN_RUNNING = "running"
RUN_FINISHED = "finished"
RUN_CANCELLED = "cancelled"
RUN_FAILED = "failed"
RUN_STATUSES = (RUN_RUNNING, RUN_FINISHED, RUN_CANCELLED, RUN_FAILED)


@dataclass(frozen=True)
class ResearchConfig:
    """Budget and behavior of one research run."""

    seed_url: str
    topic: str = ""
    max_depth: int = 1
    max_pages: int = 50
    relevance_threshold: float = 0.5
    force_refresh: bool = False
    summarize: bool = False
    respect_robots: bool = True
    same_domain_only: bool = True

    def __post_init__(self):
        if not MIN_DEPTH <= self.max_depth <= MAX_DEPTH:
            raise ValueError(f"max_depth must be in [{MIN_DEPTH}, {MAX_DEPTH}], got {self.max_depth!r}")
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {self.max_pages!r}")
        if not 0.0 <= self.relevance_threshold <= 1.0:
            raise ValueError(f"relevance_threshold must be in [0, 1], got {self.relevance_threshold!r}")

    def to_dict(self) -> dict:
        return {
            "maxDepth": self.max_depth,
            "maxPages": self.max_pages,
            "relevanceThreshold": self.relevance_threshold,
        }


@dataclass
class ResearchRun:
    research_id: int
    config: ResearchConfig
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    def __post_init__(self):
        if self.status not in RUN_STATUSES:
            raise ValueError(f"unknown run status {self.status!r}")

    def __repr__(self):
        return f"<ResearchRun id={self.research_id} seed={self.config.seed_url} status={self.status}>"
