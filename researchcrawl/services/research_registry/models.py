from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, List, Optional


@dataclass
class ActiveResearch:
    research_id: int
    seed_url: str
    topic: str
    status: str
    started_at: datetime
    last_seen: datetime
    finished_at: Optional[datetime] = None
    steps: int = 0
    current_url: Optional[str] = None
    error: Optional[str] = None
    outcomes: Dict[str, int] = field(default_factory=dict)
    recent_urls: Deque[str] = field(default_factory=lambda: deque(maxlen=20))

    def get_recent_urls(self) -> List[str]:
        """Most recently visited first."""
        return list(reversed(self.recent_urls))

    def to_dict(self) -> dict:
        return {
            "researchId": self.research_id,
            "seedUrl": self.seed_url,
            "topic": self.topic,
            "status": self.status,
            "startedAt": self.started_at.isoformat(),
            "lastSeen": self.last_seen.isoformat(),
            "finishedAt": self.finished_at.isoformat() if self.finished_at else None,
            "steps": self.steps,
            "currentUrl": self.current_url,
            "error": self.error,
            "outcomes": dict(self.outcomes),
            "recentUrls": self.get_recent_urls(),
        }


@dataclass(frozen=True)
class ResearchHandle:
    research_id: int
    stop_event: threading.Event
