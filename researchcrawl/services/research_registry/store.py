from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from researchcrawl.domain.research import RUN_CANCELLED, RUN_RUNNING

from .models import ActiveResearch


class _ResearchRecordStore:
    """Running and recently finished research records, with bounded retention of finished ones."""

    def __init__(self, *, max_completed_records: int):
        if max_completed_records < 0:
            raise ValueError("max_completed_records must be >= 0")
        self._records: Dict[int, ActiveResearch] = {}
        self._max_completed = max_completed_records
        self._completed: Deque[int] = deque()

    def add_running(self, *, research_id: int, seed_url: str, topic: str, now: datetime) -> ActiveResearch:
        rec = ActiveResearch(
            research_id=research_id,
            seed_url=seed_url,
            topic=topic,
            status=RUN_RUNNING,
            started_at=now,
            last_seen=now,
        )
        self._records[research_id] = rec
        return rec

    def get(self, research_id: int) -> Optional[ActiveResearch]:
        return self._records.get(research_id)

    def touch(self, research_id: int, *, outcome: Optional[str], url: Optional[str], now: datetime) -> bool:
        rec = self._records.get(research_id)
        if rec is None:
            return False
        rec.steps += 1
        if outcome:
            rec.outcomes[outcome] = rec.outcomes.get(outcome, 0) + 1
        if url:
            rec.current_url = url
            if url not in rec.recent_urls:
                rec.recent_urls.append(url)
        rec.last_seen = now
        return True

    def close(self, research_id: int, *, status: str, error: Optional[str], now: datetime) -> bool:
        rec = self._records.get(research_id)
        if rec is None:
            return False
        if rec.status != RUN_RUNNING:
            # already closed, e.g. cancelled before the worker finished
            return False
        rec.status = status
        rec.finished_at = now
        rec.last_seen = now
        if error:
            rec.error = error
        self._completed.append(research_id)
        return True

    def close_cancelled(self, research_id: int, *, now: datetime) -> bool:
        return self.close(research_id, status=RUN_CANCELLED, error=None, now=now)

    def evict_overflow(self) -> List[int]:
        evicted: List[int] = []
        while len(self._completed) > self._max_completed:
            oldest = self._completed.popleft()
            if self._records.pop(oldest, None) is not None:
                evicted.append(oldest)
        return evicted

    def running(self) -> List[ActiveResearch]:
        return [r for r in self._records.values() if r.status == RUN_RUNNING]
