from __future__ import annotations

import threading
from typing import Dict, List, Optional

from researchcrawl.domain.research import RUN_FINISHED
from researchcrawl.utils.datetime_utils import utc_now

from .cancellation import _StopTokens
from .models import ResearchHandle
from .store import _ResearchRecordStore


class InMemoryResearchRegistry:
    """Thread-safe, process-local view of running and recent research runs.

    Owns the stop event of every running research. Durable run state lives in
    the `research_runs` table; this registry only serves live status and
    cancellation.
    """

    def __init__(self, *, max_completed_records: int = 1000):
        self._lock = threading.Lock()
        self._records = _ResearchRecordStore(max_completed_records=max_completed_records)
        self._tokens = _StopTokens()

    def start(self, research_id: int, *, seed_url: str, topic: str = "") -> ResearchHandle:
        with self._lock:
            self._records.add_running(research_id=research_id, seed_url=seed_url, topic=topic, now=utc_now())
            return ResearchHandle(research_id=research_id, stop_event=self._tokens.issue(research_id))

    def record_step(self, research_id: int, *, outcome: Optional[str] = None, url: Optional[str] = None) -> bool:
        with self._lock:
            return self._records.touch(research_id, outcome=outcome, url=url, now=utc_now())

    def finish(self, research_id: int, *, status: str = RUN_FINISHED, error: Optional[str] = None) -> bool:
        with self._lock:
            ok = self._records.close(research_id, status=status, error=error, now=utc_now())
            self._tokens.discard(research_id)
            self._drop_evicted()
            return ok

    def cancel(self, research_id: int) -> bool:
        """Signal the run's workers to stop and mark it cancelled.

        Returns False when the research is not running.
        """
        with self._lock:
            if not self._tokens.signal(research_id):
                return False
            if not self._records.close_cancelled(research_id, now=utc_now()):
                return False
            self._tokens.discard(research_id)
            self._drop_evicted()
            return True

    def _drop_evicted(self) -> None:
        for evicted in self._records.evict_overflow():
            self._tokens.discard(evicted)

    def get(self, research_id: int) -> Optional[Dict]:
        with self._lock:
            rec = self._records.get(research_id)
            return rec.to_dict() if rec else None

    def get_stop_event(self, research_id: int):
        with self._lock:
            return self._tokens.get(research_id)

    def list_active(self) -> List[Dict]:
        with self._lock:
            return [r.to_dict() for r in self._records.running()]
