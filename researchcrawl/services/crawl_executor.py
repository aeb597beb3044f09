import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, NamedTuple, Optional

from researchcrawl.domain.step_result import OUTCOME_CACHED, OUTCOME_CRAWLED, OUTCOME_IDLE

logger = logging.getLogger(__name__)


class CrawlResult(NamedTuple):
    pages_crawled: int
    stopped: bool
    outcomes: Dict[str, int]


class CrawlExecutor:
    """Runs a frontier to completion on a small worker pool.

    Each worker calls `frontier.step` until a step reports done or the stop
    event is set. Idle steps wait on the stop event instead of spinning.
    """

    def __init__(self, *, workers: int = 4, idle_poll_seconds: float = 0.1):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.workers = int(workers)
        self.idle_poll_seconds = max(0.0, float(idle_poll_seconds))

    def _worker(self, frontier, research_id: int, stop_event: threading.Event, done: threading.Event, tally: Dict[str, int], tally_lock: threading.Lock, on_step: Optional[Callable]) -> None:
        while not done.is_set() and not stop_event.is_set():
            try:
                result = frontier.step(research_id)
            except Exception:
                logger.exception("Worker step failed for research %s", research_id)
                done.set()
                raise
            with tally_lock:
                tally[result.outcome] = tally.get(result.outcome, 0) + 1
            if on_step is not None:
                try:
                    on_step(result)
                except Exception as e:
                    logger.warning("Step callback failed: %s", e)
            if result.done:
                done.set()
                return
            if result.outcome == OUTCOME_IDLE:
                stop_event.wait(self.idle_poll_seconds)

    def run(
        self,
        frontier,
        research_id: int,
        stop_event: Optional[threading.Event] = None,
        on_step: Optional[Callable] = None,
    ) -> CrawlResult:
        stop_event = stop_event if stop_event is not None else threading.Event()
        done = threading.Event()
        tally: Dict[str, int] = {}
        tally_lock = threading.Lock()

        logger.info("Starting research %s with %d worker(s)", research_id, self.workers)
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix=f"research-{research_id}") as pool:
            futures = [
                pool.submit(self._worker, frontier, research_id, stop_event, done, tally, tally_lock, on_step)
                for _ in range(self.workers)
            ]
            for future in futures:
                # re-raises a worker's unexpected exception
                future.result()

        pages = tally.get(OUTCOME_CRAWLED, 0) + tally.get(OUTCOME_CACHED, 0)
        stopped = stop_event.is_set()
        logger.info("Research %s finished: pages=%d stopped=%s outcomes=%s", research_id, pages, stopped, tally)
        return CrawlResult(pages_crawled=pages, stopped=stopped, outcomes=dict(tally))
