import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Set

from researchcrawl.domain import RegisterResult, UrlRecord, UrlStatus
from researchcrawl.repository.urls import UrlsRepository
from researchcrawl.utils.datetime_utils import utc_now
from researchcrawl.utils.url_utils import url_hash as compute_url_hash

logger = logging.getLogger(__name__)


class UrlLedger:
    """Per-run record of every URL accepted into the crawl and its state.

    Records are unique per run by URL hash, never exceed `max_depth`, and only
    move Pending -> Crawled or Pending -> Failed. Workers claim a record before
    fetching it so two workers never fetch the same hash.
    """

    def __init__(
        self,
        urls_repo: UrlsRepository,
        policy_store,
        research_id: int,
        max_depth: int,
        *,
        max_retries: int = 2,
        retry_backoff_ms: int = 2000,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.urls_repo = urls_repo
        self.policy_store = policy_store
        self.research_id = research_id
        self.max_depth = int(max_depth)
        self.max_retries = max(0, int(max_retries))
        self.retry_backoff_ms = max(0, int(retry_backoff_ms))
        self.clock = clock
        self._lock = threading.RLock()
        self._claimed: Set[str] = set()

    def register(self, url: str, domain: str, depth: int, priority: int = 5, relevance_score: float = 0.5) -> RegisterResult:
        if depth is None or depth < 0:
            raise ValueError(f"depth must be >= 0, got {depth!r}")
        h = compute_url_hash(url)
        if depth > self.max_depth:
            logger.debug("Rejecting %s: depth %s exceeds max %s", url, depth, self.max_depth)
            return RegisterResult(False, h)
        record = UrlRecord(
            research_id=self.research_id,
            url=url,
            url_hash=h,
            domain=domain,
            depth=depth,
            discovered_at=self.clock(),
            priority=priority,
            relevance_score=relevance_score,
        )
        with self._lock:
            accepted = self.urls_repo.insert(record)
        return RegisterResult(accepted, h)

    def filter_new(self, urls: Iterable[str]) -> List[str]:
        """Drop URLs already in the ledger and repeats within `urls`; keeps input order."""
        by_hash: Dict[str, str] = {}
        for url in urls:
            by_hash.setdefault(compute_url_hash(url), url)
        with self._lock:
            known = self.urls_repo.existing_hashes(self.research_id, by_hash.keys())
        return [url for h, url in by_hash.items() if h not in known]

    def get(self, url_hash: str) -> Optional[UrlRecord]:
        return self.urls_repo.get(self.research_id, url_hash)

    def records(self, status: Optional[UrlStatus] = None) -> List[UrlRecord]:
        return self.urls_repo.list_by_research(self.research_id, status)

    def count_by_status(self) -> Dict[UrlStatus, int]:
        return self.urls_repo.count_by_status(self.research_id)

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._claimed)

    def claim(self, url_hash: str) -> bool:
        with self._lock:
            if url_hash in self._claimed:
                return False
            record = self.get(url_hash)
            if record is None or record.status is not UrlStatus.PENDING:
                return False
            self._claimed.add(url_hash)
            return True

    def release(self, url_hash: str) -> None:
        with self._lock:
            self._claimed.discard(url_hash)

    def next_batch(self, limit: int) -> List[UrlRecord]:
        """Pending records ready to fetch now, in crawl order.

        Skips records claimed by another worker, records waiting out a retry
        backoff, and records whose domain is still inside its crawl delay.
        """
        if limit <= 0:
            return []
        with self._lock:
            candidates = self.urls_repo.list_pending(self.research_id, self.clock())
            batch: List[UrlRecord] = []
            for record in candidates:
                if record.url_hash in self._claimed:
                    continue
                if not self.policy_store.can_fetch_now(record.domain):
                    continue
                batch.append(record)
                if len(batch) >= limit:
                    break
            return batch

    def _transition(self, url_hash: str, status: UrlStatus, http_status: Optional[int], error: Optional[str]) -> bool:
        record = self.get(url_hash)
        if record is None:
            raise ValueError(f"Unknown url_hash {url_hash} for research {self.research_id}")
        if record.status.is_terminal:
            logger.debug("Ignoring %s transition for terminal record %s", status.value, record.url)
            return False
        record.status = status
        record.http_status = http_status
        record.attempts += 1
        record.last_error = error
        record.last_crawled_at = self.clock()
        record.next_eligible_at = None
        self.urls_repo.update(record)
        return True

    def mark_crawled(self, url_hash: str, http_status: Optional[int]) -> bool:
        with self._lock:
            return self._transition(url_hash, UrlStatus.CRAWLED, http_status, None)

    def mark_failed(self, url_hash: str, reason: str, http_status: Optional[int] = None) -> bool:
        with self._lock:
            changed = self._transition(url_hash, UrlStatus.FAILED, http_status, reason)
        if changed:
            logger.info("Marked %s failed: %s", url_hash, reason)
        return changed

    def record_failure(self, url_hash: str, reason: str, retryable: bool, http_status: Optional[int] = None) -> UrlStatus:
        """Apply the retry policy to a failed fetch and return the record's new status.

        Retryable failures stay Pending with an exponential backoff until
        `max_retries` extra attempts are used up.
        """
        with self._lock:
            record = self.get(url_hash)
            if record is None:
                raise ValueError(f"Unknown url_hash {url_hash} for research {self.research_id}")
            if record.status.is_terminal:
                return record.status
            if not retryable or record.attempts >= self.max_retries:
                self._transition(url_hash, UrlStatus.FAILED, http_status, reason)
                logger.info("Giving up on %s after %s attempt(s): %s", record.url, record.attempts + 1, reason)
                return UrlStatus.FAILED
            record.attempts += 1
            record.http_status = http_status
            record.last_error = reason
            record.last_crawled_at = self.clock()
            backoff = self.retry_backoff_ms * (2 ** (record.attempts - 1))
            record.next_eligible_at = record.last_crawled_at + timedelta(milliseconds=backoff)
            self.urls_repo.update(record)
            logger.info("Retrying %s in %sms (attempt %s): %s", record.url, backoff, record.attempts, reason)
            return UrlStatus.PENDING
