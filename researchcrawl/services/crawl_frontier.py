import logging
import threading
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from researchcrawl.domain import CrawledContent, RegisterResult, ResearchConfig, StepResult, UrlRecord, UrlStatus
from researchcrawl.domain.step_result import (
    OUTCOME_BUDGET,
    OUTCOME_CACHED,
    OUTCOME_CANCELLED,
    OUTCOME_CRAWLED,
    OUTCOME_FAILED,
    OUTCOME_IDLE,
    OUTCOME_RETRY,
)
from researchcrawl.exceptions import HttpFetchError
from researchcrawl.services.link_relevance_evaluator import CONTEXT_PAGE_LIMIT, build_context_summary
from researchcrawl.utils.datetime_utils import utc_now
from researchcrawl.utils.url_utils import absolutize, extract_domain

logger = logging.getLogger(__name__)

SEED_PRIORITY = 10
SEED_SCORE = 1.0


def is_retryable_status(http_status: int) -> bool:
    return http_status in (408, 429) or http_status >= 500


def _site(domain: str) -> str:
    return domain[4:] if domain.startswith("www.") else domain


class CrawlFrontier:
    """Drives one research run, one unit of work per `step` call.

    Safe to call `step` from several worker threads: the ledger's claim set
    keeps each URL with a single worker and the policy store keeps each
    domain to a single in-flight fetch.
    """

    def __init__(
        self,
        *,
        research_id: int,
        config: ResearchConfig,
        ledger,
        policy_store,
        content_cache,
        evaluator,
        fetcher,
        robots_service=None,
        user_agent: str = "ResearchCrawl/0.1",
        fetch_timeout: Optional[float] = None,
        relevance_batch_size: int = 20,
        candidate_window: int = 50,
        stop_event: Optional[threading.Event] = None,
    ):
        self.research_id = research_id
        self.config = config
        self.ledger = ledger
        self.policy_store = policy_store
        self.content_cache = content_cache
        self.evaluator = evaluator
        self.fetcher = fetcher
        self.robots_service = robots_service
        self.user_agent = user_agent
        self.fetch_timeout = fetch_timeout
        self.relevance_batch_size = relevance_batch_size
        self.candidate_window = candidate_window
        self.stop_event = stop_event
        self.seed_domain = extract_domain(config.seed_url)
        self._claim_lock = threading.Lock()
        self._context_lock = threading.Lock()
        self._context_pages: List[CrawledContent] = []

    def _is_stopped(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    def _ensure_domain(self, domain: str, scheme: str = "https") -> None:
        _, created = self.policy_store.ensure_domain(domain)
        if not created or not self.config.respect_robots or self.robots_service is None:
            return
        policy = self.robots_service.fetch_policy(domain, scheme=scheme)
        if policy.directives is not None or policy.crawl_delay_ms is not None:
            self.policy_store.set_policy(domain, policy.crawl_delay_ms, policy.directives)

    def seed(self) -> RegisterResult:
        """Register the seed URL at depth 0 with top priority."""
        url = self.config.seed_url
        self._ensure_domain(self.seed_domain, urlparse(url).scheme or "https")
        result = self.ledger.register(url, self.seed_domain, 0, priority=SEED_PRIORITY, relevance_score=SEED_SCORE)
        logger.info("Seeded research %s with %s (accepted=%s)", self.research_id, url, result.accepted)
        return result

    def is_done(self) -> bool:
        counts = self.ledger.count_by_status()
        if counts[UrlStatus.CRAWLED] >= self.config.max_pages:
            return True
        return counts[UrlStatus.PENDING] == 0 and self.ledger.in_flight_count() == 0

    def step(self, research_id: int) -> StepResult:
        if research_id != self.research_id:
            raise ValueError(f"Frontier belongs to research {self.research_id}, not {research_id}")
        if self._is_stopped():
            return StepResult(True, OUTCOME_CANCELLED)

        record = self._claim_next()
        if record is None:
            counts = self.ledger.count_by_status()
            if counts[UrlStatus.CRAWLED] >= self.config.max_pages:
                return StepResult(True, OUTCOME_BUDGET)
            return StepResult(self.is_done(), OUTCOME_IDLE)

        try:
            outcome = self._process(record)
        finally:
            self.policy_store.release(record.domain)
            self.ledger.release(record.url_hash)

        if outcome == OUTCOME_CANCELLED:
            return StepResult(True, outcome, record.url)
        return StepResult(self.is_done(), outcome, record.url)

    def _claim_next(self) -> Optional[UrlRecord]:
        """Claim the highest-ranked eligible record, or None.

        Once a domain refuses `try_acquire`, its later candidates are skipped for
        the rest of the pass so a lower-priority URL never overtakes a
        higher-priority one on the same domain.
        """
        with self._claim_lock:
            crawled = self.ledger.count_by_status()[UrlStatus.CRAWLED]
            if crawled + self.ledger.in_flight_count() >= self.config.max_pages:
                return None
            busy_domains = set()
            for record in self.ledger.next_batch(self.candidate_window):
                if record.domain in busy_domains:
                    continue
                if not self.ledger.claim(record.url_hash):
                    continue
                if not self.policy_store.try_acquire(record.domain):
                    self.ledger.release(record.url_hash)
                    busy_domains.add(record.domain)
                    continue
                return record
            return None

    def _process(self, record: UrlRecord) -> str:
        if self.config.respect_robots and not self.policy_store.is_allowed(record.url, self.user_agent):
            self.ledger.mark_failed(record.url_hash, "disallowed by robots.txt")
            return OUTCOME_FAILED

        if self.content_cache.has(record.url_hash, force_refresh=self.config.force_refresh):
            cached = self.content_cache.get(record.url_hash)
            if cached is not None:
                logger.info("Serving %s from content cache", record.url)
                self.ledger.mark_crawled(record.url_hash, cached.metadata.get("http_status", 200))
                self._remember_context(cached)
                self._process_links(record, cached.outbound_links)
                return OUTCOME_CACHED

        self.policy_store.record_fetch(record.domain)
        try:
            result = self.fetcher.fetch(record.url, timeout=self.fetch_timeout, stop_event=self.stop_event)
        except HttpFetchError as e:
            if self._is_stopped():
                logger.info("Fetch of %s interrupted by cancellation", record.url)
                return OUTCOME_CANCELLED
            logger.warning("Fetch failed for %s: %s", record.url, e)
            status = self.ledger.record_failure(record.url_hash, str(e), retryable=e.retryable)
            return OUTCOME_RETRY if status is UrlStatus.PENDING else OUTCOME_FAILED
        except Exception as e:
            logger.error("Fetch error for %s: %s", record.url, e, exc_info=True)
            self.ledger.record_failure(record.url_hash, f"fetch error: {e}", retryable=False)
            return OUTCOME_FAILED
        finally:
            self.policy_store.release(record.domain)

        if self._is_stopped():
            logger.info("Discarding fetch of %s after cancellation", record.url)
            return OUTCOME_CANCELLED

        if result.http_status >= 400:
            retryable = is_retryable_status(result.http_status)
            logger.warning("Non-success status for %s: %s", record.url, result.http_status)
            status = self.ledger.record_failure(
                record.url_hash, f"HTTP {result.http_status}", retryable, http_status=result.http_status
            )
            return OUTCOME_RETRY if status is UrlStatus.PENDING else OUTCOME_FAILED

        metadata = dict(result.metadata or {})
        metadata["http_status"] = result.http_status
        content = CrawledContent(
            url_hash=record.url_hash,
            url=record.url,
            crawled_at=utc_now(),
            title=result.title,
            clean_content=result.clean_content,
            raw_snapshot=result.raw_content,
            metadata=metadata,
            outbound_links=list(result.extracted_links or []),
        )
        try:
            self.content_cache.put(content)
        except Exception:
            logger.exception("Could not cache content for %s", record.url)

        self.ledger.mark_crawled(record.url_hash, result.http_status)
        logger.info("Crawled %s -> status %s, %d links", record.url, result.http_status, len(content.outbound_links))
        self._remember_context(content)
        self._process_links(record, content.outbound_links)
        return OUTCOME_CRAWLED

    def _remember_context(self, content: CrawledContent) -> None:
        with self._context_lock:
            if len(self._context_pages) < CONTEXT_PAGE_LIMIT:
                self._context_pages.append(content)

    def _context_summaries(self) -> List[str]:
        with self._context_lock:
            pages = list(self._context_pages)
        return [build_context_summary(pages)] if pages else []

    def _candidate_links(self, record: UrlRecord, links: Sequence[str]) -> List[str]:
        candidates: List[str] = []
        for link in links:
            absolute = absolutize(record.url, link)
            if absolute is None:
                continue
            if self.config.same_domain_only and _site(extract_domain(absolute)) != _site(self.seed_domain):
                continue
            candidates.append(absolute)

        candidates = self.ledger.filter_new(candidates)
        if not self.config.respect_robots:
            return candidates

        allowed = []
        for url in candidates:
            self._ensure_domain(extract_domain(url), urlparse(url).scheme)
            if self.policy_store.is_allowed(url, self.user_agent):
                allowed.append(url)
            else:
                logger.debug("Skipping %s: disallowed by robots.txt", url)
        return allowed

    def _process_links(self, record: UrlRecord, links: Sequence[str]) -> int:
        next_depth = record.depth + 1
        if next_depth > self.config.max_depth or not links:
            return 0

        try:
            candidates = self._candidate_links(record, links)
            if not candidates:
                return 0
            batch = self.evaluator.evaluate_batch(
                candidates,
                self.config.topic,
                self._context_summaries(),
                self.config.relevance_threshold,
                self.relevance_batch_size,
            )
            accepted = 0
            for result in self.evaluator.rank_urls(batch.results):
                if not result.should_crawl:
                    continue
                domain = extract_domain(result.url)
                self._ensure_domain(domain, urlparse(result.url).scheme)
                registered = self.ledger.register(
                    result.url, domain, next_depth, priority=result.priority, relevance_score=result.relevance_score
                )
                if registered.accepted:
                    accepted += 1
        except Exception:
            logger.exception("Error processing links from %s", record.url)
            return 0

        logger.info(
            "Queued %d of %d links from %s at depth %d", accepted, batch.total_evaluated, record.url, next_depth
        )
        return accepted
