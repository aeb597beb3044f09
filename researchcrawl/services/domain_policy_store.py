import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Optional, Set

from researchcrawl.domain import Domain
from researchcrawl.repository.domains import DomainsRepository
from researchcrawl.services.robots_cache import RobotsCache
from researchcrawl.utils.datetime_utils import elapsed_ms, utc_now
from researchcrawl.utils.url_utils import extract_domain

logger = logging.getLogger(__name__)

DEFAULT_MAX_CACHED_DOMAINS = 4096


class DomainPolicyStore:
    """Single source of truth for "may I fetch this domain now".

    Holds per-domain crawl delay, robots directives and the last fetch time,
    writing through to `DomainsRepository`. Also caps in-flight fetches at one
    per domain so concurrent workers never hit the same host at once.

    At most `max_cached_domains` policies stay in memory; the least recently
    used idle domain is dropped first and reloaded from the repository on demand.
    """

    def __init__(
        self,
        domains_repo: DomainsRepository,
        default_crawl_delay_ms: int = 1000,
        robots_cache: Optional[RobotsCache] = None,
        clock: Callable[[], datetime] = utc_now,
        max_cached_domains: int = DEFAULT_MAX_CACHED_DOMAINS,
    ):
        if default_crawl_delay_ms < 0:
            raise ValueError("default_crawl_delay_ms must be >= 0")
        self.domains_repo = domains_repo
        self.default_crawl_delay_ms = int(default_crawl_delay_ms)
        self.robots_cache = robots_cache if robots_cache is not None else RobotsCache()
        self.clock = clock
        self._lock = threading.Lock()
        self.max_cached_domains = max(1, int(max_cached_domains or 1))
        self._domains: "OrderedDict[str, Domain]" = OrderedDict()
        self._in_flight: Set[str] = set()

    def _remember(self, domain: str, state: Domain) -> Domain:
        self._domains[domain] = state
        self._domains.move_to_end(domain)
        if len(self._domains) > self.max_cached_domains:
            # in-flight domains stay pinned
            for candidate in list(self._domains):
                if len(self._domains) <= self.max_cached_domains:
                    break
                if candidate != domain and candidate not in self._in_flight:
                    del self._domains[candidate]
        return state

    def _load(self, domain: str) -> Optional[Domain]:
        cached = self._domains.get(domain)
        if cached is not None:
            self._domains.move_to_end(domain)
            return cached
        stored = self.domains_repo.get(domain)
        if stored is not None:
            self._remember(domain, stored)
        return stored

    def ensure_domain(self, domain: str) -> tuple[Domain, bool]:
        """Return the domain's policy, creating it with the default delay on first sight."""
        with self._lock:
            existing = self._load(domain)
            if existing is not None:
                return existing, False
            stored, created = self.domains_repo.ensure(Domain(domain=domain, crawl_delay_ms=self.default_crawl_delay_ms))
            self._remember(domain, stored)
            if created:
                logger.debug("Registered domain %s (delay=%sms)", domain, stored.crawl_delay_ms)
            return stored, created

    def get(self, domain: str) -> Optional[Domain]:
        with self._lock:
            return self._load(domain)

    def set_policy(self, domain: str, crawl_delay_ms: Optional[int], robots_directives: Optional[str]) -> Domain:
        """Override the crawl delay and robots directives for `domain`.

        A `crawl_delay_ms` of None keeps the current delay.
        """
        with self._lock:
            current = self._load(domain) or Domain(domain=domain, crawl_delay_ms=self.default_crawl_delay_ms)
            delay = current.crawl_delay_ms if crawl_delay_ms is None else crawl_delay_ms
            updated = Domain(
                domain=domain,
                crawl_delay_ms=delay,
                robots_directives=robots_directives,
                last_crawl_at=current.last_crawl_at,
            )
            saved = self._remember(domain, self.domains_repo.save(updated))
            logger.info("Policy for %s: delay=%sms robots=%s", domain, delay, "yes" if robots_directives else "no")
            return saved

    def _can_fetch(self, domain: str, now: datetime) -> bool:
        state = self._load(domain)
        if state is None or state.last_crawl_at is None:
            return True
        return elapsed_ms(state.last_crawl_at, now) >= state.crawl_delay_ms

    def can_fetch_now(self, domain: str) -> bool:
        with self._lock:
            return self._can_fetch(domain, self.clock())

    def record_fetch(self, domain: str, timestamp: Optional[datetime] = None) -> Domain:
        """Record a fetch attempt; `last_crawl_at` never moves backwards."""
        timestamp = timestamp or self.clock()
        with self._lock:
            current = self._load(domain) or Domain(domain=domain, crawl_delay_ms=self.default_crawl_delay_ms)
            if current.last_crawl_at is not None and timestamp <= current.last_crawl_at:
                return current
            current.last_crawl_at = timestamp
            return self._remember(domain, self.domains_repo.save(current))

    def try_acquire(self, domain: str) -> bool:
        """Claim the domain's single fetch slot if it is eligible and idle.

        Callers that get False should skip the candidate, not block on it.
        """
        with self._lock:
            if domain in self._in_flight:
                return False
            if not self._can_fetch(domain, self.clock()):
                return False
            self._in_flight.add(domain)
            return True

    def release(self, domain: str) -> None:
        with self._lock:
            self._in_flight.discard(domain)

    def is_allowed(self, url: str, user_agent: str) -> bool:
        domain = extract_domain(url)
        state = self.get(domain)
        if state is None or not state.robots_directives:
            return True
        parser = self.robots_cache.parser_for(domain, state.robots_directives)
        if parser is None:
            return True
        try:
            return parser.can_fetch(user_agent, url)
        except Exception:
            logger.exception("Error checking robots permission for %s", url)
            return True
