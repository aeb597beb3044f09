from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Optional

from researchcrawl.domain import ResearchConfig
from researchcrawl.services.crawl_frontier import CrawlFrontier
from researchcrawl.services.url_ledger import UrlLedger
from researchcrawl.utils.datetime_utils import utc_now


class ResearchEngineFactory:
    """Builds the per-run ledger and frontier around the shared, process-wide services."""

    def __init__(
        self,
        *,
        urls_repo,
        policy_store,
        content_cache,
        evaluator,
        fetcher,
        robots_service=None,
        user_agent: str = "ResearchCrawl/0.1",
        fetch_timeout: Optional[float] = None,
        max_retries: int = 2,
        retry_backoff_ms: int = 2000,
        relevance_batch_size: int = 20,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.urls_repo = urls_repo
        self.policy_store = policy_store
        self.content_cache = content_cache
        self.evaluator = evaluator
        self.fetcher = fetcher
        self.robots_service = robots_service
        self.user_agent = user_agent
        self.fetch_timeout = fetch_timeout
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms
        self.relevance_batch_size = relevance_batch_size
        self.clock = clock

    def create_ledger(self, research_id: int, config: ResearchConfig) -> UrlLedger:
        return UrlLedger(
            self.urls_repo,
            self.policy_store,
            research_id,
            config.max_depth,
            max_retries=self.max_retries,
            retry_backoff_ms=self.retry_backoff_ms,
            clock=self.clock,
        )

    def create(self, research_id: int, config: ResearchConfig, stop_event: Optional[threading.Event] = None) -> CrawlFrontier:
        return CrawlFrontier(
            research_id=research_id,
            config=config,
            ledger=self.create_ledger(research_id, config),
            policy_store=self.policy_store,
            content_cache=self.content_cache,
            evaluator=self.evaluator,
            fetcher=self.fetcher,
            robots_service=self.robots_service,
            user_agent=self.user_agent,
            fetch_timeout=self.fetch_timeout,
            relevance_batch_size=self.relevance_batch_size,
            stop_event=stop_event,
        )
