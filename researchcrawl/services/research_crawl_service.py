import logging
from typing import Callable, Dict, List, Optional

from researchcrawl.domain import CrawledContent, ResearchConfig, UrlRecord, UrlStatus
from researchcrawl.domain.research import MAX_DEPTH, MIN_DEPTH, RUN_CANCELLED, RUN_FAILED, RUN_FINISHED
from researchcrawl.exceptions import InvalidRequestError, ResearchNotFoundError
from researchcrawl.services.research_registry import ResearchHandle
from researchcrawl.utils.url_utils import is_http_url

logger = logging.getLogger(__name__)


class ResearchCrawlService:
    """Entry point for research crawls.

    Validates requests, records each run in `research_runs`, drives the
    frontier through the executor and shapes the crawl response.

    `summarizer(topic, pages) -> str` is optional; without one `aiSummary`
    is omitted even when a request asks for it.
    """

    def __init__(
        self,
        *,
        runs_repo,
        urls_repo,
        content_cache,
        engine_factory,
        executor,
        progress,
        registry,
        summarizer: Optional[Callable[[str, List[CrawledContent]], Optional[str]]] = None,
        default_max_pages: int = 50,
        max_pages_limit: int = 500,
        default_threshold: float = 0.5,
        respect_robots: bool = True,
        same_domain_only: bool = True,
    ):
        self.runs_repo = runs_repo
        self.urls_repo = urls_repo
        self.content_cache = content_cache
        self.engine_factory = engine_factory
        self.executor = executor
        self.progress_aggregator = progress
        self.registry = registry
        self.summarizer = summarizer
        self.default_max_pages = default_max_pages
        self.max_pages_limit = max_pages_limit
        self.default_threshold = default_threshold
        self.respect_robots = respect_robots
        self.same_domain_only = same_domain_only

    def validate(
        self,
        url: Optional[str],
        *,
        topic: Optional[str] = None,
        max_depth: Optional[int] = None,
        max_pages: Optional[int] = None,
        relevance_threshold: Optional[float] = None,
        force_refresh: bool = False,
        summarize: bool = False,
    ) -> ResearchConfig:
        """Turn request fields into a `ResearchConfig`, or raise `InvalidRequestError`."""
        if not is_http_url(url):
            raise InvalidRequestError("url", "must be an absolute http(s) URL")
        depth = MIN_DEPTH if max_depth is None else max_depth
        if not MIN_DEPTH <= depth <= MAX_DEPTH:
            raise InvalidRequestError("maxDepth", f"must be between {MIN_DEPTH} and {MAX_DEPTH}")
        pages = self.default_max_pages if max_pages is None else max_pages
        if not 1 <= pages <= self.max_pages_limit:
            raise InvalidRequestError("maxPages", f"must be between 1 and {self.max_pages_limit}")
        threshold = self.default_threshold if relevance_threshold is None else relevance_threshold
        if not 0.0 <= threshold <= 1.0:
            raise InvalidRequestError("relevanceThreshold", "must be between 0 and 1")
        return ResearchConfig(
            seed_url=url.strip(),
            topic=(topic or "").strip(),
            max_depth=depth,
            max_pages=pages,
            relevance_threshold=threshold,
            force_refresh=bool(force_refresh),
            summarize=bool(summarize),
            respect_robots=self.respect_robots,
            same_domain_only=self.same_domain_only,
        )

    def begin(self, cfg: ResearchConfig) -> ResearchHandle:
        run = self.runs_repo.create_run(cfg)
        logger.info("Created research %s for %s (topic=%r)", run.research_id, cfg.seed_url, cfg.topic)
        return self.registry.start(run.research_id, seed_url=cfg.seed_url, topic=cfg.topic)

    def run(self, handle: ResearchHandle, cfg: ResearchConfig) -> None:
        """Crawl until the budget is spent, the frontier drains or the run is cancelled."""
        research_id = handle.research_id

        def on_step(result):
            self.registry.record_step(research_id, outcome=result.outcome, url=result.url)

        try:
            frontier = self.engine_factory.create(research_id, cfg, stop_event=handle.stop_event)
            frontier.seed()
            result = self.executor.run(frontier, research_id, handle.stop_event, on_step=on_step)
        except Exception as e:
            logger.exception("Research %s failed", research_id)
            self.runs_repo.finish_run(research_id, RUN_FAILED, str(e))
            self.registry.finish(research_id, status=RUN_FAILED, error=str(e))
            raise

        status = RUN_CANCELLED if result.stopped else RUN_FINISHED
        self.runs_repo.finish_run(research_id, status)
        self.registry.finish(research_id, status=status)

    def crawl(self, cfg: ResearchConfig) -> Dict:
        """Run a research crawl to completion and return the crawl response."""
        handle = self.begin(cfg)
        self.run(handle, cfg)
        return self.build_response(handle.research_id, cfg)

    def _page(self, record: UrlRecord, content: Optional[CrawledContent]) -> Dict:
        metadata = dict(content.metadata) if content else {}
        return {
            "url": record.url,
            "domain": record.domain,
            "depth": record.depth,
            "status": record.status.value,
            "httpStatus": record.http_status,
            "relevanceScore": record.relevance_score,
            "title": content.title if content else None,
            "cleanContent": content.clean_content if content else None,
            "metadata": metadata,
            "summary": metadata.get("description"),
            "error": record.last_error,
            "lastCrawledAt": record.last_crawled_at.isoformat() if record.last_crawled_at else None,
        }

    def build_response(self, research_id: int, cfg: ResearchConfig) -> Dict:
        records = [r for r in self.urls_repo.list_by_research(research_id) if r.status is not UrlStatus.PENDING]
        contents: Dict[str, CrawledContent] = {}
        for r in records:
            if r.status is UrlStatus.CRAWLED:
                content = self.content_cache.get(r.url_hash)
                if content is not None:
                    contents[r.url_hash] = content

        data = {
            "researchId": research_id,
            "pagesCrawled": sum(1 for r in records if r.status is UrlStatus.CRAWLED),
            "results": [self._page(r, contents.get(r.url_hash)) for r in records],
        }
        if cfg.summarize and self.summarizer is not None:
            try:
                data["aiSummary"] = self.summarizer(cfg.topic, list(contents.values()))
            except Exception as e:
                logger.warning("Summarizer failed for research %s: %s", research_id, e)
        return {"success": True, "data": data}

    def results(self, research_id: int) -> Dict:
        run = self.runs_repo.get_run(research_id)
        if run is None:
            raise ResearchNotFoundError(research_id)
        return self.build_response(research_id, run.config)

    def progress(self, research_id: int) -> Dict:
        report = self.progress_aggregator.report(research_id)
        live = self.registry.get(research_id)
        if live is not None:
            report["active"] = live
        return report

    def cancel(self, research_id: int) -> bool:
        if self.runs_repo.get_run(research_id) is None:
            raise ResearchNotFoundError(research_id)
        if not self.registry.cancel(research_id):
            return False
        self.runs_repo.finish_run(research_id, RUN_CANCELLED)
        logger.info("Cancellation requested for research %s", research_id)
        return True

    def list_active(self) -> List[Dict]:
        return self.registry.list_active()
