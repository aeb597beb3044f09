import logging

from researchcrawl.domain import CrawlProgress, UrlStatus
from researchcrawl.exceptions import ResearchNotFoundError

logger = logging.getLogger(__name__)


class ProgressAggregator:
    """Read-only progress views over the ledger tables. Never mutates anything."""

    def __init__(self, urls_repo, runs_repo):
        self.urls_repo = urls_repo
        self.runs_repo = runs_repo

    def snapshot(self, research_id: int) -> CrawlProgress:
        counts = self.urls_repo.count_by_status(research_id)
        depth = self.urls_repo.max_depth_by_status(research_id, UrlStatus.CRAWLED)
        return CrawlProgress(
            urls_crawled=counts.get(UrlStatus.CRAWLED, 0),
            urls_pending=counts.get(UrlStatus.PENDING, 0),
            urls_failed=counts.get(UrlStatus.FAILED, 0),
            current_depth=depth or 0,
        )

    def report(self, research_id: int) -> dict:
        run = self.runs_repo.get_run(research_id)
        if run is None:
            raise ResearchNotFoundError(research_id)
        return {
            "researchId": research_id,
            "status": run.status,
            "progress": self.snapshot(research_id).to_dict(),
            "config": run.config.to_dict(),
        }
