import pytest

from researchcrawl.domain import UrlRecord, UrlStatus
from researchcrawl.exceptions import ResearchNotFoundError
from researchcrawl.services.progress_aggregator import ProgressAggregator
from researchcrawl.utils.url_utils import url_hash


def _add(urls_repo, research_id, url, depth, status, clock):
    record = UrlRecord(
        research_id=research_id,
        url=url,
        url_hash=url_hash(url),
        domain="example.com",
        depth=depth,
        discovered_at=clock(),
    )
    urls_repo.insert(record)
    if status is not UrlStatus.PENDING:
        record = urls_repo.get(research_id, record.url_hash)
        record.status = status
        urls_repo.update(record)


def test_snapshot_of_empty_research(urls_repo, runs_repo, research_id):
    progress = ProgressAggregator(urls_repo, runs_repo).snapshot(research_id)
    assert progress.to_dict() == {"urlsCrawled": 0, "urlsPending": 0, "urlsFailed": 0, "currentDepth": 0}


def test_snapshot_counts_statuses_and_deepest_crawled(urls_repo, runs_repo, research_id, clock):
    _add(urls_repo, research_id, "https://example.com", 0, UrlStatus.CRAWLED, clock)
    _add(urls_repo, research_id, "https://example.com/a", 1, UrlStatus.CRAWLED, clock)
    _add(urls_repo, research_id, "https://example.com/b", 1, UrlStatus.FAILED, clock)
    _add(urls_repo, research_id, "https://example.com/a/c", 2, UrlStatus.PENDING, clock)

    progress = ProgressAggregator(urls_repo, runs_repo).snapshot(research_id)

    assert (progress.urls_crawled, progress.urls_pending, progress.urls_failed) == (2, 1, 1)
    assert progress.current_depth == 1


def test_report_includes_run_status_and_config(urls_repo, runs_repo, research_id):
    report = ProgressAggregator(urls_repo, runs_repo).report(research_id)
    assert report["researchId"] == research_id
    assert report["status"] == "running"
    assert report["config"] == {"maxDepth": 1, "maxPages": 50, "relevanceThreshold": 0.5}


def test_report_unknown_research_raises(urls_repo, runs_repo):
    with pytest.raises(ResearchNotFoundError):
        ProgressAggregator(urls_repo, runs_repo).report(12345)
