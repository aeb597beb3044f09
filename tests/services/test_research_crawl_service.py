from unittest.mock import Mock

import pytest

from researchcrawl.domain import FetchResult, ResearchConfig
from researchcrawl.exceptions import InvalidRequestError, ResearchNotFoundError
from researchcrawl.services.content_cache import ContentCache
from researchcrawl.services.crawl_executor import CrawlExecutor
from researchcrawl.services.domain_policy_store import DomainPolicyStore
from researchcrawl.services.link_relevance_evaluator import LinkRelevanceEvaluator
from researchcrawl.services.progress_aggregator import ProgressAggregator
from researchcrawl.services.research_crawl_service import ResearchCrawlService
from researchcrawl.services.research_engine_factory import ResearchEngineFactory
from researchcrawl.services.research_registry import InMemoryResearchRegistry

SEED = "https://example.com"

PAGES = {
    SEED: FetchResult(
        200,
        "<html>home</html>",
        [
            "https://example.com/docs/intro",
            "https://example.com/docs/missing",
            "https://example.com/guide/start",
            "https://example.com/tag/python",
        ],
        "Home",
        "Zebra stripes and how they work.",
        {"description": "All about zebras"},
    ),
    "https://example.com/docs/intro": FetchResult(200, "<html>intro</html>", [], "Intro", "Stripes deter flies."),
    "https://example.com/docs/missing": FetchResult(404, "not found", []),
    "https://example.com/guide/start": FetchResult(200, "<html>guide</html>", [], "Guide", "Field guide."),
}


class FakeFetcher:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def fetch(self, url, timeout=None, stop_event=None):
        self.calls.append(url)
        return self.pages.get(url, FetchResult(404, "", []))


@pytest.fixture
def registry():
    return InMemoryResearchRegistry()


@pytest.fixture
def make_service(runs_repo, urls_repo, domains_repo, contents_repo, registry):
    def _make(fetcher=None, executor=None, summarizer=None):
        policy = DomainPolicyStore(domains_repo, default_crawl_delay_ms=0)
        cache = ContentCache(contents_repo)
        factory = ResearchEngineFactory(
            urls_repo=urls_repo,
            policy_store=policy,
            content_cache=cache,
            evaluator=LinkRelevanceEvaluator(None),
            fetcher=fetcher or FakeFetcher(PAGES),
            user_agent="TestBot",
            max_retries=0,
        )
        return ResearchCrawlService(
            runs_repo=runs_repo,
            urls_repo=urls_repo,
            content_cache=cache,
            engine_factory=factory,
            executor=executor or CrawlExecutor(workers=2, idle_poll_seconds=0.001),
            progress=ProgressAggregator(urls_repo, runs_repo),
            registry=registry,
            summarizer=summarizer,
        )
    return _make


def test_validate_applies_defaults(make_service):
    cfg = make_service().validate(" https://example.com ")
    assert cfg == ResearchConfig(seed_url="https://example.com", topic="", max_depth=1, max_pages=50, relevance_threshold=0.5)


@pytest.mark.parametrize(
    "kwargs,field",
    [
        ({"url": "ftp://example.com"}, "url"),
        ({"url": None}, "url"),
        ({"url": SEED, "max_depth": 0}, "maxDepth"),
        ({"url": SEED, "max_depth": 6}, "maxDepth"),
        ({"url": SEED, "max_pages": 0}, "maxPages"),
        ({"url": SEED, "max_pages": 501}, "maxPages"),
        ({"url": SEED, "relevance_threshold": 1.5}, "relevanceThreshold"),
    ],
)
def test_validate_rejects_bad_fields(make_service, kwargs, field):
    service = make_service()
    url = kwargs.pop("url")
    with pytest.raises(InvalidRequestError) as exc:
        service.validate(url, **kwargs)
    assert exc.value.field == field


def test_crawl_returns_crawled_and_failed_pages(make_service, runs_repo, registry):
    service = make_service()
    cfg = service.validate(SEED, topic="zebra stripes", max_depth=1, max_pages=3)

    response = service.crawl(cfg)

    assert response["success"] is True
    data = response["data"]
    assert data["pagesCrawled"] == 3
    assert "aiSummary" not in data
    by_url = {r["url"]: r for r in data["results"]}
    assert set(by_url) == {
        SEED,
        "https://example.com/docs/intro",
        "https://example.com/docs/missing",
        "https://example.com/guide/start",
    }
    home = by_url[SEED]
    assert (home["depth"], home["status"], home["httpStatus"]) == (0, "crawled", 200)
    assert home["title"] == "Home"
    assert home["summary"] == "All about zebras"
    assert home["metadata"]["http_status"] == 200
    missing = by_url["https://example.com/docs/missing"]
    assert (missing["status"], missing["httpStatus"], missing["error"]) == ("failed", 404, "HTTP 404")
    assert missing["cleanContent"] is None

    research_id = data["researchId"]
    assert runs_repo.get_run(research_id).status == "finished"
    assert registry.get(research_id)["status"] == "finished"


def test_crawl_adds_summary_when_requested(make_service):
    summarizer = Mock(return_value="Zebras use stripes against flies.")
    service = make_service(summarizer=summarizer)

    data = service.crawl(service.validate(SEED, topic="zebra stripes", max_pages=1, summarize=True))["data"]

    assert data["aiSummary"] == "Zebras use stripes against flies."
    topic, pages = summarizer.call_args[0]
    assert topic == "zebra stripes"
    assert [p.url for p in pages] == [SEED]


def test_failing_summarizer_omits_summary(make_service):
    service = make_service(summarizer=Mock(side_effect=RuntimeError("model offline")))
    data = service.crawl(service.validate(SEED, max_pages=1, summarize=True))["data"]
    assert "aiSummary" not in data
    assert data["pagesCrawled"] == 1


def test_executor_failure_marks_run_failed(make_service, runs_repo, registry):
    executor = Mock(run=Mock(side_effect=RuntimeError("disk full")))
    service = make_service(executor=executor)
    cfg = service.validate(SEED)
    handle = service.begin(cfg)

    with pytest.raises(RuntimeError):
        service.run(handle, cfg)

    run = runs_repo.get_run(handle.research_id)
    assert (run.status, run.error) == ("failed", "disk full")
    assert registry.get(handle.research_id)["status"] == "failed"


def test_cancel_running_research(make_service, runs_repo):
    service = make_service()
    handle = service.begin(service.validate(SEED))

    assert service.cancel(handle.research_id) is True
    assert handle.stop_event.is_set()
    assert runs_repo.get_run(handle.research_id).status == "cancelled"
    assert service.cancel(handle.research_id) is False


def test_run_after_cancel_crawls_nothing(make_service, runs_repo):
    fetcher = FakeFetcher(PAGES)
    service = make_service(fetcher=fetcher)
    cfg = service.validate(SEED)
    handle = service.begin(cfg)
    service.cancel(handle.research_id)

    service.run(handle, cfg)

    assert fetcher.calls == []
    assert runs_repo.get_run(handle.research_id).status == "cancelled"


def test_cancel_unknown_research_raises(make_service):
    with pytest.raises(ResearchNotFoundError):
        make_service().cancel(999)


def test_progress_includes_live_state_while_running(make_service):
    service = make_service()
    cfg = service.validate(SEED, topic="zebra stripes", max_depth=2, max_pages=10)
    handle = service.begin(cfg)

    report = service.progress(handle.research_id)

    assert report["status"] == "running"
    assert report["config"] == {"maxDepth": 2, "maxPages": 10, "relevanceThreshold": 0.5}
    assert report["progress"]["urlsCrawled"] == 0
    assert report["active"]["seedUrl"] == SEED
    assert [r["researchId"] for r in service.list_active()] == [handle.research_id]


def test_results_for_finished_and_unknown_research(make_service):
    service = make_service()
    data = service.crawl(service.validate(SEED, max_pages=1))["data"]

    again = service.results(data["researchId"])
    assert again["data"]["pagesCrawled"] == 1
    with pytest.raises(ResearchNotFoundError):
        service.results(999)
