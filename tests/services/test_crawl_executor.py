import threading

import pytest

from researchcrawl.domain import StepResult
from researchcrawl.services.crawl_executor import CrawlExecutor


class ScriptedFrontier:
    """Replays a fixed list of step outcomes, then reports done."""

    def __init__(self, outcomes):
        self._outcomes = list(outcomes)
        self._lock = threading.Lock()
        self.calls = 0

    def step(self, research_id):
        with self._lock:
            self.calls += 1
            if not self._outcomes:
                return StepResult(True, "idle")
            outcome = self._outcomes.pop(0)
            return StepResult(not self._outcomes and outcome != "idle", outcome, f"https://example.com/{self.calls}")


def test_workers_must_be_positive():
    with pytest.raises(ValueError):
        CrawlExecutor(workers=0)


def test_single_worker_runs_until_done():
    frontier = ScriptedFrontier(["crawled", "idle", "cached", "failed", "crawled"])
    result = CrawlExecutor(workers=1, idle_poll_seconds=0).run(frontier, 1)

    assert result.pages_crawled == 3
    assert not result.stopped
    assert result.outcomes == {"crawled": 2, "cached": 1, "idle": 1, "failed": 1}


def test_each_run_gets_its_own_outcome_tally():
    executor = CrawlExecutor(workers=1, idle_poll_seconds=0)
    first = executor.run(ScriptedFrontier(["crawled"]), 1)
    second = executor.run(ScriptedFrontier(["failed"]), 2)

    first.outcomes["crawled"] += 10
    assert first.outcomes is not second.outcomes
    assert second.outcomes == {"failed": 1}


def test_on_step_sees_every_result():
    seen = []
    frontier = ScriptedFrontier(["crawled", "crawled"])
    CrawlExecutor(workers=1, idle_poll_seconds=0).run(frontier, 1, on_step=seen.append)
    assert [r.outcome for r in seen] == ["crawled", "crawled"]


def test_failing_on_step_does_not_stop_crawl():
    frontier = ScriptedFrontier(["crawled", "crawled"])

    def broken(result):
        raise RuntimeError("listener down")

    result = CrawlExecutor(workers=1, idle_poll_seconds=0).run(frontier, 1, on_step=broken)
    assert result.pages_crawled == 2


def test_preset_stop_event_skips_work():
    stop = threading.Event()
    stop.set()
    frontier = ScriptedFrontier(["crawled"])

    result = CrawlExecutor(workers=3, idle_poll_seconds=0).run(frontier, 1, stop)

    assert frontier.calls == 0
    assert result.stopped
    assert result.pages_crawled == 0


def test_idle_steps_end_when_stop_is_set():
    stop = threading.Event()

    class IdleFrontier:
        calls = 0

        def step(self, research_id):
            IdleFrontier.calls += 1
            if IdleFrontier.calls >= 3:
                stop.set()
            return StepResult(False, "idle")

    result = CrawlExecutor(workers=1, idle_poll_seconds=0.01).run(IdleFrontier(), 1, stop)
    assert result.stopped
    assert result.outcomes["idle"] >= 3


def test_worker_exception_propagates():
    class Exploding:
        def step(self, research_id):
            raise RuntimeError("db gone")

    with pytest.raises(RuntimeError, match="db gone"):
        CrawlExecutor(workers=2, idle_poll_seconds=0).run(Exploding(), 1)


def test_multiple_workers_drain_real_frontier(urls_repo, domains_repo, contents_repo, research_id):
    from researchcrawl.domain import FetchResult, ResearchConfig, UrlStatus
    from researchcrawl.services.content_cache import ContentCache
    from researchcrawl.services.crawl_frontier import CrawlFrontier
    from researchcrawl.services.domain_policy_store import DomainPolicyStore
    from researchcrawl.services.link_relevance_evaluator import LinkRelevanceEvaluator
    from researchcrawl.services.url_ledger import UrlLedger

    links = [f"https://example.com/docs/page-{i}" for i in range(6)]
    fetched = []
    fetched_lock = threading.Lock()

    class Fetcher:
        def fetch(self, url, timeout=None, stop_event=None):
            with fetched_lock:
                fetched.append(url)
            return FetchResult(200, "<html></html>", links if url == "https://example.com" else [])

    config = ResearchConfig(seed_url="https://example.com", topic="zebra stripes", max_depth=1, max_pages=10)
    policy = DomainPolicyStore(domains_repo, default_crawl_delay_ms=0)
    ledger = UrlLedger(urls_repo, policy, research_id, config.max_depth)
    frontier = CrawlFrontier(
        research_id=research_id,
        config=config,
        ledger=ledger,
        policy_store=policy,
        content_cache=ContentCache(contents_repo),
        evaluator=LinkRelevanceEvaluator(None),
        fetcher=Fetcher(),
    )
    frontier.seed()

    result = CrawlExecutor(workers=3, idle_poll_seconds=0.001).run(frontier, research_id)

    assert result.pages_crawled == 7
    assert sorted(fetched) == sorted(["https://example.com"] + links)
    assert ledger.count_by_status()[UrlStatus.CRAWLED] == 7
