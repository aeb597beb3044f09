import threading

from researchcrawl.services.research_registry import InMemoryResearchRegistry


def test_registry_bounded_completed_retention():
    registry = InMemoryResearchRegistry(max_completed_records=2)

    for research_id in (1, 2, 3):
        registry.start(research_id, seed_url=f"https://site{research_id}.example")
    for research_id in (1, 2, 3):
        assert registry.finish(research_id)

    assert registry.get(1) is None
    assert registry.get(2) is not None
    assert registry.get(3) is not None


def test_cancel_cleans_stop_event_mapping_but_sets_event():
    registry = InMemoryResearchRegistry(max_completed_records=10)

    handle = registry.start(7, seed_url="https://example.com", topic="zebra stripes")
    assert isinstance(handle.stop_event, threading.Event)
    assert registry.get_stop_event(7) is handle.stop_event

    assert registry.cancel(7)

    assert handle.stop_event.is_set()
    assert registry.get_stop_event(7) is None
    rec = registry.get(7)
    assert rec["status"] == "cancelled"
    assert rec["finishedAt"] is not None


def test_cancel_unknown_or_finished_research_returns_false():
    registry = InMemoryResearchRegistry()
    assert not registry.cancel(99)

    registry.start(1, seed_url="https://example.com")
    registry.finish(1)
    assert not registry.cancel(1)


def test_finish_after_cancel_keeps_cancelled_status():
    registry = InMemoryResearchRegistry()
    registry.start(1, seed_url="https://example.com")
    registry.cancel(1)

    assert not registry.finish(1, status="finished")
    assert registry.get(1)["status"] == "cancelled"


def test_record_step_tracks_outcomes_and_recent_urls():
    registry = InMemoryResearchRegistry()
    registry.start(1, seed_url="https://example.com")

    registry.record_step(1, outcome="crawled", url="https://example.com")
    registry.record_step(1, outcome="idle")
    registry.record_step(1, outcome="crawled", url="https://example.com/docs")

    rec = registry.get(1)
    assert rec["steps"] == 3
    assert rec["outcomes"] == {"crawled": 2, "idle": 1}
    assert rec["currentUrl"] == "https://example.com/docs"
    assert rec["recentUrls"] == ["https://example.com/docs", "https://example.com"]
    assert not registry.record_step(42, outcome="crawled")


def test_list_active_only_returns_running():
    registry = InMemoryResearchRegistry()
    registry.start(1, seed_url="https://a.example")
    registry.start(2, seed_url="https://b.example")
    registry.finish(1, status="failed", error="boom")

    active = registry.list_active()
    assert [r["researchId"] for r in active] == [2]
    assert registry.get(1)["error"] == "boom"
