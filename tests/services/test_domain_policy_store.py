from datetime import timedelta
from unittest.mock import Mock

from researchcrawl.services.domain_policy_store import DomainPolicyStore


def _store(domains_repo, clock, delay=1000):
    return DomainPolicyStore(domains_repo, default_crawl_delay_ms=delay, clock=clock)


def test_unknown_domain_can_fetch(domains_repo, clock):
    store = _store(domains_repo, clock)
    assert store.can_fetch_now("example.com")


def test_crawl_delay_enforced(domains_repo, clock):
    store = _store(domains_repo, clock)
    store.ensure_domain("example.com")
    store.record_fetch("example.com")
    assert not store.can_fetch_now("example.com")
    clock.advance(999)
    assert not store.can_fetch_now("example.com")
    clock.advance(1)
    assert store.can_fetch_now("example.com")


def test_record_fetch_is_monotonic(domains_repo, clock):
    store = _store(domains_repo, clock)
    store.record_fetch("example.com")
    latest = clock.now
    store.record_fetch("example.com", latest - timedelta(seconds=5))
    assert store.get("example.com").last_crawl_at == latest
    assert domains_repo.get("example.com").last_crawl_at == latest


def test_ensure_domain_reports_creation_once(domains_repo, clock):
    store = _store(domains_repo, clock, delay=250)
    domain, created = store.ensure_domain("example.com")
    assert created
    assert domain.crawl_delay_ms == 250
    _, created_again = store.ensure_domain("example.com")
    assert not created_again


def test_set_policy_overrides_delay_and_persists(domains_repo, clock):
    store = _store(domains_repo, clock)
    store.ensure_domain("example.com")
    store.set_policy("example.com", 5000, "User-agent: *\nDisallow: /private")
    store.record_fetch("example.com")
    clock.advance(1000)
    assert not store.can_fetch_now("example.com")
    assert domains_repo.get("example.com").crawl_delay_ms == 5000

    # None keeps the current delay
    store.set_policy("example.com", None, None)
    assert store.get("example.com").crawl_delay_ms == 5000


def test_try_acquire_allows_one_in_flight_fetch(domains_repo, clock):
    store = _store(domains_repo, clock, delay=0)
    assert store.try_acquire("example.com")
    assert not store.try_acquire("example.com")
    assert store.try_acquire("other.example")
    store.release("example.com")
    assert store.try_acquire("example.com")


def test_try_acquire_respects_delay(domains_repo, clock):
    store = _store(domains_repo, clock)
    store.record_fetch("example.com")
    assert not store.try_acquire("example.com")


def test_is_allowed_uses_robots_directives(domains_repo, clock):
    store = _store(domains_repo, clock)
    assert store.is_allowed("https://example.com/private", "TestBot")
    store.set_policy("example.com", None, "User-agent: *\nDisallow: /private")
    assert not store.is_allowed("https://example.com/private/page", "TestBot")
    assert store.is_allowed("https://example.com/public", "TestBot")


def test_policy_cached_after_first_load(clock):
    repo = Mock()
    repo.get.return_value = None
    repo.ensure.side_effect = lambda d: (d, True)
    store = DomainPolicyStore(repo, clock=clock)
    store.ensure_domain("example.com")
    store.can_fetch_now("example.com")
    store.can_fetch_now("example.com")
    assert repo.get.call_count == 1


def test_cached_policies_are_bounded_and_reload_from_repo(domains_repo, clock):
    store = DomainPolicyStore(domains_repo, default_crawl_delay_ms=1000, clock=clock, max_cached_domains=2)
    store.record_fetch("a.example")
    store.ensure_domain("b.example")
    store.ensure_domain("c.example")

    assert list(store._domains) == ["b.example", "c.example"]
    # evicted policy still applies
    assert not store.can_fetch_now("a.example")
    assert len(store._domains) == 2


def test_in_flight_domain_is_not_evicted(domains_repo, clock):
    store = DomainPolicyStore(domains_repo, default_crawl_delay_ms=0, clock=clock, max_cached_domains=1)
    store.ensure_domain("a.example")
    assert store.try_acquire("a.example")
    store.ensure_domain("b.example")
    assert "a.example" in store._domains

    store.release("a.example")
    store.ensure_domain("c.example")
    assert list(store._domains) == ["c.example"]
