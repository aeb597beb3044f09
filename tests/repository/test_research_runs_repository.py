from researchcrawl.domain import ResearchConfig
from researchcrawl.domain.research import RUN_FAILED, RUN_RUNNING


def test_create_and_finish_run(runs_repo):
    cfg = ResearchConfig(seed_url="https://example.com", topic="zebras", max_depth=2, max_pages=5)
    run = runs_repo.create_run(cfg)
    assert run.status == RUN_RUNNING
    assert run.config == cfg

    runs_repo.finish_run(run.research_id, RUN_FAILED, "boom")
    stored = runs_repo.get_run(run.research_id)
    assert stored.status == RUN_FAILED
    assert stored.error == "boom"
    assert stored.finished_at is not None


def test_get_run_unknown_returns_none(runs_repo):
    assert runs_repo.get_run(999) is None


def test_list_runs_most_recent_first(runs_repo):
    a = runs_repo.create_run(ResearchConfig(seed_url="https://a.example"))
    b = runs_repo.create_run(ResearchConfig(seed_url="https://b.example"))
    assert [r.research_id for r in runs_repo.list_runs()] == [b.research_id, a.research_id]
