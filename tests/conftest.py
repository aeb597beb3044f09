from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from researchcrawl.db.models import Base
from researchcrawl.domain import ResearchConfig
from researchcrawl.repository import ContentsRepository, DomainsRepository, ResearchRunsRepository, UrlsRepository


class FakeClock:
    """Manually advanced clock returning naive UTC datetimes."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, ms: int) -> None:
        self.now = self.now + timedelta(milliseconds=ms)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'research.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, future=True)
    engine.dispose()


@pytest.fixture
def runs_repo(session_factory):
    return ResearchRunsRepository(session_factory)


@pytest.fixture
def urls_repo(session_factory):
    return UrlsRepository(session_factory)


@pytest.fixture
def domains_repo(session_factory):
    return DomainsRepository(session_factory)


@pytest.fixture
def contents_repo(session_factory):
    return ContentsRepository(session_factory)


@pytest.fixture
def research_id(runs_repo):
    return runs_repo.create_run(ResearchConfig(seed_url="https://example.com", topic="zebra stripes")).research_id
