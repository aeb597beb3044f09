from typing import List, Optional
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from researchcrawl.db.models import ResearchRun as DBResearchRun
from researchcrawl.domain import ResearchConfig, ResearchRun
from researchcrawl.domain.research import RUN_RUNNING
from researchcrawl.utils.datetime_utils import utc_now


class ResearchRunsRepository:
    """Repository for research run records.

    Requires an explicit `session_factory` (callable returning a `Session`).
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def _to_domain(self, row: DBResearchRun) -> ResearchRun:
        cfg = ResearchConfig(
            seed_url=row.seed_url,
            topic=row.topic or "",
            max_depth=row.max_depth,
            max_pages=row.max_pages,
            relevance_threshold=row.relevance_threshold,
            force_refresh=bool(row.force_refresh),
            summarize=bool(row.summarize),
            respect_robots=bool(row.respect_robots),
            same_domain_only=bool(row.same_domain_only),
        )
        return ResearchRun(
            research_id=row.research_id,
            config=cfg,
            status=row.status,
            started_at=row.started_at,
            finished_at=row.finished_at,
            error=row.error,
        )

    def create_run(self, cfg: ResearchConfig, started_at: Optional[datetime] = None) -> ResearchRun:
        with self.get_session() as session:
            row = DBResearchRun(
                topic=cfg.topic,
                seed_url=cfg.seed_url,
                max_depth=cfg.max_depth,
                max_pages=cfg.max_pages,
                relevance_threshold=cfg.relevance_threshold,
                force_refresh=cfg.force_refresh,
                summarize=cfg.summarize,
                respect_robots=cfg.respect_robots,
                same_domain_only=cfg.same_domain_only,
                status=RUN_RUNNING,
                started_at=started_at or utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_domain(row)

    def finish_run(self, research_id: int, status: str, error: Optional[str] = None) -> None:
        with self.get_session() as session:
            q = select(DBResearchRun).where(DBResearchRun.research_id == research_id)
            row = session.execute(q).scalars().first()
            if not row:
                raise ValueError(f"ResearchRun with research_id={research_id} not found")
            row.status = status
            row.finished_at = utc_now()
            row.error = error
            session.add(row)
            session.commit()

    def get_run(self, research_id: int) -> Optional[ResearchRun]:
        with self.get_session() as session:
            q = select(DBResearchRun).where(DBResearchRun.research_id == research_id)
            row = session.execute(q).scalars().first()
            if not row:
                return None
            return self._to_domain(row)

    def list_runs(self, limit: int = 20) -> List[ResearchRun]:
        """Return recent runs, most recent first."""
        with self.get_session() as session:
            q = select(DBResearchRun).order_by(DBResearchRun.research_id.desc()).limit(limit)
            rows = session.execute(q).scalars().all()
            return [self._to_domain(r) for r in rows]
