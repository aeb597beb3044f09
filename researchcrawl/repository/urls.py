import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from researchcrawl.db.models import Url as DBUrl
from researchcrawl.domain import UrlRecord, UrlStatus

logger = logging.getLogger(__name__)


class UrlsRepository:
    """Repository for ledger rows, scoped by research run.

    Requires an explicit `session_factory` (callable returning a `Session`).
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def _to_domain(self, row: DBUrl) -> UrlRecord:
        return UrlRecord(
            research_id=row.research_id,
            url=row.url,
            url_hash=row.url_hash,
            domain=row.domain,
            depth=row.depth,
            discovered_at=row.discovered_at,
            status=UrlStatus(row.status),
            priority=row.priority,
            relevance_score=row.relevance_score,
            http_status=row.http_status,
            attempts=row.attempts or 0,
            last_error=row.last_error,
            last_crawled_at=row.last_crawled_at,
            next_eligible_at=row.next_eligible_at,
        )

    def _select_one(self, session: Session, research_id: int, url_hash: str) -> Optional[DBUrl]:
        q = select(DBUrl).where(DBUrl.research_id == research_id, DBUrl.url_hash == url_hash)
        return session.execute(q).scalars().first()

    def insert(self, record: UrlRecord) -> bool:
        """Insert `record`; return False if its hash is already present for the run."""
        with self.get_session() as session:
            if self._select_one(session, record.research_id, record.url_hash) is not None:
                return False
            session.add(DBUrl(
                research_id=record.research_id,
                url=record.url,
                url_hash=record.url_hash,
                domain=record.domain,
                depth=record.depth,
                status=record.status.value,
                priority=record.priority,
                relevance_score=record.relevance_score,
                http_status=record.http_status,
                attempts=record.attempts,
                last_error=record.last_error,
                discovered_at=record.discovered_at,
                last_crawled_at=record.last_crawled_at,
                next_eligible_at=record.next_eligible_at,
            ))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.debug("Duplicate url_hash %s for research %s", record.url_hash, record.research_id)
                return False
            return True

    def get(self, research_id: int, url_hash: str) -> Optional[UrlRecord]:
        with self.get_session() as session:
            row = self._select_one(session, research_id, url_hash)
            return self._to_domain(row) if row else None

    def existing_hashes(self, research_id: int, url_hashes: Iterable[str]) -> Set[str]:
        hashes = list(set(url_hashes))
        if not hashes:
            return set()
        with self.get_session() as session:
            q = select(DBUrl.url_hash).where(DBUrl.research_id == research_id, DBUrl.url_hash.in_(hashes))
            return set(session.execute(q).scalars().all())

    def update(self, record: UrlRecord) -> None:
        """Persist the mutable fields of `record`."""
        with self.get_session() as session:
            row = self._select_one(session, record.research_id, record.url_hash)
            if row is None:
                raise ValueError(f"Url {record.url_hash} not found for research {record.research_id}")
            row.status = record.status.value
            row.http_status = record.http_status
            row.attempts = record.attempts
            row.last_error = record.last_error
            row.last_crawled_at = record.last_crawled_at
            row.next_eligible_at = record.next_eligible_at
            session.add(row)
            session.commit()

    def list_pending(self, research_id: int, now: datetime) -> List[UrlRecord]:
        """Pending rows eligible at `now`, ordered by priority desc then discovery order."""
        with self.get_session() as session:
            q = (
                select(DBUrl)
                .where(
                    DBUrl.research_id == research_id,
                    DBUrl.status == UrlStatus.PENDING.value,
                    or_(DBUrl.next_eligible_at.is_(None), DBUrl.next_eligible_at <= now),
                )
                .order_by(DBUrl.priority.desc(), DBUrl.discovered_at.asc(), DBUrl.url_id.asc())
            )
            rows = session.execute(q).scalars().all()
            return [self._to_domain(r) for r in rows]

    def list_by_research(self, research_id: int, status: Optional[UrlStatus] = None) -> List[UrlRecord]:
        with self.get_session() as session:
            q = select(DBUrl).where(DBUrl.research_id == research_id)
            if status is not None:
                q = q.where(DBUrl.status == status.value)
            q = q.order_by(DBUrl.url_id.asc())
            rows = session.execute(q).scalars().all()
            return [self._to_domain(r) for r in rows]

    def count_by_status(self, research_id: int) -> Dict[UrlStatus, int]:
        with self.get_session() as session:
            q = (
                select(DBUrl.status, func.count(DBUrl.url_id))
                .where(DBUrl.research_id == research_id)
                .group_by(DBUrl.status)
            )
            counts = {status: 0 for status in UrlStatus}
            for status, count in session.execute(q).all():
                counts[UrlStatus(status)] = int(count)
            return counts

    def max_depth_by_status(self, research_id: int, status: UrlStatus) -> Optional[int]:
        with self.get_session() as session:
            q = select(func.max(DBUrl.depth)).where(
                DBUrl.research_id == research_id,
                DBUrl.status == status.value,
            )
            return session.execute(q).scalar()
