from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from researchcrawl.db.models import Domain as DBDomain
from researchcrawl.domain import Domain


class DomainsRepository:
    """Repository for per-domain politeness rows."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def _to_domain(self, row: DBDomain) -> Domain:
        return Domain(
            domain=row.domain,
            crawl_delay_ms=row.crawl_delay_ms,
            robots_directives=row.robots_directives,
            last_crawl_at=row.last_crawl_at,
        )

    def get(self, domain: str) -> Optional[Domain]:
        with self.get_session() as session:
            row = session.get(DBDomain, domain)
            return self._to_domain(row) if row else None

    def ensure(self, domain: Domain) -> tuple[Domain, bool]:
        """Insert `domain` unless a row exists; return the stored row and whether it was created."""
        with self.get_session() as session:
            row = session.get(DBDomain, domain.domain)
            if row:
                return self._to_domain(row), False
            row = DBDomain(
                domain=domain.domain,
                crawl_delay_ms=domain.crawl_delay_ms,
                robots_directives=domain.robots_directives,
                last_crawl_at=domain.last_crawl_at,
            )
            session.add(row)
            # Another process may have created the row concurrently; re-read it.
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                existing = session.execute(select(DBDomain).where(DBDomain.domain == domain.domain)).scalars().first()
                if existing:
                    return self._to_domain(existing), False
                raise
            session.refresh(row)
            return self._to_domain(row), True

    def save(self, domain: Domain) -> Domain:
        with self.get_session() as session:
            row = session.get(DBDomain, domain.domain)
            if row is None:
                row = DBDomain(domain=domain.domain)
            row.crawl_delay_ms = domain.crawl_delay_ms
            row.robots_directives = domain.robots_directives
            row.last_crawl_at = domain.last_crawl_at
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_domain(row)
