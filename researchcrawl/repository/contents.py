from typing import Optional

from sqlalchemy.orm import Session

from researchcrawl.db.models import CrawledContent as DBCrawledContent
from researchcrawl.domain import CrawledContent


class ContentsRepository:
    """Repository for crawled content, keyed by URL hash across research runs."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    @staticmethod
    def _sanitize_text(val: Optional[str]) -> Optional[str]:
        """Remove NUL (\x00) characters from text fields to satisfy DB constraints.

        Postgres TEXT columns cannot contain NULs; some fetched content (e.g., PDFs
        or binary responses misclassified as text) may include NUL bytes.
        """
        if isinstance(val, str):
            return val.replace("\x00", "")
        return val

    def get_session(self) -> Session:
        return self.session_factory()

    def _to_domain(self, row: DBCrawledContent) -> CrawledContent:
        return CrawledContent(
            url_hash=row.url_hash,
            url=row.url,
            crawled_at=row.crawled_at,
            title=row.title,
            clean_content=row.clean_content,
            raw_snapshot=row.raw_snapshot,
            metadata=row.page_metadata or {},
            outbound_links=row.outbound_links or [],
        )

    def get(self, url_hash: str) -> Optional[CrawledContent]:
        with self.get_session() as session:
            row = session.get(DBCrawledContent, url_hash)
            return self._to_domain(row) if row else None

    def upsert(self, content: CrawledContent) -> CrawledContent:
        with self.get_session() as session:
            row = session.get(DBCrawledContent, content.url_hash)
            if row is None:
                row = DBCrawledContent(url_hash=content.url_hash)
            row.url = content.url
            row.title = self._sanitize_text(content.title)
            row.clean_content = self._sanitize_text(content.clean_content)
            row.raw_snapshot = self._sanitize_text(content.raw_snapshot)
            row.page_metadata = dict(content.metadata)
            row.outbound_links = list(content.outbound_links)
            row.crawled_at = content.crawled_at
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_domain(row)

    def delete(self, url_hash: str) -> bool:
        with self.get_session() as session:
            row = session.get(DBCrawledContent, url_hash)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True
