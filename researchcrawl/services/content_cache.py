import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from researchcrawl.domain import CrawledContent
from researchcrawl.repository.contents import ContentsRepository
from researchcrawl.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

LOCK_STRIPES = 64


class ContentCache:
    """Fetched content keyed by URL hash, shared across research runs.

    An entry older than `ttl_seconds` (when set) counts as missing.
    """

    def __init__(
        self,
        contents_repo: ContentsRepository,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utc_now,
        lock_stripes: int = LOCK_STRIPES,
    ):
        self.contents_repo = contents_repo
        self.ttl_seconds = ttl_seconds if ttl_seconds and ttl_seconds > 0 else None
        self.clock = clock
        # writes to one hash always share a stripe; the stripe count never grows
        self._locks = [threading.Lock() for _ in range(max(1, lock_stripes))]

    def _lock_for(self, url_hash: str) -> threading.Lock:
        return self._locks[hash(url_hash) % len(self._locks)]

    def _is_stale(self, content: CrawledContent) -> bool:
        if self.ttl_seconds is None or content.crawled_at is None:
            return False
        return self.clock() - content.crawled_at > timedelta(seconds=self.ttl_seconds)

    def get(self, url_hash: str) -> Optional[CrawledContent]:
        content = self.contents_repo.get(url_hash)
        if content is None:
            return None
        if self._is_stale(content):
            logger.debug("Cached content for %s is stale", content.url)
            return None
        return content

    def has(self, url_hash: str, force_refresh: bool = False) -> bool:
        if force_refresh:
            return False
        return self.get(url_hash) is not None

    def put(self, content: CrawledContent) -> CrawledContent:
        with self._lock_for(content.url_hash):
            stored = self.contents_repo.upsert(content)
        logger.debug("Cached %s (%d links)", content.url, len(content.outbound_links))
        return stored
