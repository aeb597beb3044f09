import logging
from typing import NamedTuple, Optional
from urllib.robotparser import RobotFileParser

from researchcrawl.exceptions import HttpFetchError

logger = logging.getLogger(__name__)


class RobotsPolicy(NamedTuple):
    directives: Optional[str]
    crawl_delay_ms: Optional[int]


class RobotsService:
    """
    Fetches a domain's robots.txt and derives its crawl policy.

    Fails open: a missing or unreachable robots.txt yields no directives and
    leaves the default crawl delay in place.
    """

    def __init__(self, http_service, user_agent: str):
        self.http_service = http_service
        self.user_agent = user_agent

    def fetch_policy(self, domain: str, scheme: str = "https") -> RobotsPolicy:
        robots_url = f"{scheme}://{domain}/robots.txt"
        try:
            response = self.http_service.fetch(robots_url)
        except HttpFetchError as e:
            logger.info("robots.txt unavailable for %s: %s", domain, e)
            return RobotsPolicy(None, None)

        if response.status_code != 200 or not response.text:
            logger.debug("No robots.txt for %s (status %s)", domain, response.status_code)
            return RobotsPolicy(None, None)

        return RobotsPolicy(response.text, self.crawl_delay_ms(response.text))

    def crawl_delay_ms(self, directives: str) -> Optional[int]:
        parser = RobotFileParser()
        parser.parse(directives.splitlines())
        delay = parser.crawl_delay(self.user_agent)
        if delay is None:
            return None
        try:
            return int(float(delay) * 1000)
        except (TypeError, ValueError):
            logger.warning("Unparseable crawl-delay %r", delay)
            return None
