from unittest.mock import Mock

import requests

from researchcrawl.domain.http_response import HttpResponse
from researchcrawl.exceptions import HttpFetchError
from researchcrawl.services.robots_service import RobotsService


def test_fetch_policy_reads_directives_and_crawl_delay():
    http = Mock()
    http.fetch.return_value = HttpResponse(200, "User-agent: *\nCrawl-delay: 2\nDisallow: /private")
    policy = RobotsService(http, user_agent="TestAgent").fetch_policy("example.com")

    http.fetch.assert_called_once_with("https://example.com/robots.txt")
    assert policy.crawl_delay_ms == 2000
    assert "Disallow: /private" in policy.directives


def test_fetch_policy_without_crawl_delay():
    http = Mock()
    http.fetch.return_value = HttpResponse(200, "User-agent: *\nDisallow: /private")
    policy = RobotsService(http, user_agent="TestAgent").fetch_policy("example.com", scheme="http")
    http.fetch.assert_called_once_with("http://example.com/robots.txt")
    assert policy.crawl_delay_ms is None
    assert policy.directives is not None


def test_missing_robots_fails_open():
    http = Mock()
    http.fetch.return_value = HttpResponse(404, "not found")
    policy = RobotsService(http, user_agent="TestAgent").fetch_policy("example.com")
    assert policy == (None, None)


def test_unreachable_robots_fails_open():
    http = Mock()
    http.fetch.side_effect = HttpFetchError("https://example.com/robots.txt", requests.exceptions.ConnectionError())
    policy = RobotsService(http, user_agent="TestAgent").fetch_policy("example.com")
    assert policy == (None, None)
