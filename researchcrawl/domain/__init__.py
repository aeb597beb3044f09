"""Domain objects for ResearchCrawl - explicit re-exports to satisfy linters."""
from .domain_policy import Domain as Domain
from .url_record import UrlRecord as UrlRecord
from .url_record import UrlStatus as UrlStatus
from .url_record import RegisterResult as RegisterResult
from .crawled_content import CrawledContent as CrawledContent
from .relevance import LinkRelevanceResult as LinkRelevanceResult
from .relevance import BatchRelevanceResult as BatchRelevanceResult
from .relevance import LinkRelevanceEvaluation as LinkRelevanceEvaluation
from .progress import CrawlProgress as CrawlProgress
from .research import ResearchConfig as ResearchConfig
from .research import ResearchRun as ResearchRun
from .fetch_result import FetchResult as FetchResult
from .http_response import HttpResponse as HttpResponse
from .step_result import StepResult as StepResult

__all__ = [
    "Domain",
    "UrlRecord",
    "UrlStatus",
    "RegisterResult",
    "CrawledContent",
    "LinkRelevanceResult",
    "BatchRelevanceResult",
    "LinkRelevanceEvaluation",
    "CrawlProgress",
    "ResearchConfig",
    "ResearchRun",
    "FetchResult",
    "HttpResponse",
    "StepResult",
]
