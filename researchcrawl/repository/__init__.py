from .domains import DomainsRepository
from .urls import UrlsRepository
from .contents import ContentsRepository
from .research_runs import ResearchRunsRepository

__all__ = ["DomainsRepository", "UrlsRepository", "ContentsRepository", "ResearchRunsRepository"]
