from .engine import make_engine, init_schema
from .models import Base, ResearchRun, Domain, Url, CrawledContent

__all__ = [
    "make_engine",
    "init_schema",
    "Base",
    "ResearchRun",
    "Domain",
    "Url",
    "CrawledContent",
]
