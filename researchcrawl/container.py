"""Dependency injection container for the application."""
from dependency_injector import containers, providers
import requests
from sqlalchemy.orm import sessionmaker

from researchcrawl import config as env
from researchcrawl.db.engine import make_engine
from researchcrawl.repository.contents import ContentsRepository
from researchcrawl.repository.domains import DomainsRepository
from researchcrawl.repository.research_runs import ResearchRunsRepository
from researchcrawl.repository.urls import UrlsRepository
from researchcrawl.services.classifier import ChatCompletionClassifier
from researchcrawl.services.content_cache import ContentCache
from researchcrawl.services.crawl_executor import CrawlExecutor
from researchcrawl.services.domain_policy_store import DomainPolicyStore
from researchcrawl.services.fetcher import HtmlPageFetcher
from researchcrawl.services.http_service import HttpService
from researchcrawl.services.link_relevance_evaluator import LinkRelevanceEvaluator
from researchcrawl.services.page_extractor import PageExtractor
from researchcrawl.services.progress_aggregator import ProgressAggregator
from researchcrawl.services.research_crawl_service import ResearchCrawlService
from researchcrawl.services.research_engine_factory import ResearchEngineFactory
from researchcrawl.services.research_registry import InMemoryResearchRegistry
from researchcrawl.services.robots_cache import RobotsCache
from researchcrawl.services.robots_service import RobotsService


# Environment variables used by the container (read via `researchcrawl.config` helpers).
#
# DATABASE_URL (str | optional)
#   SQLAlchemy URL. Required before any repository is used.
#
# USER_AGENT (str, default: "ResearchCrawl/0.1")
#   User-Agent for page, robots.txt and classifier requests, and for robots matching.
#
# HTTP_TIMEOUT (int seconds, default: 10)
#   Timeout for page and robots.txt fetches.
#
# MAX_CONTENT_BYTES (int bytes, default: 10485760)
#   Largest response body read from a page or robots.txt. Larger responses fail
#   without retry. 0 disables the limit.
#
# CRAWL_DELAY_MS (int ms, default: 1000)
#   Per-domain delay between fetch starts until robots.txt sets a Crawl-delay.
#
# CRAWL_WORKERS (int, default: 4)
#   Worker threads per research run.
#
# IDLE_POLL_MS (int ms, default: 100)
#   How long an idle worker waits before asking the frontier again.
#
# MAX_FETCH_RETRIES (int, default: 2) / RETRY_BACKOFF_MS (int ms, default: 2000)
#   Extra attempts for transport errors and HTTP 408/429/5xx; backoff doubles per attempt.
#
# CONTENT_CACHE_TTL_SECONDS (int seconds | optional)
#   Cached content older than this is refetched. Unset means cache forever.
#
# DEFAULT_MAX_PAGES (int, default: 50) / MAX_PAGES_LIMIT (int, default: 500)
#   Page budget when a request omits maxPages, and the largest budget accepted.
#
# RELEVANCE_THRESHOLD (float, default: 0.5) / RELEVANCE_BATCH_SIZE (int, default: 20)
#   Default crawl threshold and URLs per classifier request.
#
# RESPECT_ROBOTS (bool, default: true) / SAME_DOMAIN_ONLY (bool, default: true)
#   Link filtering applied to every research run.
#
# CLASSIFIER_API_URL, CLASSIFIER_API_KEY, CLASSIFIER_MODEL, CLASSIFIER_TIMEOUT
#   OpenAI-compatible chat-completions endpoint for relevance scoring. Without an
#   API key every URL is scored heuristically.
#
# ROBOTS_CACHE_MAX_SIZE (int, default: 2048) / ROBOTS_CACHE_TTL_SECONDS (int, default: 3600)
#   Bounds for the parsed robots.txt cache.
#
# DOMAIN_POLICY_CACHE_MAX_SIZE (int, default: 4096)
#   Domain policies kept in memory. Evicted policies are reloaded from the database.
#
# RESEARCH_REGISTRY_MAX_COMPLETED (int, default: 1000)
#   Finished runs kept in the in-memory registry.
ENV = {
    "DATABASE_URL": env.get_optional_str_env("DATABASE_URL"),
    "USER_AGENT": env.get_str_env("USER_AGENT", "ResearchCrawl/0.1"),
    "HTTP_TIMEOUT": env.get_int_env("HTTP_TIMEOUT", 10),
    "MAX_CONTENT_BYTES": env.get_int_env("MAX_CONTENT_BYTES", 10 * 1024 * 1024),
    "CRAWL_DELAY_MS": env.get_int_env("CRAWL_DELAY_MS", 1000),
    "CRAWL_WORKERS": env.get_int_env("CRAWL_WORKERS", 4),
    "IDLE_POLL_MS": env.get_int_env("IDLE_POLL_MS", 100),
    "MAX_FETCH_RETRIES": env.get_int_env("MAX_FETCH_RETRIES", 2),
    "RETRY_BACKOFF_MS": env.get_int_env("RETRY_BACKOFF_MS", 2000),
    "CONTENT_CACHE_TTL_SECONDS": env.get_optional_int_env("CONTENT_CACHE_TTL_SECONDS"),
    "DEFAULT_MAX_PAGES": env.get_int_env("DEFAULT_MAX_PAGES", 50),
    "MAX_PAGES_LIMIT": env.get_int_env("MAX_PAGES_LIMIT", 500),
    "RELEVANCE_THRESHOLD": env.get_float_env("RELEVANCE_THRESHOLD", 0.5),
    "RELEVANCE_BATCH_SIZE": env.get_int_env("RELEVANCE_BATCH_SIZE", 20),
    "RESPECT_ROBOTS": env.get_bool_env("RESPECT_ROBOTS", True),
    "SAME_DOMAIN_ONLY": env.get_bool_env("SAME_DOMAIN_ONLY", True),
    "CLASSIFIER_API_URL": env.get_str_env("CLASSIFIER_API_URL", "https://api.openai.com/v1/chat/completions"),
    "CLASSIFIER_API_KEY": env.get_optional_str_env("CLASSIFIER_API_KEY"),
    "CLASSIFIER_MODEL": env.get_str_env("CLASSIFIER_MODEL", "gpt-4o-mini"),
    "CLASSIFIER_TIMEOUT": env.get_int_env("CLASSIFIER_TIMEOUT", 30),
    "ROBOTS_CACHE_MAX_SIZE": env.get_int_env("ROBOTS_CACHE_MAX_SIZE", 2048),
    "ROBOTS_CACHE_TTL_SECONDS": env.get_int_env("ROBOTS_CACHE_TTL_SECONDS", 3600),
    "DOMAIN_POLICY_CACHE_MAX_SIZE": env.get_int_env("DOMAIN_POLICY_CACHE_MAX_SIZE", 4096),
    "RESEARCH_REGISTRY_MAX_COMPLETED": env.get_int_env("RESEARCH_REGISTRY_MAX_COMPLETED", 1000),
}


class Container(containers.DeclarativeContainer):
    """Dependency injection container for ResearchCrawl."""

    config = providers.Configuration(default=ENV)

    # Database engine - Singleton to reuse connection pool
    db_engine = providers.Singleton(
        make_engine,
        database_url=config.DATABASE_URL
    )
    session_factory = providers.Factory(
        sessionmaker,
        bind=db_engine,
        future=True
    )

    # Repositories
    research_runs_repository = providers.Singleton(
        ResearchRunsRepository,
        session_factory=session_factory
    )

    domains_repository = providers.Singleton(
        DomainsRepository,
        session_factory=session_factory
    )

    urls_repository = providers.Singleton(
        UrlsRepository,
        session_factory=session_factory
    )

    contents_repository = providers.Singleton(
        ContentsRepository,
        session_factory=session_factory
    )

    research_registry = providers.Singleton(
        InMemoryResearchRegistry,
        max_completed_records=config.RESEARCH_REGISTRY_MAX_COMPLETED.as_(int),
    )

    # HTTP collaborators
    http_service = providers.Singleton(
        HttpService,
        user_agent=config.USER_AGENT.as_(str),
        http_client=providers.Object(requests.get),
        timeout=config.HTTP_TIMEOUT.as_(int),
        max_content_bytes=config.MAX_CONTENT_BYTES.as_(int),
    )

    page_fetcher = providers.Singleton(
        HtmlPageFetcher,
        http_service=http_service,
        extractor=providers.Singleton(PageExtractor),
    )

    robots_cache = providers.Singleton(
        RobotsCache,
        max_size=config.ROBOTS_CACHE_MAX_SIZE.as_(int),
        ttl_seconds=config.ROBOTS_CACHE_TTL_SECONDS.as_(int),
    )

    robots_service = providers.Singleton(
        RobotsService,
        http_service=http_service,
        user_agent=config.USER_AGENT.as_(str),
    )

    # Crawl engine
    domain_policy_store = providers.Singleton(
        DomainPolicyStore,
        domains_repo=domains_repository,
        default_crawl_delay_ms=config.CRAWL_DELAY_MS.as_(int),
        robots_cache=robots_cache,
        max_cached_domains=config.DOMAIN_POLICY_CACHE_MAX_SIZE.as_(int),
    )

    content_cache = providers.Singleton(
        ContentCache,
        contents_repo=contents_repository,
        ttl_seconds=config.CONTENT_CACHE_TTL_SECONDS,
    )

    classifier = providers.Singleton(
        ChatCompletionClassifier,
        api_url=config.CLASSIFIER_API_URL.as_(str),
        api_key=config.CLASSIFIER_API_KEY,
        model=config.CLASSIFIER_MODEL.as_(str),
        timeout=config.CLASSIFIER_TIMEOUT.as_(int),
        http_post=providers.Object(requests.post),
    )

    link_relevance_evaluator = providers.Singleton(
        LinkRelevanceEvaluator,
        classifier=classifier,
        default_batch_size=config.RELEVANCE_BATCH_SIZE.as_(int),
    )

    engine_factory = providers.Singleton(
        ResearchEngineFactory,
        urls_repo=urls_repository,
        policy_store=domain_policy_store,
        content_cache=content_cache,
        evaluator=link_relevance_evaluator,
        fetcher=page_fetcher,
        robots_service=robots_service,
        user_agent=config.USER_AGENT.as_(str),
        fetch_timeout=config.HTTP_TIMEOUT.as_(int),
        max_retries=config.MAX_FETCH_RETRIES.as_(int),
        retry_backoff_ms=config.RETRY_BACKOFF_MS.as_(int),
        relevance_batch_size=config.RELEVANCE_BATCH_SIZE.as_(int),
    )

    crawl_executor = providers.Singleton(
        CrawlExecutor,
        workers=config.CRAWL_WORKERS.as_(int),
        idle_poll_seconds=providers.Callable(lambda ms: ms / 1000.0, config.IDLE_POLL_MS.as_(int)),
    )

    progress_aggregator = providers.Singleton(
        ProgressAggregator,
        urls_repo=urls_repository,
        runs_repo=research_runs_repository,
    )

    research_service = providers.Singleton(
        ResearchCrawlService,
        runs_repo=research_runs_repository,
        urls_repo=urls_repository,
        content_cache=content_cache,
        engine_factory=engine_factory,
        executor=crawl_executor,
        progress=progress_aggregator,
        registry=research_registry,
        default_max_pages=config.DEFAULT_MAX_PAGES.as_(int),
        max_pages_limit=config.MAX_PAGES_LIMIT.as_(int),
        default_threshold=config.RELEVANCE_THRESHOLD.as_(float),
        respect_robots=config.RESPECT_ROBOTS.as_(bool),
        same_domain_only=config.SAME_DOMAIN_ONLY.as_(bool),
    )
