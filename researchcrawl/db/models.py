from __future__ import annotations


from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class ResearchRun(Base):
    __tablename__ = "research_runs"

    research_id = Column(Integer, primary_key=True)
    topic = Column(Text, nullable=False, default="")
    seed_url = Column(Text, nullable=False)
    max_depth = Column(Integer, nullable=False)
    max_pages = Column(Integer, nullable=False)
    relevance_threshold = Column(Float, nullable=False)
    force_refresh = Column(Boolean, nullable=False, default=False)
    summarize = Column(Boolean, nullable=False, default=False)
    respect_robots = Column(Boolean, nullable=False, default=True)
    same_domain_only = Column(Boolean, nullable=False, default=True)
    status = Column(Text, nullable=False)
    started_at = Column(DateTime, nullable=False)
    finished_at = Column(DateTime, nullable=True)
    error = Column(Text, nullable=True)


class Domain(Base):
    __tablename__ = "domains"

    domain = Column(Text, primary_key=True)
    robots_directives = Column(Text, nullable=True)
    crawl_delay_ms = Column(Integer, nullable=False)
    last_crawl_at = Column(DateTime, nullable=True)


class Url(Base):
    __tablename__ = "urls"
    __table_args__ = (
        UniqueConstraint("research_id", "url_hash", name="uq_urls_research_hash"),
        Index("ix_urls_research_status", "research_id", "status"),
    )

    url_id = Column(Integer, primary_key=True)
    research_id = Column(Integer, ForeignKey("research_runs.research_id"), nullable=False)
    url = Column(Text, nullable=False)
    url_hash = Column(Text, nullable=False)
    domain = Column(Text, nullable=False)
    depth = Column(Integer, nullable=False)
    status = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False)
    relevance_score = Column(Float, nullable=False)
    http_status = Column(Integer, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    discovered_at = Column(DateTime, nullable=False)
    last_crawled_at = Column(DateTime, nullable=True)
    next_eligible_at = Column(DateTime, nullable=True)


class CrawledContent(Base):
    __tablename__ = "crawled_content"

    url_hash = Column(Text, primary_key=True)
    url = Column(Text, nullable=False)
    title = Column(Text, nullable=True)
    clean_content = Column(Text, nullable=True)
    raw_snapshot = Column(Text, nullable=True)
    # `metadata` is reserved on declarative classes
    page_metadata = Column("metadata", JSON, nullable=True)
    outbound_links = Column(JSON, nullable=True)
    crawled_at = Column(DateTime, nullable=False)
