from datetime import datetime

import pytest
from pydantic import ValidationError

from researchcrawl.domain import (
    BatchRelevanceResult,
    CrawlProgress,
    Domain,
    LinkRelevanceEvaluation,
    LinkRelevanceResult,
    ResearchConfig,
    UrlRecord,
    UrlStatus,
)
from researchcrawl.domain.relevance import ClassifierResponse


def _record(**overrides):
    fields = dict(
        research_id=1,
        url="https://example.com",
        url_hash="abc",
        domain="example.com",
        depth=0,
        discovered_at=datetime(2024, 1, 1),
    )
    fields.update(overrides)
    return UrlRecord(**fields)


def test_url_record_defaults_to_pending():
    rec = _record()
    assert rec.status is UrlStatus.PENDING
    assert not rec.status.is_terminal
    assert UrlStatus.CRAWLED.is_terminal and UrlStatus.FAILED.is_terminal


@pytest.mark.parametrize("overrides", [{"depth": -1}, {"priority": 0}, {"priority": 11}, {"relevance_score": 1.5}, {"url_hash": ""}])
def test_url_record_rejects_out_of_range_fields(overrides):
    with pytest.raises(ValueError):
        _record(**overrides)


def test_domain_rejects_negative_delay():
    with pytest.raises(ValueError):
        Domain(domain="example.com", crawl_delay_ms=-1)
    assert Domain(domain="example.com").crawl_delay_ms == 1000


def test_research_config_bounds():
    with pytest.raises(ValueError):
        ResearchConfig(seed_url="https://example.com", max_depth=6)
    with pytest.raises(ValueError):
        ResearchConfig(seed_url="https://example.com", max_pages=0)
    with pytest.raises(ValueError):
        ResearchConfig(seed_url="https://example.com", relevance_threshold=1.1)
    cfg = ResearchConfig(seed_url="https://example.com", max_depth=2, max_pages=10, relevance_threshold=0.6)
    assert cfg.to_dict() == {"maxDepth": 2, "maxPages": 10, "relevanceThreshold": 0.6}


def test_batch_result_statistics():
    results = [
        LinkRelevanceResult("https://a", 0.8, "", 8, True),
        LinkRelevanceResult("https://b", 0.2, "", 2, False),
    ]
    batch = BatchRelevanceResult.from_results(results)
    assert batch.total_evaluated == 2
    assert batch.above_threshold == 1
    assert batch.below_threshold == 1
    assert batch.average_score == pytest.approx(0.5)
    assert BatchRelevanceResult.from_results([]).average_score == 0.0


def test_link_relevance_result_validates_ranges():
    with pytest.raises(ValueError):
        LinkRelevanceResult("https://a", 1.2, "", 5, True)
    with pytest.raises(ValueError):
        LinkRelevanceResult("https://a", 0.5, "", 0, True)


def test_classifier_evaluation_accepts_camel_case():
    parsed = ClassifierResponse.model_validate({
        "evaluations": [
            {"url": "https://a", "relevanceScore": 0.7, "reasoning": "docs", "priority": 7, "topicAlignment": "high"}
        ]
    })
    ev = parsed.evaluations[0]
    assert ev.relevance_score == 0.7
    assert ev.topic_alignment == "high"


def test_classifier_evaluation_rejects_out_of_range_score():
    with pytest.raises(ValidationError):
        LinkRelevanceEvaluation(url="https://a", relevanceScore=2.0, priority=5)


def test_progress_to_dict_uses_camel_case():
    progress = CrawlProgress(urls_crawled=1, urls_pending=2, urls_failed=0, current_depth=0)
    assert progress.to_dict() == {"urlsCrawled": 1, "urlsPending": 2, "urlsFailed": 0, "currentDepth": 0}
    with pytest.raises(ValueError):
        CrawlProgress(urls_crawled=-1)
