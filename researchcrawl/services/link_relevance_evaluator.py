import logging
from typing import Dict, List, Optional, Sequence

from researchcrawl.domain import BatchRelevanceResult, CrawledContent, LinkRelevanceResult
from researchcrawl.domain.relevance import LinkRelevanceEvaluation
from researchcrawl.services.heuristic_scorer import HEURISTIC_REASONING, heuristic_score, priority_for_score
from researchcrawl.utils.url_utils import url_hash

logger = logging.getLogger(__name__)

CONTEXT_CHAR_LIMIT = 1000
CONTEXT_PAGE_LIMIT = 3
PREVIEW_CHARS = 200
REASONING_CHAR_LIMIT = 200
CONTEXT_FILTER_THRESHOLD = 0.5
SUGGESTION_THRESHOLD = 0.4


def build_context_summary(pages: Sequence[CrawledContent]) -> str:
    """Short previews of the first few crawled pages, used as classifier context."""
    summaries = [
        f"URL: {page.url}\nContent preview: {page.preview(PREVIEW_CHARS)}..."
        for page in list(pages)[:CONTEXT_PAGE_LIMIT]
    ]
    return "\n\n".join(summaries)


class LinkRelevanceEvaluator:
    """Scores candidate URLs against a research topic.

    Asks the classifier chunk by chunk and falls back to the heuristic for
    any URL it leaves out or any chunk whose call fails, so evaluation
    itself never raises.
    """

    def __init__(self, classifier=None, default_batch_size: int = 20):
        if default_batch_size < 1:
            raise ValueError("default_batch_size must be >= 1")
        self.classifier = classifier
        self.default_batch_size = default_batch_size

    def _heuristic_result(self, url: str, topic: str, threshold: float) -> LinkRelevanceResult:
        score = heuristic_score(url, topic)
        return LinkRelevanceResult(
            url=url,
            relevance_score=score,
            reasoning=HEURISTIC_REASONING,
            priority=priority_for_score(score),
            should_crawl=score >= threshold,
        )

    def _from_evaluation(self, url: str, evaluation: LinkRelevanceEvaluation, threshold: float) -> LinkRelevanceResult:
        return LinkRelevanceResult(
            url=url,
            relevance_score=evaluation.relevance_score,
            reasoning=(evaluation.reasoning or "")[:REASONING_CHAR_LIMIT],
            priority=evaluation.priority,
            should_crawl=evaluation.relevance_score >= threshold,
        )

    def _evaluate_chunk(self, chunk: Sequence[str], topic: str, context: str, threshold: float) -> List[LinkRelevanceResult]:
        if self.classifier is None:
            return [self._heuristic_result(url, topic, threshold) for url in chunk]

        try:
            evaluations = self.classifier.classify(topic, context, list(chunk))
        except Exception as e:
            logger.warning("Chunk evaluation failed, using heuristic fallback for %d URLs: %s", len(chunk), e)
            return [self._heuristic_result(url, topic, threshold) for url in chunk]

        by_url: Dict[str, LinkRelevanceEvaluation] = {}
        by_hash: Dict[str, LinkRelevanceEvaluation] = {}
        for evaluation in evaluations:
            by_url.setdefault(evaluation.url, evaluation)
            by_hash.setdefault(url_hash(evaluation.url), evaluation)

        results = []
        missing = 0
        for url in chunk:
            evaluation = by_url.get(url) or by_hash.get(url_hash(url))
            if evaluation is None:
                missing += 1
                results.append(self._heuristic_result(url, topic, threshold))
            else:
                results.append(self._from_evaluation(url, evaluation, threshold))
        if missing:
            logger.info("Classifier omitted %d of %d URLs; scored them heuristically", missing, len(chunk))
        return results

    def evaluate_batch(
        self,
        urls: Sequence[str],
        topic: str,
        existing_content_summaries: Optional[Sequence[str]] = None,
        threshold: float = 0.5,
        max_batch_size: Optional[int] = None,
    ) -> BatchRelevanceResult:
        if not urls:
            return BatchRelevanceResult()
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {threshold!r}")
        size = max_batch_size or self.default_batch_size
        if size < 1:
            raise ValueError("max_batch_size must be >= 1")

        summaries = [s for s in (existing_content_summaries or []) if s]
        context = "\n\n".join(summaries)[:CONTEXT_CHAR_LIMIT]

        logger.info("Evaluating %d URLs for topic %r (threshold=%s)", len(urls), topic, threshold)
        results: List[LinkRelevanceResult] = []
        for start in range(0, len(urls), size):
            results.extend(self._evaluate_chunk(urls[start:start + size], topic, context, threshold))

        batch = BatchRelevanceResult.from_results(results)
        logger.info(
            "Batch evaluation complete: total=%d above=%d below=%d average=%.3f",
            batch.total_evaluated,
            batch.above_threshold,
            batch.below_threshold,
            batch.average_score,
        )
        return batch

    def evaluate_url(
        self,
        url: str,
        topic: str,
        existing_content_summaries: Optional[Sequence[str]] = None,
        threshold: float = 0.5,
    ) -> LinkRelevanceResult:
        return self.evaluate_batch([url], topic, existing_content_summaries, threshold).results[0]

    @staticmethod
    def rank_urls(results: Sequence[LinkRelevanceResult]) -> List[LinkRelevanceResult]:
        """Highest priority first, then highest score; ties keep input order."""
        return sorted(results, key=lambda r: (-r.priority, -r.relevance_score))

    def filter_by_context(self, urls: Sequence[str], crawled_pages: Sequence[CrawledContent], topic: str) -> List[str]:
        """Keep the URLs worth crawling given what has already been read."""
        if not crawled_pages:
            logger.debug("No crawled content for context filtering")
            return list(urls)
        batch = self.evaluate_batch(urls, topic, [build_context_summary(crawled_pages)], CONTEXT_FILTER_THRESHOLD)
        kept = [r.url for r in batch.results if r.should_crawl]
        logger.info("Context filtering kept %d of %d URLs", len(kept), len(urls))
        return kept

    def suggest_next_urls(
        self,
        pending_urls: Sequence[str],
        crawled_pages: Sequence[CrawledContent],
        topic: str,
        limit: int,
    ) -> List[LinkRelevanceResult]:
        summaries = [build_context_summary(crawled_pages)] if crawled_pages else []
        batch = self.evaluate_batch(pending_urls, topic, summaries, SUGGESTION_THRESHOLD)
        return self.rank_urls(batch.results)[:max(0, limit)]
