from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class LinkRelevanceResult:
    """Relevance decision for one candidate URL; consumed by the frontier, never persisted."""

    url: str
    relevance_score: float
    reasoning: str
    priority: int
    should_crawl: bool

    def __post_init__(self):
        if not 0.0 <= self.relevance_score <= 1.0:
            raise ValueError(f"relevance_score must be in [0, 1], got {self.relevance_score!r}")
        if not 1 <= self.priority <= 10:
            raise ValueError(f"priority must be in [1, 10], got {self.priority!r}")


@dataclass(frozen=True)
class BatchRelevanceResult:
    results: List[LinkRelevanceResult] = field(default_factory=list)
    total_evaluated: int = 0
    above_threshold: int = 0
    below_threshold: int = 0
    average_score: float = 0.0

    @classmethod
    def from_results(cls, results: List[LinkRelevanceResult]) -> "BatchRelevanceResult":
        above = sum(1 for r in results if r.should_crawl)
        average = sum(r.relevance_score for r in results) / len(results) if results else 0.0
        return cls(
            results=list(results),
            total_evaluated=len(results),
            above_threshold=above,
            below_threshold=len(results) - above,
            average_score=average,
        )


class LinkRelevanceEvaluation(BaseModel):
    """One row of classifier output."""

    url: str
    relevance_score: float = Field(ge=0.0, le=1.0, alias="relevanceScore")
    reasoning: str = ""
    priority: int = Field(ge=1, le=10)
    topic_alignment: Literal["high", "medium", "low", "none"] = Field(default="none", alias="topicAlignment")

    model_config = {"populate_by_name": True}


class ClassifierResponse(BaseModel):
    evaluations: List[LinkRelevanceEvaluation]
