"""Rule-based URL relevance scoring used when the classifier is unavailable."""
import math

HEURISTIC_REASONING = "Heuristic evaluation (AI unavailable)"

_BASE_SCORE = 0.5
_KEYWORD_BONUS = 0.1
_KEYWORD_CAP = 0.3


def topic_keywords(topic: str) -> list[str]:
    return [w for w in (topic or "").lower().split() if len(w) > 3]


def heuristic_score(url: str, topic: str) -> float:
    """Score `url` in [0, 1] from its structure and the topic's keywords.

    Pure function of its inputs; results are rounded to 4 decimals so the
    same URL always produces the same score and priority.
    """
    u = url.lower()
    score = _BASE_SCORE

    matches = sum(1 for word in topic_keywords(topic) if word in u)
    score += min(matches * _KEYWORD_BONUS, _KEYWORD_CAP)

    if ".edu" in u or ".gov" in u:
        score += 0.15
    elif ".org" in u:
        score += 0.1

    if "/docs/" in u or "/documentation/" in u:
        score += 0.15
    elif "/api/" in u or "/reference/" in u:
        score += 0.1
    elif "/guide/" in u or "/tutorial/" in u:
        score += 0.1

    if "/research/" in u or "/papers/" in u or "/publications/" in u:
        score += 0.15

    if u.endswith(".pdf"):
        score += 0.1
    elif u.endswith(".md") or u.endswith(".markdown"):
        score += 0.05

    if "/blog/" in u or "/news/" in u:
        score -= 0.05
    if "/category/" in u or "/tag/" in u:
        score -= 0.1

    return round(min(1.0, max(0.0, score)), 4)


def priority_for_score(score: float) -> int:
    # round first so 0.6000000001 does not become priority 7
    return max(1, min(10, math.ceil(round(score * 10, 6))))
