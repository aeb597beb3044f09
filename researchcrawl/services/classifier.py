from __future__ import annotations

import json
import logging
from typing import Callable, List, Optional, Protocol, Sequence

import requests

from researchcrawl.domain.relevance import ClassifierResponse, LinkRelevanceEvaluation
from researchcrawl.exceptions import ClassifierUnavailableError

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You are a helpful assistant for a deep research system. Evaluate URLs accurately "
    "and concisely, focusing on research value and topic relevance. "
    'Respond with a JSON object of the form {"evaluations": [{"url": str, "relevanceScore": '
    'number 0-1, "reasoning": str, "priority": integer 1-10, "topicAlignment": '
    '"high"|"medium"|"low"|"none"}]}.'
)


class RelevanceClassifier(Protocol):
    """Scores candidate URLs against a topic. May raise on any failure."""

    def classify(self, topic: str, context_summary: str, urls: Sequence[str]) -> List[LinkRelevanceEvaluation]: ...


def build_evaluation_prompt(urls: Sequence[str], topic: str, context_summary: str) -> str:
    url_list = "\n".join(f"{i}. {url}" for i, url in enumerate(urls, start=1))
    prompt = (
        "You are a research assistant evaluating URLs for a deep research project.\n\n"
        f'Research Topic: "{topic}"\n'
    )
    if context_summary:
        prompt += f"\nContext from already-crawled pages:\n{context_summary}\n\n"
    prompt += (
        f"Evaluate these URLs for relevance to the research topic:\n{url_list}\n\n"
        "For each URL:\n"
        "1. Score 0-1 (0=irrelevant, 1=highly relevant)\n"
        "2. Brief reasoning (max 200 chars)\n"
        "3. Priority 1-10 for crawl order\n"
        "4. Topic alignment (high/medium/low/none)\n\n"
        "Consider:\n"
        "- URL structure and path segments\n"
        "- Domain authority and type (.edu, .org, .gov higher)\n"
        "- Similarity to already-crawled content\n"
        "- Potential for unique insights\n"
        "- Avoid duplicate or very similar content"
    )
    return prompt


class ChatCompletionClassifier:
    """Relevance classifier backed by an OpenAI-compatible chat-completions endpoint.

    `http_post` is injected (defaults to `requests.post`) so tests can supply a fake.
    Every failure surfaces as `ClassifierUnavailableError`.
    """

    def __init__(
        self,
        api_url: str,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        timeout: int = 30,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        http_post: Optional[Callable] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.http_post = http_post or requests.post

    def _payload(self, topic: str, context_summary: str, urls: Sequence[str]) -> dict:
        return {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": build_evaluation_prompt(urls, topic, context_summary)},
            ],
        }

    def classify(self, topic: str, context_summary: str, urls: Sequence[str]) -> List[LinkRelevanceEvaluation]:
        if not self.api_key:
            raise ClassifierUnavailableError("no API key configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.debug("Classifying %d URLs with %s", len(urls), self.model)
        try:
            resp = self.http_post(
                self.api_url,
                headers=headers,
                json=self._payload(topic, context_summary, urls),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ClassifierUnavailableError("request failed", e) from e

        if resp.status_code != 200:
            raise ClassifierUnavailableError(f"HTTP {resp.status_code}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
            parsed = ClassifierResponse.model_validate(json.loads(content))
        except (ValueError, KeyError, IndexError, TypeError) as e:
            # ValidationError is a ValueError subclass
            raise ClassifierUnavailableError("malformed response", e) from e

        return parsed.evaluations

