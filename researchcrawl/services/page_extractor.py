import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from bs4 import BeautifulSoup

from researchcrawl.utils.url_utils import absolutize

logger = logging.getLogger(__name__)

_BOILERPLATE_TAGS = (
    "script", "style", "noscript",
    "nav", "header", "footer", "aside",
    "form", "button", "iframe", "embed", "object",
    "svg", "canvas",
)

_BOILERPLATE_PATTERNS = (
    "nav", "menu", "sidebar", "footer", "advert", "banner", "popup",
    "breadcrumb", "social", "share", "cookie", "promo", "widget",
)

_META_NAMES = {
    "description": "description",
    "author": "author",
    "keywords": "keywords",
}

_META_PROPERTIES = {
    "og:site_name": "site_name",
    "og:description": "description",
    "og:title": "og_title",
}


class ExtractedPage(NamedTuple):
    title: Optional[str]
    clean_content: Optional[str]
    links: List[str]
    metadata: Dict[str, Any]


class PageExtractor:
    """Pulls title, readable text, outbound links and metadata out of HTML."""

    def __init__(self, soup_factory: Optional[Callable[[str], BeautifulSoup]] = None):
        self._soup_factory = soup_factory or (lambda html: BeautifulSoup(html, "html.parser"))

    def extract(self, base_url: str, html: Optional[str]) -> ExtractedPage:
        if not html:
            return ExtractedPage(None, None, [], {})
        try:
            soup = self._soup_factory(html)
        except Exception:
            logger.exception("Error parsing HTML from %s", base_url)
            return ExtractedPage(None, None, [], {})

        title = soup.title.get_text(strip=True) if soup.title else None
        metadata = self._metadata(soup)
        links = self._links(base_url, soup)
        clean = self._clean_text(soup)
        return ExtractedPage(title or None, clean or None, links, metadata)

    def _links(self, base_url: str, soup: BeautifulSoup) -> List[str]:
        links: List[str] = []
        seen = set()
        for a in soup.find_all("a", href=True):
            href = a.get("href")
            if not href:
                continue
            absolute = absolutize(base_url, href)
            if absolute is None or absolute in seen:
                continue
            seen.add(absolute)
            links.append(absolute)
        return links

    def _metadata(self, soup: BeautifulSoup) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {}
        html_tag = soup.find("html")
        if html_tag is not None and html_tag.get("lang"):
            metadata["lang"] = html_tag.get("lang")
        for meta in soup.find_all("meta"):
            content = meta.get("content")
            if not content:
                continue
            name = (meta.get("name") or "").lower()
            prop = (meta.get("property") or "").lower()
            if name in _META_NAMES:
                metadata.setdefault(_META_NAMES[name], content.strip())
            elif prop in _META_PROPERTIES:
                metadata.setdefault(_META_PROPERTIES[prop], content.strip())
        return metadata

    def _clean_text(self, soup: BeautifulSoup) -> str:
        # work on a copy; links and metadata were read from the original
        soup = self._soup_factory(str(soup))
        for tag in _BOILERPLATE_TAGS:
            for element in soup.find_all(tag):
                element.decompose()
        for pattern in _BOILERPLATE_PATTERNS:
            for element in soup.find_all(class_=lambda x: x and pattern in " ".join(x if isinstance(x, list) else [x]).lower()):
                element.decompose()
            for element in soup.find_all(id=lambda x: x and pattern in x.lower()):
                element.decompose()
        return soup.get_text(separator="\n", strip=True)
