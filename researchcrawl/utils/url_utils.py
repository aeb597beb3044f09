"""URL identity helpers used for ledger deduplication and domain grouping."""

import hashlib
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse


def normalize_url(url: str) -> str:
    """Return a canonical form of `url` for hashing.

    Drops the fragment, sorts query parameters, strips a trailing slash from
    non-root paths and lowercases the result.
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.strip().lower().split("#", 1)[0].rstrip("/")
    if not parsed.scheme or not parsed.netloc:
        return url.strip().lower().split("#", 1)[0].rstrip("/")

    query = urlencode(sorted(parse_qsl(parsed.query, keep_blank_values=True)))
    path = parsed.path or "/"
    if path.endswith("/") and len(path) > 1:
        path = path[:-1]
    normalized = urlunparse((parsed.scheme, parsed.netloc, path, parsed.params, query, ""))
    return normalized.lower()


def url_hash(url: str) -> str:
    """MD5 of the normalized URL; stable dedup key within a research run."""
    return hashlib.md5(normalize_url(url).encode("utf-8")).hexdigest()


def extract_domain(url: str) -> str:
    parsed = urlparse(url)
    if parsed.hostname:
        return parsed.hostname.lower()
    # Tolerate scheme-less input such as "example.com/path"
    return url.split("//", 1)[-1].split("/", 1)[0].split(":", 1)[0].lower()


def is_http_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def absolutize(base_url: str, href: str) -> Optional[str]:
    """Resolve `href` against `base_url` and drop the fragment.

    Returns None for non-http(s) targets (mailto:, javascript:, ...).
    """
    try:
        joined = urljoin(base_url, href.strip())
    except ValueError:
        return None
    joined = joined.split("#", 1)[0]
    return joined if is_http_url(joined) else None
