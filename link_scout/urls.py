# File: link_scout/urls.py
"""link_scout.urls: canonical string form for URLs and discovered paths.

Every key stored in the frontier goes through :func:`normalize`, so two
spellings of the same page (``HTTP://Example.com/Docs/`` and
``http://example.com/docs``) end up as one key.
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlsplit

__all__: Sequence[str] = (
    "ParsedUrl",
    "DEFAULT_PORTS",
    "normalize",
    "normalize_parsed",
    "parse",
    "resolve_discovered",
    "is_relative",
    "split_fragment",
    "has_fragment",
)

DEFAULT_PORTS = {"http": 80, "https": 443}


class ParsedUrl(NamedTuple):
    """Decomposed URL as handed to fetch conditions by the crawler."""

    scheme: str
    host: str
    port: Optional[int]
    path: str


def normalize(url: str) -> str:
    """Strip trailing slashes and lowercase; the bare root ``"/"`` is kept."""
    if url == "/":
        return url
    return url.rstrip("/").lower()


def normalize_parsed(parsed: ParsedUrl) -> str:
    """Rebuild ``scheme://host[:port]path`` and normalize it.

    The port segment is omitted when it is the default one for the scheme.
    """
    base = f"{parsed.scheme}://{parsed.host}"
    if parsed.port is not None and parsed.port != DEFAULT_PORTS.get(parsed.scheme):
        base += f":{parsed.port}"
    return normalize(base + (parsed.path or ""))


def parse(url: str) -> ParsedUrl:
    """Decompose an absolute URL; ``path`` keeps query and fragment."""
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path += "?" + parts.query
    if parts.fragment:
        path += "#" + parts.fragment
    # .port raises ValueError for garbage such as ":abc" or out-of-range values
    return ParsedUrl(parts.scheme.lower(), (parts.hostname or ""), parts.port, path)


def is_relative(url: str) -> bool:
    """True for references without a scheme (``/a``, ``../b``, ``//host/c``)."""
    return not urlsplit(url).scheme


def resolve_discovered(path: str, page_url: str) -> str:
    """Resolve a link found on *page_url* and return its normalized form.

    Raises ``ValueError`` for references urllib cannot split, such as an
    unterminated IPv6 host (``http://[oops``).
    """
    if is_relative(path):
        return normalize(urljoin(page_url, path))
    return normalize(path)


def split_fragment(url: str) -> Tuple[str, str]:
    """Split ``url`` at the first ``#``; the fragment comes back without it."""
    head, sep, fragment = url.partition("#")
    return head, fragment if sep else ""


def has_fragment(url: str) -> bool:
    return "#" in url
