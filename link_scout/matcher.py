# File: link_scout/matcher.py
"""link_scout.matcher: pure predicates over hosts, ports and paths.

Used by the frontier controller to decide whether a freshly discovered URL
is inside the crawl scope.
"""

from __future__ import annotations

from typing import Optional, Sequence, Union
from urllib.parse import urlsplit

__all__: Sequence[str] = (
    "host_matches",
    "port_matches",
    "path_matches",
    "is_path_descendant",
    "is_root_path",
    "is_on_host",
    "is_on_path",
)

PortT = Union[int, str, None]

_PLAIN_HTTP_PORT = 80


def _format_path_for_match(path: str) -> str:
    return path.strip("/").lower()


def _parse_port(value: PortT) -> Optional[int]:
    """Port number, or ``None`` for 80, missing and unparseable values."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        port = value
    else:
        try:
            port = int(str(value).strip())
        except ValueError:
            return None
    return None if port == _PLAIN_HTTP_PORT else port


def _split(url: str):
    """``urlsplit`` result, or ``None`` when urllib refuses the URL."""
    try:
        return urlsplit(url)
    except ValueError:
        return None


def _url_port(parts) -> Optional[int]:
    try:
        return parts.port
    except ValueError:
        return None


def host_matches(expected_host: str, candidate_host: Optional[str]) -> bool:
    """Exact match, or *candidate_host* is a subdomain of *expected_host*."""
    if not candidate_host or not expected_host:
        return False
    expected = expected_host.lower()
    candidate = candidate_host.lower()
    return candidate == expected or candidate.endswith("." + expected)


def port_matches(expected_port: PortT, candidate_port: PortT) -> bool:
    return _parse_port(expected_port) == _parse_port(candidate_port)


def path_matches(expected_path: str, candidate_path: str) -> bool:
    return expected_path == candidate_path or (
        _format_path_for_match(expected_path) == _format_path_for_match(candidate_path)
    )


def is_path_descendant(ancestor_path: str, candidate_path: str) -> bool:
    """``/a/b`` descends from ``/a``; ``/ab`` and ``/a`` itself do not."""
    ancestor = _format_path_for_match(ancestor_path)
    candidate = _format_path_for_match(candidate_path)
    if not ancestor:
        # everything except the root itself lies below "/"
        return bool(candidate)
    return candidate.startswith(ancestor + "/")


def is_root_path(url: str, host: str, path: str, port: PortT = None) -> bool:
    """True when *url* is the crawl's starting page."""
    if url == "/":
        return True
    parts = _split(url)
    return parts is not None and (
        host_matches(host, parts.hostname)
        and path_matches(path, parts.path)
        and port_matches(port, _url_port(parts))
    )


def is_on_host(url: str, host: str) -> bool:
    parts = _split(url)
    return parts is not None and host_matches(host, parts.hostname)


def is_on_path(url: str, host: str, path: str, port: PortT = None) -> bool:
    """Host and port match and the URL path lies strictly below *path*."""
    parts = _split(url)
    return parts is not None and (
        host_matches(host, parts.hostname)
        and port_matches(port, _url_port(parts))
        and is_path_descendant(path, parts.path)
    )
