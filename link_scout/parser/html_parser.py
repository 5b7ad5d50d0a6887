# === FILE: link_scout/parser/html_parser.py ===
"""HTML helpers used by the crawler and the frontier controller.

Three questions are asked of a fetched document:

* which resources does it reference (``href``/``src`` of anchors, links,
  images, scripts and frames) – :func:`discover_resources`;
* which anchors point at a fragment – :func:`fragment_anchors`;
* does it contain the element a ``#fragment`` refers to –
  :func:`find_fragment`.

The last one must tell "no such element" apart from "the fragment is not a
usable selector", so a malformed selector raises :class:`BadFragmentError`
instead of returning ``False``.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Union

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

__all__: Sequence[str] = (
    "BadFragmentError",
    "load",
    "discover_resources",
    "fragment_anchors",
    "find_fragment",
)

_RESOURCE_ATTRS = (("a", "href"), ("link", "href"), ("img", "src"), ("script", "src"), ("iframe", "src"))
_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")

Markup = Union[str, bytes, BeautifulSoup]


class BadFragmentError(ValueError):
    """The fragment cannot be turned into a CSS selector."""


def load(body: Markup) -> BeautifulSoup:
    if isinstance(body, BeautifulSoup):
        return body
    return BeautifulSoup(body, "html.parser")


def discover_resources(body: Markup) -> list[str]:
    """Raw (unresolved) references found in the document, first-seen order."""
    soup = load(body)
    seen: dict[str, None] = {}
    for tag_name, attr in _RESOURCE_ATTRS:
        for tag in soup.find_all(tag_name, attrs={attr: True}):
            value = str(tag.get(attr, "")).strip()
            if not value or value.lower().startswith(_SKIP_SCHEMES):
                continue
            seen.setdefault(value, None)
    return list(seen)


def fragment_anchors(body: Markup) -> list[str]:
    soup = load(body)
    return [str(a["href"]) for a in soup.select('a[href*="#"]')]


def find_fragment(body: Markup, fragment: str) -> bool:
    """True when ``#fragment`` selects at least one element."""
    selector = fragment if fragment.startswith("#") else "#" + fragment
    soup = load(body)
    try:
        return soup.select_one(selector) is not None
    except (SelectorSyntaxError, NotImplementedError, ValueError) as exc:
        # soupsieve refuses pseudo-elements such as "x::before" with NotImplementedError
        raise BadFragmentError(f"bad fragment selector {selector!r}: {exc}") from exc
