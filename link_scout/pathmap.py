# File: link_scout/pathmap.py
"""link_scout.pathmap: the crawl frontier as a tree of URL occurrences.

Each node maps a normalized URL to a :data:`Marker` describing what is known
about that URL *at that place in the tree*.  A page's discovered links live
in a child node hanging off the page's own entry, so the same URL can show up
under many pages (a footer link appears under every page that has it).  Each
appearance is an *occurrence*.

Nodes are stored in an arena (a plain list) and referenced by index.
:meth:`PathMap.find` returns :class:`Occurrence` handles (node index + key)
rather than the dicts themselves; reading and writing through a handle
updates the live tree, which is how one event updates every occurrence of a
URL at once.

Plain form
----------
:meth:`PathMap.to_dict` renders the tree as nested dicts using the classic
report encoding::

    ""                      unresolved
    True / False            resolved / cleared
    404                     HTTP status
    "gziperror"             failure tag
    {"redirect": True, "statusCode": 301, "http://x/b": ""}
    {...}                   links discovered on the page
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Union,
)

from link_scout.urls import normalize

__all__: Sequence[str] = (
    "NodeId",
    "Occurrence",
    "FailureKind",
    "Unresolved",
    "Resolved",
    "Cleared",
    "HttpStatus",
    "Failure",
    "Redirected",
    "Links",
    "Marker",
    "UNRESOLVED",
    "RESOLVED",
    "CLEARED",
    "PathMap",
    "is_sub_map",
    "child_node",
    "promote_resolved",
)

NodeId = int


class FailureKind(str, Enum):
    """Closed set of string tags a URL can be marked with."""

    DATA_ERROR = "dataerror"
    GZIP_ERROR = "gziperror"
    CLIENT_ERROR = "clienterror"
    FRAGMENT_NOT_FOUND = "fragment_not_found"
    BAD_FRAGMENT = "bad_fragment"
    REDIRECT = "redirect"


# --------------------------------------------------------------------------- #
# Markers                                                                     #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Unresolved:
    """Discovered, fetch outcome not known yet."""

    state: ClassVar[str] = "unresolved"


@dataclass(frozen=True, slots=True)
class Resolved:
    """Fetched successfully."""

    state: ClassVar[str] = "resolved"


@dataclass(frozen=True, slots=True)
class Cleared:
    state: ClassVar[str] = "cleared"


@dataclass(frozen=True, slots=True)
class HttpStatus:
    code: int

    state: ClassVar[str] = "http_status"


@dataclass(frozen=True, slots=True)
class Failure:
    kind: FailureKind

    state: ClassVar[str] = "failure"


@dataclass(frozen=True, slots=True)
class Redirected:
    """Redirect record; ``node`` holds ``{target: Unresolved}``.

    A record built without a node gets one allocated when it is stored.
    """

    status_code: int
    target: str
    node: Optional[NodeId] = None

    state: ClassVar[str] = "redirected"


@dataclass(frozen=True, slots=True)
class Links:
    """Links discovered on the page, stored in child ``node``."""

    node: NodeId

    state: ClassVar[str] = "links"


Marker = Union[Unresolved, Resolved, Cleared, HttpStatus, Failure, Redirected, Links]
_MARKER_TYPES = (Unresolved, Resolved, Cleared, HttpStatus, Failure, Redirected, Links)
Updater = Callable[[Marker], Marker]

UNRESOLVED = Unresolved()
RESOLVED = Resolved()
CLEARED = Cleared()


class Occurrence(NamedTuple):
    """Handle for one appearance of ``url`` inside node ``node``."""

    node: NodeId
    url: str


def child_node(value: Any) -> Optional[NodeId]:
    """Arena index of the nested node carried by *value*, if any."""
    if isinstance(value, Links):
        return value.node
    if isinstance(value, Redirected):
        return value.node
    return None


def is_sub_map(value: Any) -> bool:
    """True for nested maps, false for terminal markers and scalars.

    Besides :class:`Links` and stored :class:`Redirected` records this also
    accepts a plain mapping, which :meth:`PathMap.set_result` parses into a
    fresh child node.
    """
    if isinstance(value, (Links, Redirected)):
        return child_node(value) is not None
    return isinstance(value, Mapping)


def promote_resolved(value: Marker) -> Marker:
    """Updater for plain completions: only ``Unresolved`` becomes ``Resolved``."""
    if isinstance(value, Unresolved):
        return RESOLVED
    return value


# --------------------------------------------------------------------------- #
# The tree                                                                    #
# --------------------------------------------------------------------------- #


class PathMap:
    """Arena-backed frontier tree; node ``0`` is the root."""

    ROOT: NodeId = 0

    def __init__(self) -> None:
        self._nodes: List[Dict[str, Marker]] = [{}]

    # Node access -------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: NodeId) -> Dict[str, Marker]:
        """Live entries of a node."""
        return self._nodes[node_id]

    @property
    def root(self) -> Dict[str, Marker]:
        return self._nodes[self.ROOT]

    def new_node(self, entries: Union[Mapping[str, Marker], Iterable[str]] = ()) -> NodeId:
        """Allocate a node; bare URL iterables start out unresolved."""
        if isinstance(entries, Mapping):
            data = {normalize(k): self._materialize(v) for k, v in entries.items()}
        else:
            data = {normalize(url): UNRESOLVED for url in entries}
        self._nodes.append(data)
        return len(self._nodes) - 1

    def clone_node(self, node_id: NodeId) -> NodeId:
        """Deep copy of a subtree into fresh nodes."""
        copied: Dict[str, Marker] = {}
        for key, value in self._nodes[node_id].items():
            nested = child_node(value)
            copied[key] = value if nested is None else replace(value, node=self.clone_node(nested))
        self._nodes.append(copied)
        return len(self._nodes) - 1

    def get(self, occurrence: Occurrence) -> Marker:
        return self._nodes[occurrence.node][occurrence.url]

    def set(self, occurrence: Occurrence, value: Marker) -> None:
        self._nodes[occurrence.node][occurrence.url] = value

    # Search ------------------------------------------------------------------
    def walk(self, start: NodeId = ROOT) -> Iterator[NodeId]:
        """Depth-first, pre-order node ids reachable from *start*."""
        stack = [start]
        while stack:
            node_id = stack.pop()
            yield node_id
            nested = [child_node(v) for v in self._nodes[node_id].values()]
            stack.extend(reversed([n for n in nested if n is not None]))

    def find(self, url: str) -> List[Occurrence]:
        """Every occurrence of the (already normalized) *url* in the tree."""
        return [Occurrence(node_id, url) for node_id in self.walk() if url in self._nodes[node_id]]

    def contains(self, url: str) -> bool:
        return any(url in self._nodes[node_id] for node_id in self.walk())

    def occurrence_count(self, url: str) -> int:
        return len(self.find(normalize(url)))

    def urls(self) -> List[str]:
        """Distinct keys reachable from the root, in discovery order."""
        seen: Dict[str, None] = {}
        for node_id in self.walk():
            for key in self._nodes[node_id]:
                seen.setdefault(key, None)
        return list(seen)

    # Mutation ----------------------------------------------------------------
    def record_links(
        self, page_url: str, discovered: Iterable[str], *, is_root: bool = False
    ) -> List[Occurrence]:
        """Attach a fresh link node to every occurrence of *page_url*.

        When the page is not in the tree yet but *is_root* says it is the
        crawl's starting page, a root entry is created for it.
        """
        key = normalize(page_url)
        links = list(discovered)
        occurrences = self.find(key)
        if not occurrences and is_root:
            occurrences = [Occurrence(self.ROOT, key)]
        for occurrence in occurrences:
            self.set(occurrence, Links(self.new_node(links)))
        return occurrences

    def set_result(
        self, url: str, value: Union[Marker, Mapping[str, Any], Updater, str, int]
    ) -> List[Occurrence]:
        """Store *value* (or ``value(current)``) on every occurrence of *url*.

        Nested values are copied per occurrence so that no two occurrences
        share a child node.  Plain report values (``""``, ``True``, ``404``,
        ``"gziperror"``, nested dicts) are parsed into markers first.
        """
        key = normalize(url)
        occurrences = self.find(key)
        for occurrence in occurrences:
            current = self.get(occurrence)
            if callable(value):
                updated = value(current)
                if updated is current:
                    continue
            else:
                updated = value
            self.set(occurrence, self._materialize(updated))
        return occurrences

    def _materialize(self, value: Any) -> Marker:
        if isinstance(value, Mapping) and value.get("redirect") is True:
            return self._parse_value(value)
        if isinstance(value, Mapping):
            return Links(self.new_node(value))
        if not isinstance(value, _MARKER_TYPES):
            # plain report values: "", True, 404, "gziperror", ...
            return self._parse_value(value)
        if isinstance(value, Redirected) and value.node is None:
            return replace(value, node=self.new_node({value.target: UNRESOLVED}))
        nested = child_node(value)
        if nested is not None:
            return replace(value, node=self.clone_node(nested))
        return value

    # Reporting ---------------------------------------------------------------
    def stats(self) -> Counter:
        """Number of occurrences per marker state."""
        counts: Counter = Counter()
        for node_id in self.walk():
            for value in self._nodes[node_id].values():
                counts[value.state] += 1
        return counts

    def to_dict(self, node_id: NodeId = ROOT) -> Dict[str, Any]:
        return {key: self._plain(value) for key, value in self._nodes[node_id].items()}

    def _plain(self, value: Marker) -> Any:
        if isinstance(value, Unresolved):
            return ""
        if isinstance(value, Resolved):
            return True
        if isinstance(value, Cleared):
            return False
        if isinstance(value, HttpStatus):
            return value.code
        if isinstance(value, Failure):
            return value.kind.value
        if isinstance(value, Redirected):
            record: Dict[str, Any] = {"redirect": True, "statusCode": value.status_code}
            if value.node is not None:
                record.update(self.to_dict(value.node))
            return record
        return self.to_dict(value.node)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PathMap":
        """Build a tree from its plain form (see module docstring)."""
        tree = cls()
        tree._nodes[cls.ROOT] = tree._parse_entries(data)
        return tree

    def _parse_entries(self, data: Mapping[str, Any]) -> Dict[str, Marker]:
        return {str(key): self._parse_value(value) for key, value in data.items()}

    def _parse_value(self, value: Any) -> Marker:
        if isinstance(value, bool):
            return RESOLVED if value else CLEARED
        if isinstance(value, int):
            return HttpStatus(value)
        if isinstance(value, str):
            return UNRESOLVED if value == "" else Failure(FailureKind(value))
        if isinstance(value, Mapping):
            if value.get("redirect") is True and "statusCode" in value:
                rest = {k: v for k, v in value.items() if k not in ("redirect", "statusCode")}
                target = next(iter(rest), "")
                self._nodes.append(self._parse_entries(rest))
                return Redirected(int(value["statusCode"]), target, len(self._nodes) - 1)
            self._nodes.append(self._parse_entries(value))
            return Links(len(self._nodes) - 1)
        raise ValueError(f"unsupported frontier value: {value!r}")
