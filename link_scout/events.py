# File: link_scout/events.py
"""link_scout.events: typed events pushed by the fetch engine.

The crawler puts one of these on an :class:`asyncio.Queue` for every fetch
outcome; :class:`link_scout.controller.FrontierController` drains the queue
and updates the frontier.  Every resource gets exactly one terminal outcome
(``FetchComplete``, ``FetchRedirect``, ``Fetch404``, ``FetchError``,
``FetchDataError``, ``GzipError`` or ``FetchClientError``), HTML documents
additionally get a ``DiscoveryComplete``, and the stream ends with a single
``CrawlComplete``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from link_scout.crawler.models import QueueItem
from link_scout.urls import ParsedUrl

__all__: Sequence[str] = (
    "DiscoveryComplete",
    "FetchRedirect",
    "Fetch404",
    "FetchError",
    "FetchDataError",
    "GzipError",
    "FetchClientError",
    "QueueError",
    "FetchComplete",
    "CrawlComplete",
    "CrawlEvent",
)


@dataclass(frozen=True, slots=True)
class DiscoveryComplete:
    item: QueueItem
    resources: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class FetchRedirect:
    item: QueueItem
    target: ParsedUrl
    status_code: int


@dataclass(frozen=True, slots=True)
class Fetch404:
    item: QueueItem
    status_code: int = 404


@dataclass(frozen=True, slots=True)
class FetchError:
    item: QueueItem
    status_code: int
    message: str = ""


@dataclass(frozen=True, slots=True)
class FetchDataError:
    item: QueueItem
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GzipError:
    item: QueueItem
    error: BaseException


@dataclass(frozen=True, slots=True)
class FetchClientError:
    item: QueueItem
    error: BaseException


@dataclass(frozen=True, slots=True)
class QueueError:
    error: BaseException
    url_data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class FetchComplete:
    item: QueueItem
    body: bytes = b""
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CrawlComplete:
    pass


CrawlEvent = Union[
    DiscoveryComplete,
    FetchRedirect,
    Fetch404,
    FetchError,
    FetchDataError,
    GzipError,
    FetchClientError,
    QueueError,
    FetchComplete,
    CrawlComplete,
]
