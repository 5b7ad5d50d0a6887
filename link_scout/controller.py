# File: link_scout/controller.py
"""link_scout.controller: keeps the crawl frontier in step with the crawler.

:class:`FrontierController` does three things:

1. answers the crawler's "may I fetch this URL?" question
   (:meth:`FrontierController.should_fetch`);
2. consumes the crawler's typed events one at a time
   (:meth:`FrontierController.consume` / :meth:`FrontierController.handle`)
   and records each outcome on every occurrence of the URL in the
   :class:`~link_scout.pathmap.PathMap`;
3. re-publishes a simplified notification for consumers registered with
   :meth:`FrontierController.on`.

Notifications and their arguments::

    redirect(url, target)            not_found(url)
    http_error(url, code, message)   data_error(url, code, headers)
    gzip_error(url, error)           client_error(url, error)
    queue_error(error, url_data)     fragment_not_found(url)
    bad_fragment(referrer, url)      complete(frontier)

Nothing raised by a single URL ever escapes the controller; after the
options validate, failures are only visible as notifications.
"""

from __future__ import annotations

import asyncio
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List, Mapping, Optional, Protocol, Union

from link_scout.config import CrawlerOptions
from link_scout.crawler.models import QueueItem
from link_scout.events import (
    CrawlComplete,
    CrawlEvent,
    DiscoveryComplete,
    Fetch404,
    FetchClientError,
    FetchComplete,
    FetchDataError,
    FetchError,
    FetchRedirect,
    GzipError,
    QueueError,
)
from link_scout.logger import get_logger
from link_scout.matcher import is_on_host, is_on_path, is_root_path
from link_scout.parser.html_parser import BadFragmentError, find_fragment, fragment_anchors, load
from link_scout.pathmap import (
    UNRESOLVED,
    Failure,
    FailureKind,
    HttpStatus,
    PathMap,
    Redirected,
    promote_resolved,
)
from link_scout.urls import (
    DEFAULT_PORTS,
    ParsedUrl,
    has_fragment,
    normalize,
    normalize_parsed,
    resolve_discovered,
    split_fragment,
)

__all__ = ["FrontierController", "NOTIFICATIONS"]

logger = get_logger("controller")
admission_logger = get_logger("controller.admission")

NOTIFICATIONS = (
    "redirect",
    "not_found",
    "http_error",
    "data_error",
    "gzip_error",
    "client_error",
    "queue_error",
    "fragment_not_found",
    "bad_fragment",
    "complete",
)

Listener = Callable[..., Any]


class FragmentQueue(Protocol):
    """What the controller needs from the crawler: queue one more URL."""

    def queue_url(self, url: str, referrer: QueueItem) -> bool: ...


class FrontierController:
    """Frontier bookkeeping for one crawl of one site."""

    def __init__(
        self,
        options: Union[CrawlerOptions, Mapping[str, Any]],
        crawler: Optional[FragmentQueue] = None,
    ) -> None:
        if not isinstance(options, CrawlerOptions):
            # raises pydantic.ValidationError, e.g. when host is missing
            options = CrawlerOptions.model_validate(dict(options))
        self.options = options
        self.site_name: str = options.site_name or options.host
        self.host = options.host
        self.path = options.path
        self.port = options.port
        self.is_locked_to_path = options.lock_to_path
        self.is_checking_fragments = options.check_fragments
        self.cookies = list(options.cookies)
        # the default port of the scheme is matched as "no port"
        self._scope_port = None if self.port == DEFAULT_PORTS[options.scheme] else self.port
        self.is_complete = False

        self.crawler = crawler
        self.frontier = PathMap()
        self.frontier.root[options.start_url] = UNRESOLVED
        self._lock = threading.RLock()
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)
        self._handlers: Dict[type, Callable[[Any], None]] = {
            DiscoveryComplete: self._on_discovery_complete,
            FetchRedirect: self._on_redirect,
            Fetch404: self._on_not_found,
            FetchError: self._on_fetch_error,
            FetchDataError: self._on_data_error,
            GzipError: self._on_gzip_error,
            FetchClientError: self._on_client_error,
            QueueError: self._on_queue_error,
            FetchComplete: self._on_fetch_complete,
            CrawlComplete: self._on_crawl_complete,
        }

    # Notifications -----------------------------------------------------------
    def on(self, name: str, listener: Listener) -> Listener:
        if name not in NOTIFICATIONS:
            raise ValueError(f"unknown notification {name!r}")
        self._listeners[name].append(listener)
        return listener

    def off(self, name: str, listener: Listener) -> None:
        if listener in self._listeners.get(name, []):
            self._listeners[name].remove(listener)

    def emit(self, name: str, *args: Any) -> None:
        for listener in list(self._listeners.get(name, [])):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener %r for %s failed", listener, name)

    # Admission ---------------------------------------------------------------
    def should_fetch(self, candidate: Union[ParsedUrl, str]) -> bool:
        """Fetch condition installed on the crawler."""
        url = normalize_parsed(candidate) if isinstance(candidate, ParsedUrl) else normalize(candidate)
        with self._lock:
            is_known = self.frontier.contains(url)
        if is_known:
            return True
        if self.is_locked_to_path:
            allowed = is_on_path(url, self.host, self.path, self._scope_port)
        else:
            allowed = is_on_host(url, self.host)
        if not allowed:
            admission_logger.debug("Out of scope, not fetching %s", url)
        return allowed

    # Event consumption -------------------------------------------------------
    async def consume(self, events: "asyncio.Queue[CrawlEvent]") -> Dict[str, Any]:
        """Drain *events* until ``CrawlComplete``; return the final frontier."""
        while True:
            event = await events.get()
            try:
                self.handle(event)
            finally:
                events.task_done()
            if isinstance(event, CrawlComplete):
                return self.report()

    def handle(self, event: CrawlEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning("Ignoring unknown event %r", event)
            return
        with self._lock:
            handler(event)

    def report(self) -> Dict[str, Any]:
        with self._lock:
            return self.frontier.to_dict()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self.frontier.stats())

    def _is_root(self, url: str) -> bool:
        return is_root_path(url, self.host, self.path, self._scope_port)

    # Handlers ----------------------------------------------------------------
    def _on_discovery_complete(self, event: DiscoveryComplete) -> None:
        page_url = normalize(event.item.url)
        links = []
        for resource in event.resources:
            try:
                links.append(resolve_discovered(resource, page_url))
            except ValueError as exc:
                logger.warning("Skipping unresolvable link %r on %s: %s", resource, page_url, exc)
        if links:
            self.frontier.record_links(page_url, links, is_root=self._is_root(page_url))

    def _on_redirect(self, event: FetchRedirect) -> None:
        target = normalize_parsed(event.target)
        self.frontier.set_result(event.item.url, Redirected(event.status_code, target))
        logger.info("Redirect %s %s -> %s", event.status_code, event.item.url, target)
        self.emit("redirect", event.item.url, target)

    def _on_not_found(self, event: Fetch404) -> None:
        self.frontier.set_result(event.item.url, HttpStatus(404))
        logger.warning("Not found: %s (referrer %s)", event.item.url, event.item.referrer)
        self.emit("not_found", event.item.url)

    def _on_fetch_error(self, event: FetchError) -> None:
        self.frontier.set_result(event.item.url, HttpStatus(event.status_code))
        logger.warning("HTTP %s %s: %s", event.status_code, event.item.url, event.message)
        self.emit("http_error", event.item.url, event.status_code, event.message)

    def _on_data_error(self, event: FetchDataError) -> None:
        self.frontier.set_result(event.item.url, Failure(FailureKind.DATA_ERROR))
        logger.warning("Data error for %s (HTTP %s)", event.item.url, event.status_code)
        self.emit("data_error", event.item.url, event.status_code, event.headers)

    def _on_gzip_error(self, event: GzipError) -> None:
        self.frontier.set_result(event.item.url, Failure(FailureKind.GZIP_ERROR))
        logger.warning("Could not decompress %s: %s", event.item.url, event.error)
        self.emit("gzip_error", event.item.url, event.error)

    def _on_client_error(self, event: FetchClientError) -> None:
        self.frontier.set_result(event.item.url, Failure(FailureKind.CLIENT_ERROR))
        logger.warning("Client error for %s: %s", event.item.url, event.error)
        self.emit("client_error", event.item.url, event.error)

    def _on_queue_error(self, event: QueueError) -> None:
        logger.warning("Queue error: %s (%s)", event.error, event.url_data)
        self.emit("queue_error", event.error, event.url_data)

    def _on_fetch_complete(self, event: FetchComplete) -> None:
        item = event.item
        fragment_failed = False
        if self.is_checking_fragments:
            fragment_failed = self._check_fragments(item, event.body)
        if not fragment_failed:
            self.frontier.set_result(item.url, promote_resolved)

    def _check_fragments(self, item: QueueItem, body: bytes) -> bool:
        """Queue fragment links and verify the item's own fragment.

        Returns True when a fragment failure was recorded for the item.
        """
        soup = load(body)
        if self.crawler is not None:
            for href in fragment_anchors(soup):
                self.crawler.queue_url(href, item)

        if not has_fragment(item.url):
            return False
        _, fragment = split_fragment(item.url)
        try:
            if find_fragment(soup, fragment):
                return False
        except BadFragmentError as exc:
            logger.warning("Bad fragment %s on %s: %s", item.url, item.referrer, exc)
            self.frontier.set_result(item.url, Failure(FailureKind.BAD_FRAGMENT))
            # reported against the page holding the link, not the target
            self.emit("bad_fragment", item.referrer, item.url)
            return True
        logger.warning("Fragment not found: %s", item.url)
        self.frontier.set_result(item.url, Failure(FailureKind.FRAGMENT_NOT_FOUND))
        self.emit("fragment_not_found", item.url)
        return True

    def _on_crawl_complete(self, _event: CrawlComplete) -> None:
        self.is_complete = True
        logger.info("Crawl of %s complete: %s", self.site_name, dict(self.frontier.stats()))
        self.emit("complete", self.frontier.to_dict())
