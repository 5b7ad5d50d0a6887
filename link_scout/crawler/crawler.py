# === FILE: link_scout/crawler/crawler.py ===
"""Asynchronous fetch engine for LinkScout.

:class:`AsyncCrawler` walks a site with a small pool of aiohttp workers and
reports what happens to every URL as typed events (see
:mod:`link_scout.events`) on an :class:`asyncio.Queue`.  It knows nothing
about the frontier: scope decisions come from the fetch conditions
registered with :meth:`AsyncCrawler.add_fetch_condition`.
"""
from __future__ import annotations

import asyncio
import random
from typing import Callable, List, Optional, Sequence, Set
from urllib.parse import urljoin

from aiohttp import ClientError, ClientPayloadError, ClientResponse, ClientSession, ClientTimeout, CookieJar
from yarl import URL

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
from link_scout.parser.html_parser import discover_resources
from link_scout.urls import ParsedUrl, normalize, parse

__all__ = ("AsyncCrawler", "FetchCondition")

FetchCondition = Callable[[ParsedUrl], bool]

_HTML_TYPES = ("text/html", "application/xhtml+xml")


class AsyncCrawler:
    """Асинхронный краулер: очередь, пул воркеров, retry и события на каждый URL."""
    _RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
    _REDIRECT_STATUS: Sequence[int] = (301, 302, 303, 307, 308)
    _NOT_FOUND_STATUS: Sequence[int] = (404, 410)

    def __init__(self, options: CrawlerOptions, events: Optional[asyncio.Queue[CrawlEvent]] = None) -> None:
        self.options = options
        self.events: asyncio.Queue[CrawlEvent] = events if events is not None else asyncio.Queue()
        self.session: Optional[ClientSession] = None
        self.logger = get_logger("crawler")
        self.backoff_factor = 1.0
        self.fetched = 0
        self._conditions: List[FetchCondition] = []
        self._queue: asyncio.Queue[QueueItem] = asyncio.Queue()
        self._seen: Set[str] = set()

    async def __aenter__(self) -> AsyncCrawler:
        jar = CookieJar(unsafe=True)
        if self.options.cookies:
            jar.update_cookies(self.options.cookie_map(), response_url=URL(self.options.base_url))
        self.session = ClientSession(
            timeout=ClientTimeout(total=self.options.timeout),
            headers={"User-Agent": self.options.user_agent},
            cookie_jar=jar,
            raise_for_status=False,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session and not self.session.closed:
            await self.session.close()

    # Queue -------------------------------------------------------------------
    def add_fetch_condition(self, condition: FetchCondition) -> FetchCondition:
        self._conditions.append(condition)
        return condition

    def queue_url(self, url: str, referrer: Optional[QueueItem] = None) -> bool:
        """Resolve *url* against *referrer* and queue it if every condition agrees."""
        base = referrer.url if referrer is not None else self.options.base_url + "/"
        depth = referrer.depth + 1 if referrer is not None else 0
        absolute = url
        try:
            # urljoin rejects broken netlocs such as "http://[oops"
            absolute = urljoin(base, url.strip())
            item = QueueItem(absolute, referrer.url if referrer is not None else None, depth)
        except ValueError as exc:
            self._emit(QueueError(exc, {"url": absolute, "referrer": base}))
            return False
        if item.parsed.scheme not in ("http", "https") or not item.parsed.host:
            self.logger.debug("Unsupported URL skipped: %s", absolute)
            return False

        key = normalize(absolute)
        if key in self._seen:
            return False
        if self.options.max_depth is not None and depth > self.options.max_depth:
            return False
        if not all(condition(item.parsed) for condition in self._conditions):
            return False
        self._seen.add(key)
        self._queue.put_nowait(item)
        return True

    def _emit(self, event: CrawlEvent) -> None:
        self.events.put_nowait(event)

    # Crawl -------------------------------------------------------------------
    async def crawl(self) -> int:
        """Обходит сайт до исчерпания очереди; возвращает число загрузок."""
        start = self.options.base_url + self.options.path
        self.logger.info("Старт обхода: %s", start)
        self.queue_url(start)
        workers = [asyncio.create_task(self._worker()) for _ in range(self.options.concurrency)]
        try:
            await self._queue.join()
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        self.logger.info("Завершено: %d загрузок", self.fetched)
        self._emit(CrawlComplete())
        return self.fetched

    run = crawl

    async def _worker(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                item.status = "spooled"
                await self._fetch(item)
                item.status = "fetched"
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # a worker must survive anything a single URL throws at it
                self.logger.exception("Unexpected failure fetching %s", item.url)
                self._emit(FetchClientError(item, exc))
            finally:
                self._queue.task_done()

    async def _fetch(self, item: QueueItem) -> None:
        if not self.session:
            raise RuntimeError("Session not initialized")
        attempts = 0
        while True:
            try:
                async with self.session.get(item.url, allow_redirects=False) as resp:
                    if resp.status in self._RETRY_STATUS and attempts < self.options.retry_times:
                        attempts += 1
                        await self._backoff(item, attempts)
                        continue
                    self.fetched += 1
                    await self._handle_response(item, resp)
                    return
            except ClientPayloadError as exc:
                self._emit(GzipError(item, exc))
                return
            except (ClientError, asyncio.TimeoutError) as exc:
                attempts += 1
                if attempts > self.options.retry_times:
                    self.logger.warning("Failed %s: %r", item.url, exc)
                    self._emit(FetchClientError(item, exc))
                    return
                await self._backoff(item, attempts)

    async def _backoff(self, item: QueueItem, attempts: int) -> None:
        delay = min(60, (2**attempts + random.random()) * self.backoff_factor)
        self.logger.debug("Retry %d/%d for %s after %.2f s", attempts, self.options.retry_times, item.url, delay)
        await asyncio.sleep(delay)

    async def _handle_response(self, item: QueueItem, resp: ClientResponse) -> None:
        status = resp.status
        location = resp.headers.get("Location")
        if status in self._REDIRECT_STATUS and location:
            target_url = location
            try:
                target_url = urljoin(item.url, location)
                target = parse(target_url)
            except ValueError as exc:
                self._emit(QueueError(exc, {"url": target_url, "referrer": item.url}))
                self._emit(FetchError(item, status, "invalid redirect target"))
                return
            self._emit(FetchRedirect(item, target, status))
            self.queue_url(target_url, item)
            return
        if status in self._NOT_FOUND_STATUS:
            self._emit(Fetch404(item, status))
            return
        if status >= 300:
            self._emit(FetchError(item, status, resp.reason or ""))
            return

        limit = self.options.max_resource_size
        if resp.content_length is not None and resp.content_length > limit:
            self._emit(FetchDataError(item, status, dict(resp.headers)))
            return
        body = await self._read_body(resp, limit)
        if body is None:
            self._emit(FetchDataError(item, status, dict(resp.headers)))
            return

        content_type = resp.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
        self._emit(FetchComplete(item, body, content_type or None))
        if content_type in _HTML_TYPES:
            resources = discover_resources(body)
            for resource in resources:
                self.queue_url(resource, item)
            self._emit(DiscoveryComplete(item, resources))

    @staticmethod
    async def _read_body(resp: ClientResponse, limit: int) -> Optional[bytes]:
        """Read at most *limit* bytes; ``None`` when the body is larger."""
        chunks: List[bytes] = []
        size = 0
        async for chunk in resp.content.iter_chunked(64 * 1024):
            size += len(chunk)
            if size > limit:
                return None
            chunks.append(chunk)
        return b"".join(chunks)
