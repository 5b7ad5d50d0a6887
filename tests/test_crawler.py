# File: tests/test_crawler.py
# Test-suite for the LinkScout fetch engine and the full crawl pipeline
from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any, Callable, Dict, List, Tuple

import pytest
import pytest_asyncio
from aiohttp import web

from link_scout.config import CrawlerOptions
from link_scout.crawler.crawler import AsyncCrawler
from link_scout.crawler.models import QueueItem
from link_scout.events import CrawlComplete, DiscoveryComplete, FetchComplete, FetchDataError, QueueError
from link_scout.scanner import start_crawl

# --------------------------------------------------------------------------- #
#                               Helper utilities                              #
# --------------------------------------------------------------------------- #

#: upper bound for a whole crawl of the small test sites
CRAWL_TIMEOUT: float = 15.0


async def _serve_app(app: web.Application) -> AsyncIterator[Tuple[str, int]]:
    """Start *app* on a free port, yield (host, port), ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    try:
        host, port = runner.addresses[0][:2]
        yield host, port
    finally:
        await runner.cleanup()


def html(body: str) -> web.Response:
    return web.Response(text=f"<html><body>{body}</body></html>", content_type="text/html")


def drain(queue: asyncio.Queue) -> List[Any]:
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events


async def run_crawler(options: CrawlerOptions, backoff_factor: float = 0.0) -> List[Any]:
    crawler = AsyncCrawler(options)
    crawler.backoff_factor = backoff_factor
    async with crawler:
        await asyncio.wait_for(crawler.crawl(), timeout=CRAWL_TIMEOUT)
    return drain(crawler.events)


# --------------------------------------------------------------------------- #
#                                  Fixtures                                   #
# --------------------------------------------------------------------------- #


@pytest_asyncio.fixture
async def site_server() -> AsyncIterator[Tuple[str, int]]:
    """Small site under /docs with a redirect, a 404, a 500 and an off-path page."""
    app = web.Application()
    pages: Dict[str, Callable[[web.Request], Any]] = {}

    async def docs(_):
        return html(
            '<a href="/docs/guide">Guide</a>'
            '<a href="/docs/missing">Missing</a>'
            '<a href="/docs/old">Old</a>'
            '<a href="/docs/broken">Broken</a>'
            '<a href="/blog/post">Blog</a>'
            '<a href="mailto:someone@example.com">Mail</a>'
        )

    async def guide(_):
        return html('<h2 id="install">Install</h2><a href="/docs">Back</a><a href="/docs/guide#install">Here</a>')

    async def old(_):
        raise web.HTTPMovedPermanently(location="/docs/new")

    async def new(_):
        return html("<p>new</p>")

    async def broken(_):
        return web.Response(status=500, text="boom")

    async def blog(_):
        return html("<p>should never be fetched</p>")

    pages.update({"/docs": docs, "/docs/guide": guide, "/docs/old": old, "/docs/new": new,
                  "/docs/broken": broken, "/blog/post": blog})
    for route, handler in pages.items():
        app.router.add_get(route, handler)

    async for address in _serve_app(app):
        yield address


# --------------------------------------------------------------------------- #
#                               Queue handling                                #
# --------------------------------------------------------------------------- #


def test_queue_url_dedup_and_conditions():
    crawler = AsyncCrawler(CrawlerOptions(host="example.com"))
    crawler.add_fetch_condition(lambda parsed: parsed.path != "/skip")

    assert crawler.queue_url("/a") is True
    assert crawler.queue_url("http://EXAMPLE.com/a/") is False
    assert crawler.queue_url("/skip") is False
    assert crawler.queue_url("mailto:someone@example.com") is False
    assert crawler.queue_url("ftp://example.com/file") is False


def test_queue_url_resolves_against_referrer():
    crawler = AsyncCrawler(CrawlerOptions(host="example.com", max_depth=1))
    page = QueueItem("http://example.com/docs/guide", None, 0)
    assert crawler.queue_url("intro", page) is True

    item = crawler._queue.get_nowait()
    assert item.url == "http://example.com/docs/intro"
    assert item.referrer == "http://example.com/docs/guide"
    assert item.depth == 1

    deep = QueueItem("http://example.com/docs/intro", page.url, 1)
    assert crawler.queue_url("/docs/deeper", deep) is False


def test_queue_url_bad_port_emits_queue_error():
    crawler = AsyncCrawler(CrawlerOptions(host="example.com"))
    assert crawler.queue_url("http://example.com:notaport/x") is False

    (event,) = drain(crawler.events)
    assert isinstance(event, QueueError)
    assert isinstance(event.error, ValueError)
    assert event.url_data["url"] == "http://example.com:notaport/x"


# --------------------------------------------------------------------------- #
#                                Fetch engine                                 #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_retry_on_server_error():
    app = web.Application()
    call_count = {"n": 0}

    async def flaky(_):
        call_count["n"] += 1
        if call_count["n"] == 1:
            return web.Response(status=503)
        return html("<h1>Recover</h1>")

    app.router.add_get("/", flaky)

    async for host, port in _serve_app(app):
        events = await run_crawler(CrawlerOptions(host=host, port=port, retry_times=1))

    assert call_count["n"] == 2
    assert [type(e) for e in events] == [FetchComplete, DiscoveryComplete, CrawlComplete]
    assert events[0].content_type == "text/html"


@pytest.mark.asyncio()
async def test_oversize_body_is_a_data_error():
    app = web.Application()

    async def big(_):
        return web.Response(text="x" * 100, content_type="text/plain")

    app.router.add_get("/", big)

    async for host, port in _serve_app(app):
        events = await run_crawler(CrawlerOptions(host=host, port=port, max_resource_size=10))

    assert isinstance(events[0], FetchDataError)
    assert events[0].status_code == 200
    assert isinstance(events[-1], CrawlComplete)


@pytest.mark.asyncio()
async def test_cookies_are_sent():
    app = web.Application()
    seen: Dict[str, str] = {}

    async def root(request):
        seen.update(request.cookies)
        return html("<p>hi</p>")

    app.router.add_get("/", root)

    async for host, port in _serve_app(app):
        await run_crawler(CrawlerOptions(host=host, port=port, cookies=["session=abc"]))

    assert seen == {"session": "abc"}


# --------------------------------------------------------------------------- #
#                               Whole pipeline                                #
# --------------------------------------------------------------------------- #


@pytest.mark.asyncio()
async def test_crawl_builds_frontier(site_server):
    host, port = site_server
    base = f"http://{host}:{port}"
    options = CrawlerOptions(host=host, port=port, path="/docs", retry_times=0, timeout=5)
    notifications: List[Tuple[str, tuple]] = []

    def record(name):
        return lambda *args: notifications.append((name, args))

    listeners = {name: record(name) for name in ("not_found", "redirect", "http_error", "fragment_not_found")}
    controllers = []
    frontier = await asyncio.wait_for(
        start_crawl(options, listeners, controllers.append), timeout=CRAWL_TIMEOUT
    )

    docs = frontier[f"{base}/docs"]
    assert docs[f"{base}/docs/missing"] == 404
    assert docs[f"{base}/docs/broken"] == 500
    assert docs[f"{base}/docs/old"] == {"redirect": True, "statusCode": 301, f"{base}/docs/new": True}
    # discovered on the start page but outside the locked path
    assert docs[f"{base}/blog/post"] == ""

    guide = docs[f"{base}/docs/guide"]
    assert guide[f"{base}/docs"] == ""
    assert f"{base}/docs/guide#install" in guide

    assert ("not_found", (f"{base}/docs/missing",)) in notifications
    assert ("redirect", (f"{base}/docs/old", f"{base}/docs/new")) in notifications
    assert ("http_error", (f"{base}/docs/broken", 500, "Internal Server Error")) in notifications
    assert not [n for n in notifications if n[0] == "fragment_not_found"]

    (controller,) = controllers
    assert controller.is_complete
    assert controller.report() == frontier


def test_queue_url_unsplittable_href_emits_queue_error():
    crawler = AsyncCrawler(CrawlerOptions(host="example.com"))
    page = QueueItem("http://example.com/docs", None, 0)
    assert crawler.queue_url("http://[oops", page) is False
    assert crawler._queue.empty()

    (event,) = drain(crawler.events)
    assert isinstance(event, QueueError)
    assert event.url_data == {"url": "http://[oops", "referrer": "http://example.com/docs"}
