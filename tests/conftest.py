# File: tests/conftest.py
from __future__ import annotations

from typing import Any, Callable, List, Tuple

import pytest

from link_scout.config import CrawlerOptions
from link_scout.controller import FrontierController
from link_scout.crawler.models import QueueItem


class FakeCrawler:
    """Stands in for the fetch engine: remembers every queue_url call."""

    def __init__(self) -> None:
        self.queued: List[Tuple[str, QueueItem]] = []

    def queue_url(self, url: str, referrer: QueueItem) -> bool:
        self.queued.append((url, referrer))
        return True


class Recorder:
    """Collects controller notifications as (name, args) tuples."""

    def __init__(self, controller: FrontierController) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        for name in (
            "redirect", "not_found", "http_error", "data_error", "gzip_error",
            "client_error", "queue_error", "fragment_not_found", "bad_fragment", "complete",
        ):
            controller.on(name, self._make(name))

    def _make(self, name: str) -> Callable[..., None]:
        def listener(*args: Any) -> None:
            self.calls.append((name, args))
        return listener

    def named(self, name: str) -> List[tuple]:
        return [args for n, args in self.calls if n == name]


@pytest.fixture()
def options() -> CrawlerOptions:
    """Path-locked crawl of http://site.test/a."""
    return CrawlerOptions(host="site.test", path="/a", lock_to_path=True, check_fragments=False)


@pytest.fixture()
def fake_crawler() -> FakeCrawler:
    return FakeCrawler()


@pytest.fixture()
def controller(options: CrawlerOptions, fake_crawler: FakeCrawler) -> FrontierController:
    return FrontierController(options, fake_crawler)


@pytest.fixture()
def recorder(controller: FrontierController) -> Recorder:
    return Recorder(controller)


@pytest.fixture()
def make_item() -> Callable[..., QueueItem]:
    """Factory for queue items as the crawler would hand them out."""
    def _make(url: str, referrer: str | None = None) -> QueueItem:
        return QueueItem(url, referrer)
    return _make

