# === FILE: link_scout/scanner.py ===
"""
Модуль-обёртка: связывает краулер и контроллер фронтира и запускает обход.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, Mapping, Optional

from link_scout.config import CrawlerOptions
from link_scout.controller import FrontierController
from link_scout.crawler.crawler import AsyncCrawler
from link_scout.events import CrawlEvent

__all__ = ["start_crawl", "build"]


def build(options: CrawlerOptions) -> tuple[AsyncCrawler, FrontierController]:
    """Create a crawler and a controller wired to each other."""
    events: asyncio.Queue[CrawlEvent] = asyncio.Queue()
    crawler = AsyncCrawler(options, events)
    controller = FrontierController(options, crawler)
    crawler.add_fetch_condition(controller.should_fetch)
    return crawler, controller


async def start_crawl(
    options: CrawlerOptions,
    listeners: Optional[Mapping[str, Callable[..., Any]]] = None,
    controller_hook: Optional[Callable[[FrontierController], None]] = None,
) -> Dict[str, Any]:
    """
    Запускает обход и возвращает итоговое дерево фронтира.

    Parameters
    ----------
    options : CrawlerOptions
        Настройки обхода.
    listeners : Mapping[str, Callable], optional
        Подписчики на уведомления контроллера (``not_found``, ``redirect`` ...).
    controller_hook : Callable, optional
        Вызывается с контроллером до старта; при отмене обхода через него
        можно получить частичный фронтир.

    Returns
    -------
    Dict[str, Any]
        Фронтир в простом виде (см. :meth:`PathMap.to_dict`).
    """
    crawler, controller = build(options)
    for name, listener in (listeners or {}).items():
        controller.on(name, listener)
    if controller_hook is not None:
        controller_hook(controller)

    async with crawler:
        consumer = asyncio.create_task(controller.consume(crawler.events))
        try:
            await crawler.crawl()
        except BaseException:
            consumer.cancel()
            raise
        return await consumer
