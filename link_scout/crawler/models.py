# link_scout/crawler/models.py
"""
Data models for the LinkScout fetch engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from link_scout.urls import ParsedUrl, parse


@dataclass(slots=True)
class QueueItem:
    """One URL waiting in (or taken from) the crawler's queue."""

    url: str
    referrer: Optional[str] = None
    depth: int = 0
    status: str = "queued"
    parsed: ParsedUrl = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.parsed = parse(self.url)
