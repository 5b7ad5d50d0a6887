# File: link_scout/crawler/__init__.py
"""link_scout.crawler: aiohttp fetch engine producing crawl events."""
