# link_scout/__init__.py
"""
LinkScout package initializer.
Defines package version; the frontier controller is the main entry point.
"""
__version__ = "0.1.0"

from link_scout.config import CrawlerOptions, load_config
from link_scout.controller import FrontierController

__all__ = ["__version__", "CrawlerOptions", "FrontierController", "load_config"]
