# File: link_scout/report/__init__.py
"""link_scout.report: JSON и HTML отчёты по итоговому фронтиру."""

from link_scout.report.html_report import render_html
from link_scout.report.json_report import frontier_json, render_json

__all__ = ["render_json", "render_html", "frontier_json"]
