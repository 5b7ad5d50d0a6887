# File: link_scout/report/html_report.py
"""link_scout.report.html_report: Генерация HTML-отчёта с помощью Jinja2."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

_PACKAGE_TEMPLATES = Path(__file__).resolve().parent.parent / "templates"
_TEMPLATE_NAME = "report.html.j2"


def _describe(value: Any) -> tuple[str, str]:
    """(label, css class) for a plain frontier value."""
    if value == "" and isinstance(value, str):
        return "unresolved", "pending"
    if value is True:
        return "ok", "ok"
    if value is False:
        return "cleared", "pending"
    if isinstance(value, int):
        return f"HTTP {value}", "error"
    if isinstance(value, str):
        return value, "error"
    if isinstance(value, Mapping) and value.get("redirect") is True:
        return f"redirect {value.get('statusCode')}", "redirect"
    return "ok", "ok"


def frontier_entries(frontier: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Flatten a plain frontier into nested rows the template can walk."""
    rows: List[Dict[str, Any]] = []
    for url, value in frontier.items():
        label, css = _describe(value)
        children: List[Dict[str, Any]] = []
        if isinstance(value, Mapping):
            nested = {k: v for k, v in value.items() if k not in ("redirect", "statusCode")}
            children = frontier_entries(nested)
        rows.append({"url": url, "label": label, "css": css, "children": children})
    return rows


def render_html(
    frontier: Mapping[str, Any],
    output_path: Union[Path, str],
    template_dir: Optional[Union[Path, str]] = None,
    site_name: str = "",
) -> Path:
    """Рендерит HTML-отчёт из шаблона и сохраняет его по указанному пути.

    Args:
        frontier: итоговое дерево фронтира.
        output_path: путь к итоговому HTML-файлу.
        template_dir: директория с шаблоном ``report.html.j2``
            (по умолчанию шаблон из пакета).
        site_name: заголовок отчёта.

    Returns:
        Path до сохранённого HTML-файла.
    """
    template_dir = Path(template_dir) if template_dir is not None else _PACKAGE_TEMPLATES
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    template = env.get_template(_TEMPLATE_NAME)

    html_content = template.render(site_name=site_name, entries=frontier_entries(frontier))
    output_path.write_text(html_content, encoding="utf-8")

    return output_path
