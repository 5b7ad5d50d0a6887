# link_scout/report/json_report.py

"""
Генерация JSON-отчёта для проекта LinkScout.

Сериализация итогового фронтира (вложенный словарь) в файл.
"""
import json
from pathlib import Path
from typing import Any, Mapping


def frontier_json(frontier: Mapping[str, Any], *, pretty: bool = False) -> str:
    """Возвращает JSON-представление фронтира."""
    return json.dumps(frontier, ensure_ascii=False, indent=2 if pretty else None)


def render_json(frontier: Mapping[str, Any], output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет фронтир в формате JSON по указанному пути.

    :param frontier: итоговое дерево, как его отдаёт контроллер (``complete``)
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла

    Пример:
    ```python
    from link_scout.report.json_report import render_json
    report_path = render_json(frontier, 'reports/frontier.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(frontier_json(frontier, pretty=pretty), encoding="utf-8")
    return output
