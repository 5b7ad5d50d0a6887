# === FILE: link_scout/config.py ===
"""
Модуль для загрузки и валидации настроек обхода LinkScout.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from link_scout.urls import DEFAULT_PORTS, ParsedUrl, normalize_parsed

__all__ = ["CrawlerOptions", "load_config", "read_config_data", "ValidationError"]

# альтернативные имена ключей в конфиге
_ALIASES: Dict[str, tuple[str, ...]] = {
    "site_name": ("name", "siteName"),
    "lock_to_path": ("lockToPath",),
    "check_fragments": ("fragments", "checkFragments"),
}


class CrawlerOptions(BaseModel):
    """Настройки одного обхода сайта."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    host: str = Field(..., min_length=1, description="Хост, с которого начинается обход.")
    path: str = Field("/", description="Стартовый путь.")
    port: int = Field(80, ge=1, le=65535, description="Порт сервера.")
    scheme: Literal["http", "https"] = Field("http", description="Протокол стартового URL.")
    site_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("site_name", "name", "siteName"),
        description="Имя сайта для отчётов (по умолчанию host).",
    )
    lock_to_path: bool = Field(
        True,
        validation_alias=AliasChoices("lock_to_path", "lockToPath"),
        description="Разрешать первое обнаружение только под стартовым путём.",
    )
    check_fragments: bool = Field(
        True,
        validation_alias=AliasChoices("check_fragments", "fragments", "checkFragments"),
        description="Проверять якоря (#fragment) на страницах.",
    )
    cookies: List[str] = Field(default_factory=list, description="Cookie в виде name=value.")

    # fetch engine
    timeout: float = Field(10.0, gt=0, description="Таймаут на один запрос (секунд).")
    user_agent: str = Field("LinkScoutBot/1.0", min_length=1, description="Заголовок User-Agent.")
    concurrency: int = Field(4, ge=1, description="Число параллельных загрузок.")
    max_depth: Optional[int] = Field(None, ge=0, description="Максимальная глубина обхода ссылок.")
    max_resource_size: int = Field(
        16 * 1024 * 1024, gt=0, description="Максимальный размер ответа (байт)."
    )
    retry_times: int = Field(2, ge=0, description="Число повторных попыток при 5xx и сетевых ошибках.")

    @field_validator("host", mode="before")
    def _clean_host(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("path", mode="before")
    def _leading_slash(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.startswith("/"):
            return "/" + v
        return v

    @field_validator("cookies")
    def _check_cookies(cls, v: List[str]) -> List[str]:
        bad = [c for c in v if "=" not in c]
        if bad:
            raise ValueError(f"Cookie должна иметь вид name=value: {bad[0]!r}")
        return v

    @model_validator(mode="before")
    @classmethod
    def _default_site_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("host"), str):
            if not any(data.get(key) for key in ("site_name", *_ALIASES["site_name"])):
                data = {**data, "site_name": data["host"].strip()}
        return data

    @model_validator(mode="before")
    @classmethod
    def _default_port(cls, data: Any) -> Any:
        """Порт по умолчанию берётся из схемы: 80 для http, 443 для https."""
        if isinstance(data, dict) and data.get("port") is None:
            scheme = data.get("scheme", "http")
            if scheme in DEFAULT_PORTS:
                data = {**data, "port": DEFAULT_PORTS[scheme]}
        return data

    @property
    def start_url(self) -> str:
        """Normalized URL of the starting page."""
        return normalize_parsed(ParsedUrl(self.scheme, self.host, self.port, self.path))

    @property
    def base_url(self) -> str:
        """``scheme://host[:port]`` without normalization, for HTTP requests."""
        base = f"{self.scheme}://{self.host}"
        if self.port != DEFAULT_PORTS[self.scheme]:
            base += f":{self.port}"
        return base

    def cookie_map(self) -> Dict[str, str]:
        pairs = (cookie.split("=", 1) for cookie in self.cookies)
        return {name.strip(): value.strip() for name, value in pairs}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def read_config_data(path: Union[str, Path]) -> dict[str, Any]:
    """Читает YAML или JSON и возвращает словарь без проверки схемы."""
    path_obj = Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")


def load_config(path: Union[str, Path, None] = None, /, **overrides: Any) -> CrawlerOptions:
    """
    Читает YAML или JSON и возвращает проверенный объект CrawlerOptions.
    Значения из overrides (не None) имеют приоритет над файлом;
    без файла настройки собираются только из overrides.
    """
    data = read_config_data(path) if path is not None else {}
    for key, value in overrides.items():
        if value is None:
            continue
        for alias in _ALIASES.get(key, ()):
            data.pop(alias, None)
        data[key] = value
    return CrawlerOptions.model_validate(data)
