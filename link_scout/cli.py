# === FILE: link_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска LinkScout через командную строку.

Команды:
  crawl     Обойти сайт и вывести/сохранить итоговый фронтир
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (необязательно)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования
  --admission-log-level LEVEL  Уровень логов отказов по области обхода

Команда crawl опции:
  --host/--path/--port/--name       Переопределить стартовую точку
  --lock-to-path/--no-lock-to-path  Ограничить обход стартовым путём
  --fragments/--no-fragments        Проверять якоря
  --cookie NAME=VALUE               Cookie (можно несколько раз)
  --json PATH / --html PATH         Сохранить отчёты в файлы
  --pretty/--compact                Формат JSON (файл по умолчанию с отступом,
                                    stdout компактно)
  --crawl-timeout SEC               Таймаут всего обхода (секунд); по таймауту
                                    выводится частичный фронтир

Пример:
  link_scout --config site.yaml crawl --no-fragments --json frontier.json
"""
import asyncio
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from link_scout import __version__
from link_scout.config import load_config
from link_scout.logger import init_logging, logger
from link_scout.report.html_report import render_html
from link_scout.report.json_report import frontier_json, render_json
from link_scout.scanner import start_crawl

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _notification_printers():
    """Подписчики, печатающие проблемные URL в stderr по мере обхода."""
    def echo(text):
        click.secho(text, fg='yellow', err=True)

    return {
        'not_found': lambda url: echo(f'404 {url}'),
        'http_error': lambda url, code, message: echo(f'HTTP {code} {url} {message}'),
        'redirect': lambda url, target: echo(f'redirect {url} -> {target}'),
        'data_error': lambda url, code, headers: echo(f'data error {url}'),
        'gzip_error': lambda url, err: echo(f'gzip error {url}: {err}'),
        'client_error': lambda url, err: echo(f'client error {url}: {err}'),
        'fragment_not_found': lambda url: echo(f'fragment not found {url}'),
        'bad_fragment': lambda referrer, url: echo(f'bad fragment {url} (on {referrer})'),
    }


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='LinkScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.option(
    '--admission-log-level', 'admission_log_level',
    default=None,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логов для отказов по области обхода (по умолчанию --log-level)'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format, admission_log_level):
    """Группа команд LinkScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
        admission_level=admission_log_level,
    )
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


def _options(ctx, **overrides):
    try:
        return load_config(ctx.obj.get('config_path'), **overrides)
    except ValidationError as e:
        print_error(f'Ошибка конфигурации: {e}')
    except (OSError, ValueError, TypeError) as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Хост сайта (обязателен, если нет в конфиге)')
@click.option('--path', default=None, help='Стартовый путь')
@click.option('--port', type=int, default=None, help='Порт')
@click.option('--name', 'site_name', default=None, help='Имя сайта для отчёта')
@click.option('--lock-to-path/--no-lock-to-path', 'lock_to_path', default=None,
              help='Разрешать новые URL только под стартовым путём')
@click.option('--fragments/--no-fragments', 'check_fragments', default=None,
              help='Проверять якоря (#fragment)')
@click.option('--cookie', 'cookies', multiple=True, help='Cookie name=value (можно несколько)')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с шаблоном report.html.j2 (по умолчанию встроенный)'
)
@click.option('--pretty/--compact', 'pretty', default=None,
              help='JSON с отступом или компактно (файл: с отступом, stdout: компактно)')
@click.option('--quiet', '-q', is_flag=True, help='Не печатать проблемные URL во время обхода')
@click.option(
    '--crawl-timeout', 'crawl_timeout',
    type=float,
    default=None,
    help='Таймаут всего обхода (секунд)'
)
@click.pass_context
def crawl(ctx, host, path, port, site_name, lock_to_path, check_fragments, cookies,
          json_output, html_output, template_dir, pretty, quiet, crawl_timeout):
    """Обойти сайт и сгенерировать отчёты."""
    cfg = _options(
        ctx,
        host=host,
        path=path,
        port=port,
        site_name=site_name,
        lock_to_path=lock_to_path,
        check_fragments=check_fragments,
        cookies=list(cookies) or None,
    )
    logger.info('Starting crawl: %s', cfg.start_url)
    listeners = {} if quiet else _notification_printers()
    controllers = []
    try:
        crawling = start_crawl(cfg, listeners, controllers.append)
        if crawl_timeout:
            frontier = asyncio.run(asyncio.wait_for(crawling, timeout=crawl_timeout))
        else:
            frontier = asyncio.run(crawling)
    except asyncio.TimeoutError:
        if controllers:
            # всё, что контроллер успел записать до отмены
            _output(controllers[0].report(), cfg, json_output, html_output, template_dir, pretty)
        print_error(f'Обход не завершён за {crawl_timeout} секунд, фронтир неполный')
    except Exception as e:
        print_error(f'Ошибка при обходе: {e}')

    _output(frontier, cfg, json_output, html_output, template_dir, pretty)


def _output(frontier, cfg, json_output, html_output, template_dir, pretty):
    """Печатает фронтир в stdout или сохраняет отчёты в файлы."""
    # без файлов вывода печатаем фронтир в stdout
    if not json_output and not html_output:
        click.echo(frontier_json(frontier, pretty=bool(pretty)))
        return

    if json_output:
        try:
            saved_json = render_json(frontier, json_output, pretty=True if pretty is None else pretty)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(frontier, html_output, template_dir, site_name=cfg.site_name)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Переопределить хост')
@click.pass_context
def show_config(ctx, host):
    """Показать текущую конфигурацию в JSON."""
    cfg = _options(ctx, host=host)
    click.echo(cfg.model_dump_json(indent=2))


# expose these names at module level for test monkey-patching
cli.start_crawl = start_crawl
cli.render_json = render_json
cli.render_html = render_html

if __name__ == "__main__":
    cli()
