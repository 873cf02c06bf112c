"""Typer application and console entry point for elephant.

The command line loads a definitions file (see :mod:`elephant.config`),
builds a :class:`~elephant.registry.Registry` from it, and either lists the
templates (``inspect``) or executes one through the cache (``fetch``).
Because nothing persists between processes, ``fetch --repeat N`` is the
way to watch the cache serve repeated calls.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. :class:`~elephant.exceptions.ElephantError` exits with
its ``exit_code``; any other exception is written to a crash log under the
data directory.
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from elephant import __version__
from elephant.exceptions import ElephantError, TransportError, ValidationError
from elephant.exit_codes import EXIT_CONNECTION_ERROR, EXIT_GENERIC_FAILURE
from elephant.registry import Registry
from elephant.transport.base import Transport
from elephant.transport.httpx_transport import HttpxTransport

app = typer.Typer(
    name="elephant",
    help="Execute cached request templates from a definitions file.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"elephant {__version__}")
        raise typer.Exit()


def create_transport(base_url: str = "") -> Transport:
    """Build the transport used by CLI commands."""
    return HttpxTransport(base_url=base_url)


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Send library log records to stderr through Rich when verbose."""
    logger = logging.getLogger("elephant")
    if not verbose:
        logger.setLevel(logging.WARNING)
        return
    handler = RichHandler(
        console=Console(file=sys.stderr, no_color=no_color),
        show_path=False,
        markup=False,
    )
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Definitions file (JSON or YAML)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback: set up output and logging, remember the config path."""
    from elephant.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, no_color)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


def _load_registry(ctx: typer.Context, base_url: str = "") -> Registry:
    from elephant.config import build_registry, load_definitions, resolve_definitions_path
    from elephant.output import debug

    path = resolve_definitions_path(ctx.obj.get("config") if ctx.obj else None)
    debug(f"Loading definitions from {path}")
    return build_registry(load_definitions(path), transport=create_transport(base_url))


def _parse_params(items: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` strings into a dict, decoding JSON values when possible."""
    params: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise ValidationError(f"Parameter must look like key=value, got '{item}'")
        try:
            params[key] = json.loads(raw)
        except json.JSONDecodeError:
            params[key] = raw
    return params


@app.command("inspect")
def inspect_command(ctx: typer.Context) -> None:
    """List every group and template with its effective settings."""
    from elephant.output import render_rows

    headers = ["Group", "Template", "Method", "Endpoint", "Format", "Cacheable", "Expires (ms)"]
    rows: list[list[str]] = []
    with _load_registry(ctx) as registry:
        for group in registry.groups():
            if group.templates.count() == 0:
                rows.append([group.id, "-", "", group.settings.endpoint or "", "", "", ""])
            for template in group.templates:
                settings = registry.effective_settings(group.id, template.id)
                rows.append([
                    group.id,
                    template.id,
                    settings.method.value,
                    settings.endpoint,
                    settings.format.value,
                    "yes" if settings.cacheable else "no",
                    str(settings.expires),
                ])
    render_rows(headers, rows, title="Templates")


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    group: str = typer.Argument(help="Group id."),
    template: str = typer.Argument(help="Template id."),
    param: list[str] = typer.Option(
        [], "--param", "-P", help="Request parameter as key=value (repeatable)."
    ),
    repeat: int = typer.Option(1, "--repeat", "-r", min=1, help="Execute this many times."),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Prefix for relative endpoints."
    ),
) -> None:
    """Execute a template through the cache and print its output.

    Example::

        elephant fetch api user -P id=42 --repeat 2
    """
    from elephant.output import error, render_payload, report_records, report_run

    params = _parse_params(param)
    failures: list[TransportError] = []
    fetches: list[int] = []
    call_site = {
        "error": failures.append,
        "complete": lambda: fetches.append(1),
    }

    with _load_registry(ctx, base_url or "") as registry:

        async def _run() -> Any:
            result = None
            for attempt in range(1, repeat + 1):
                before = len(fetches)
                result = await registry.fetch(group, template, call_site, params)
                if failures:
                    return None
                report_run(attempt, repeat, hit=len(fetches) == before)
            return result

        result = asyncio.run(_run())
        if failures:
            error(str(failures[-1]))
            raise typer.Exit(code=EXIT_CONNECTION_ERROR)
        records = registry.count_records(group, template)

    render_payload(result)
    report_records(group, template, records)


def _on_sigint(signum: int, frame: Any) -> None:
    _cancelled()


def _cancelled() -> None:
    sys.stderr.write("\nCancelled.\n")
    sys.exit(130)


def _setup_signal_handlers() -> None:
    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log() -> Path:
    """Save the traceback being handled under ``<data_dir>/logs``."""
    from elephant.config import get_data_dir

    log_path = get_data_dir() / "logs" / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return log_path


def main() -> None:
    """Console-script entry point.

    :class:`~elephant.exceptions.ElephantError` ends the process with its
    ``exit_code``; anything unexpected is written to a crash log first.
    """
    from elephant.output import error

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        _cancelled()
    except ElephantError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        error(f"Unexpected error. Debug log: {_write_crash_log()}")
        sys.exit(EXIT_GENERIC_FAILURE)
