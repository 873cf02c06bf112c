"""Command-line output: payloads on stdout, diagnostics on stderr.

Only the command line writes here; library modules log through
:mod:`logging`. Fetched payloads and the ``inspect`` table go to stdout so
they can be piped into ``jq`` or ``cut``. Run reports, warnings and errors
go to stderr.

The rendering mode is one of :class:`OutputFormat`. ``AUTO`` picks
``RICH`` when stdout is a colour-capable terminal and ``PLAIN`` otherwise.
``NO_COLOR`` (any value), ``TERM=dumb`` and ``--no-color`` all disable
colour.

:func:`set_output` installs the :class:`OutputManager` built from the
global flags; the module-level helpers delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional
from xml.etree import ElementTree

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """Rendering modes selectable from the command line."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


_STYLES = {
    "info": ("{}", "{}"),
    "warning": ("Warning: {}", "[yellow]Warning:[/yellow] {}"),
    "error": ("Error: {}", "[bold red]Error:[/bold red] {}"),
    "debug": ("[debug] {}", "[dim]\\[debug] {}[/dim]"),
}


class OutputManager:
    """Renders payloads and tables, and reports what the cache did.

    Args:
        format: Rendering mode; ``AUTO`` is resolved on construction.
        no_color: Disable colour and markup.
        quiet: Drop info-level reports (errors and warnings still show).
        verbose: Show debug-level reports.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._format = _resolve_format(format, self._no_color)
        self._quiet = quiet
        self._verbose = verbose
        self._out = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format is OutputFormat.RICH,
        )
        self._err = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def render_payload(self, payload: Any) -> None:
        """Write a fetched payload to stdout.

        XML elements are serialised back to markup; strings (``text`` and
        ``html`` formats) are written verbatim; anything else is treated as
        decoded JSON.
        """
        if isinstance(payload, ElementTree.Element):
            self._render_markup(ElementTree.tostring(payload, encoding="unicode"), "xml")
        elif isinstance(payload, str) and self._format is not OutputFormat.JSON:
            self._write(payload)
        elif self._format is OutputFormat.PLAIN:
            for line in _plain_lines(payload):
                self._write(line)
        elif self._format is OutputFormat.JSON:
            self._write(_dump_json(payload))
        else:
            self._render_markup(_dump_json(payload), "json")

    def render_rows(
        self,
        columns: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write a table: JSON objects, tab-separated lines, or a Rich table."""
        if self._format is OutputFormat.JSON:
            self._write(_dump_json([dict(zip(columns, row)) for row in rows]))
            return
        if self._format is OutputFormat.PLAIN:
            for line in [columns, *rows]:
                self._write("\t".join(line))
            return
        table = Table(*columns, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*row)
        self._out.print(table)

    # --- stderr ---

    def report_run(self, attempt: int, total: int, hit: bool) -> None:
        """Report whether one execution was served from cache."""
        source = "cache hit" if hit else "fetched"
        self.info(f"Run {attempt}/{total}: {source}")

    def report_records(self, group_id: str, template_id: str, count: int) -> None:
        self.info(f"{count} record(s) cached for {group_id}/{template_id}")

    def info(self, message: str) -> None:
        if not self._quiet:
            self._emit("info", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._emit("debug", message)

    # --- helpers ---

    def _emit(self, level: str, message: str) -> None:
        plain, markup = _STYLES[level]
        if self._no_color:
            print(plain.format(message), file=sys.stderr, flush=True)
        else:
            self._err.print(markup.format(escape(message)))

    def _render_markup(self, text: str, lexer: str) -> None:
        if self._format is OutputFormat.RICH:
            self._out.print(Syntax(text, lexer, theme="monokai", word_wrap=True))
        else:
            self._write(text)

    @staticmethod
    def _write(text: str) -> None:
        print(text, file=sys.stdout, flush=True)


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested is not OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(payload: Any) -> list[str]:
    """Flatten decoded JSON into lines for ``--plain``.

    Objects become ``key<TAB>value`` lines, lists one line per item (an
    object item becomes its values joined by tabs), and scalars one line.
    """
    if payload is None:
        return [""]
    if isinstance(payload, dict):
        return [f"{key}\t{value}" for key, value in payload.items()]
    if isinstance(payload, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in payload
        ]
    return [str(payload)]


def _is_tty() -> bool:
    return bool(getattr(sys.stdout, "isatty", None) and sys.stdout.isatty())


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to anything) or ``TERM=dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def render_payload(payload: Any) -> None:
    get_output().render_payload(payload)


def render_rows(columns: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().render_rows(columns, rows, title)


def report_run(attempt: int, total: int, hit: bool) -> None:
    get_output().report_run(attempt, total, hit)


def report_records(group_id: str, template_id: str, count: int) -> None:
    get_output().report_records(group_id, template_id, count)


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
