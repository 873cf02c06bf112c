"""Tests for the command-line output manager.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline and quiet/verbose rules
- render_payload for JSON, XML elements, strings and None
- render_rows in JSON and plain modes
- run and record reports
- Global instance management
"""

from __future__ import annotations

import json
from xml.etree import ElementTree

import pytest

from elephant import output as output_module
from elephant.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("elephant.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("elephant.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_is_plain_on_tty_without_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_wins(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_dumb_terminal(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_color_enabled(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestDiagnostics:
    def test_messages_go_to_stderr(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("fetched")
        mgr.warning("slow")
        mgr.error("failed")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == ["fetched", "Warning: slow", "Error: failed"]

    def test_quiet_suppresses_info_not_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.report_run(1, 1, hit=True)
        mgr.error("shown")
        assert capsys.readouterr().err.splitlines() == ["Error: shown"]

    def test_debug_only_when_verbose(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("quiet")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("loud")
        assert capsys.readouterr().err.splitlines() == ["[debug] loud"]

    def test_markup_in_messages_is_escaped(self, capsys, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        mgr = OutputManager(format=OutputFormat.PLAIN)
        mgr.info("[bold]literal[/bold]")
        assert "[bold]literal[/bold]" in capsys.readouterr().err


class TestRenderPayload:
    def test_json_format(self, capsys):
        OutputManager(format=OutputFormat.JSON).render_payload({"a": [1, 2]})
        assert json.loads(capsys.readouterr().out) == {"a": [1, 2]}

    def test_plain_dict(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).render_payload({"id": 1, "name": "Ada"})
        assert capsys.readouterr().out.splitlines() == ["id\t1", "name\tAda"]

    def test_plain_list_of_dicts(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).render_payload([{"id": 1}, {"id": 2}])
        assert capsys.readouterr().out.splitlines() == ["1", "2"]

    def test_plain_string_and_none(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN)
        mgr.render_payload("hello")
        mgr.render_payload(None)
        assert capsys.readouterr().out == "hello\n\n"

    def test_xml_element(self, capsys):
        element = ElementTree.fromstring("<users><user/></users>")
        OutputManager(format=OutputFormat.PLAIN).render_payload(element)
        assert capsys.readouterr().out.strip() == "<users><user /></users>"


class TestRenderRows:
    def test_json_records(self, capsys):
        OutputManager(format=OutputFormat.JSON).render_rows(["A", "B"], [["1", "2"]])
        assert json.loads(capsys.readouterr().out) == [{"A": "1", "B": "2"}]

    def test_plain_tsv(self, capsys):
        OutputManager(format=OutputFormat.PLAIN).render_rows(["A", "B"], [["1", "2"]])
        assert capsys.readouterr().out == "A\tB\n1\t2\n"


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_output_used_by_helpers(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.info("via helper")
        assert capsys.readouterr().err == "via helper\n"


class TestReports:
    def test_run_and_record_reports(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.report_run(1, 2, hit=False)
        mgr.report_run(2, 2, hit=True)
        mgr.report_records("api", "users", 1)
        assert capsys.readouterr().err.splitlines() == [
            "Run 1/2: fetched",
            "Run 2/2: cache hit",
            "1 record(s) cached for api/users",
        ]

    def test_json_string_payload_is_quoted(self, capsys):
        OutputManager(format=OutputFormat.JSON).render_payload("hello")
        assert capsys.readouterr().out == '"hello"\n'
