"""Shared test fixtures for elephant.

Provides a controllable millisecond clock, a recording ``httpx`` handler
that plays back queued responses, and a registry wired to both. These
fixtures are discovered by pytest automatically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import httpx
import pytest

from elephant.output import reset_output
from elephant.registry import Registry, reset_registry
from elephant.transport import HttpxTransport

BASE_URL = "https://api.example.com"


# ---------------------------------------------------------------------------
# Global state reset
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals() -> None:
    """Reset the default registry and output manager after every test."""
    yield
    reset_output()
    reset_registry()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------


Reply = Union[tuple[int, str], Exception]


class RecordingHandler:
    """``httpx.MockTransport`` handler that records requests.

    Replies are consumed in order; each is a ``(status, body)`` tuple or an
    exception to raise. Once the queue is empty every request gets
    ``default``.
    """

    def __init__(self, *replies: Reply, default: tuple[int, str] = (200, "{}")) -> None:
        self.requests: list[httpx.Request] = []
        self.replies: list[Reply] = list(replies)
        self.default = default

    def queue(self, *replies: Reply) -> None:
        self.replies.extend(replies)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        return httpx.Response(status, text=body)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def transport(handler: RecordingHandler) -> HttpxTransport:
    t = HttpxTransport(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    yield t
    t.close()


@pytest.fixture
def registry(transport: HttpxTransport, clock: FakeClock) -> Registry:
    """A registry on the mock transport and fake clock."""
    reg = Registry(transport=transport, clock=clock)
    yield reg
    reg.close()


class CallLog:
    """Collects callback invocations in order across phases."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def success(self, output: Any) -> None:
        self.events.append(("success", output))

    def error(self, exc: Exception) -> None:
        self.events.append(("error", exc))

    def complete(self) -> None:
        self.events.append(("complete", None))

    def settings(self) -> dict[str, Any]:
        return {"success": self.success, "error": self.error, "complete": self.complete}

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> list[Any]:
        return [value for event, value in self.events if event == name]


@pytest.fixture
def calls() -> CallLog:
    return CallLog()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at tmp_path and clear ELEPHANT_* variables.

    Also changes the working directory to tmp_path so project-local
    definitions files are looked up there.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("ELEPHANT_CONFIG", raising=False)
    monkeypatch.setattr("elephant.config._is_xdg_platform", lambda: True)
    monkeypatch.chdir(tmp_path)
    return tmp_path
