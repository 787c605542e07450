"""Shared test fixtures for openhub."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from openhub.config import Configuration, Credentials, Listener, Options
from openhub.exceptions import TriggerError


class FakeStatusClient:
    """Status client answering from a mutable table of (succeeded, revision)."""

    def __init__(self) -> None:
        self.builds: dict[str, tuple[bool, str]] = {}
        self.broken: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    def set(self, name: str, revision: str, succeeded: bool = True) -> None:
        self.builds[name] = (succeeded, revision)

    async def is_succeeded(self, listener: Listener) -> bool:
        self.calls.append(("status", listener.name))
        if listener.name in self.broken:
            raise RuntimeError(f"status client exploded for {listener.name}")
        return self.builds.get(listener.name, (False, ""))[0]

    async def current_revision(self, listener: Listener) -> str:
        self.calls.append(("revision", listener.name))
        return self.builds.get(listener.name, (False, ""))[1]


class RecordingExecutor:
    """Executor recording every action; listeners in ``failing`` raise TriggerError."""

    def __init__(self) -> None:
        self.actions: list[tuple[str, list[str], str]] = []
        self.failing: set[str] = set()
        self.gate: asyncio.Event | None = None

    async def execute(self, config: Configuration, listener: Listener) -> None:
        if self.gate is not None:
            await self.gate.wait()
        self.actions.append((listener.name, list(listener.tags), listener.repository))
        if listener.name in self.failing:
            raise TriggerError("Docker Hub answered 500 for tag 'latest'", tag="latest")


@pytest.fixture
def make_listener() -> Callable[..., Listener]:
    """Factory for listeners with sensible defaults."""

    def _make(name: str = "portus-2.3", **overrides: object) -> Listener:
        settings: dict[str, object] = {
            "name": name,
            "project": "Virtualization:containers:Portus:2.3",
            "distribution": "openSUSE_Leap_15.0",
            "architecture": "x86_64",
            "package": "portus-image",
            "repository": "opensuse/portus",
            "tags": ["2.3", "latest"],
        }
        settings.update(overrides)
        return Listener(**settings)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def listener(make_listener: Callable[..., Listener]) -> Listener:
    return make_listener()


@pytest.fixture
def make_config() -> Callable[..., Configuration]:
    def _make(listeners: list[Listener], **options: object) -> Configuration:
        return Configuration(
            credentials=Credentials(server="https://obs.test", user="bob", password="secret", token="tok"),
            options=Options(**options),  # type: ignore[arg-type]
            listeners=listeners,
        )

    return _make


@pytest.fixture
def status_client() -> FakeStatusClient:
    return FakeStatusClient()


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()
