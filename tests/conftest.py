"""
Pytest configuration and shared fixtures for campfire-stream tests.
"""

from typing import Any, Dict, List, Tuple

import pytest


class Recorder:
    """Collects (event, args) pairs emitted by a client."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Tuple[Any, ...]]] = []
        self.owners: List[Any] = []

    def attach(self, emitter) -> "Recorder":
        emitter.on("stream", self._record("stream"))
        emitter.on("error", self._record("error"))
        return self

    def _record(self, name: str):
        def _listener(owner, *args):
            self.owners.append(owner)
            self.events.append((name, args))

        return _listener

    @property
    def streams(self) -> List[Any]:
        return [args[0] for name, args in self.events if name == "stream"]

    @property
    def errors(self) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.events if name == "error"]


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def clean_env(monkeypatch) -> Dict[str, str]:
    """Remove every CAMPFIRE_* variable from the environment."""
    import os

    removed = {}
    for key in list(os.environ):
        if key.startswith("CAMPFIRE_"):
            removed[key] = os.environ[key]
            monkeypatch.delenv(key, raising=False)
    return removed
