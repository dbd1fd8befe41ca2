"""Shared test fixtures for bitferry."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import SimpleNamespace

import pytest

from bitferry.config import BitferryConfig
from bitferry.context import Context


class FakeObscurer:
    """Reversible stand-in for the rclone obscure/reveal executable."""

    def obscure(self, plaintext: str) -> str:
        return "obs-" + plaintext[::-1]

    def reveal(self, token: str) -> str:
        return token[len("obs-"):][::-1]


class RecordingExecutor:
    """Records every command line instead of running it."""

    def __init__(self, result=True):
        self.calls: list[SimpleNamespace] = []
        self.result = result

    def run(self, argv, env=None, cwd=None, quiet=False) -> bool:
        self.calls.append(SimpleNamespace(argv=list(argv), env=env, cwd=cwd, quiet=quiet))
        return self.result(argv) if callable(self.result) else self.result


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def make_context(executor):
    """Build a context scanning only the given roots."""

    def factory(*roots: Path, simulate: bool = False) -> Context:
        config = BitferryConfig(search_paths=list(roots), scan_mounts=False)
        return Context(
            config,
            simulate=simulate,
            executor=executor,
            obscurer=FakeObscurer(),
            mounts=lambda: [],
        )

    return factory


@pytest.fixture
def context(make_context) -> Context:
    """A context with empty registries."""
    return make_context()


@pytest.fixture
def read_storage():
    """Load the raw metadata document of a volume root."""

    def reader(root: Path) -> dict:
        return json.loads((root / ".bitferry").read_text(encoding="utf-8"))

    return reader


@pytest.fixture(autouse=True)
def _reset_log_level():
    """The CLI adjusts the package logger level; keep tests independent of it."""
    yield
    logging.getLogger("bitferry").setLevel(logging.NOTSET)
