"""Shared fixtures for apigen tests.

End-to-end fixtures copy a module from tests/fixtures into a temp dir,
generate its handlers module next to it and import both fresh.
"""

from __future__ import annotations

import importlib
import shutil
import sys
import textwrap
from pathlib import Path
from types import ModuleType
from typing import Callable

import httpx
import pytest

from apigen.cli import run

FIXTURES = Path(__file__).parent / "fixtures"

SOURCE_MODULE = "userapi"
HANDLERS_MODULE = "userapi_handlers"


# ---------------------------------------------------------------------------
# Source snippets for unit tests
# ---------------------------------------------------------------------------

@pytest.fixture
def write_source(tmp_path) -> Callable[[str], Path]:
    """Return a callable that writes a dedented source file and returns its path."""
    def _write(text: str, name: str = "service.py") -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path
    return _write


# ---------------------------------------------------------------------------
# Generated module for the userapi fixture
# ---------------------------------------------------------------------------

def _forget_modules() -> None:
    for name in (SOURCE_MODULE, HANDLERS_MODULE):
        sys.modules.pop(name, None)


@pytest.fixture
def generated_dir(tmp_path) -> Path:
    """Copy the fixture source and generate its handlers module."""
    shutil.copy(FIXTURES / f"{SOURCE_MODULE}.py", tmp_path / f"{SOURCE_MODULE}.py")
    run(tmp_path / f"{SOURCE_MODULE}.py", tmp_path / f"{HANDLERS_MODULE}.py")
    return tmp_path


@pytest.fixture
def handlers(generated_dir, monkeypatch):
    """Import the generated handlers module with a fresh module cache."""
    monkeypatch.syspath_prepend(str(generated_dir))
    _forget_modules()
    mod = importlib.import_module(HANDLERS_MODULE)
    yield mod
    _forget_modules()


@pytest.fixture
def userapi(handlers):
    return sys.modules[SOURCE_MODULE]


@pytest.fixture
def load_generated(tmp_path, monkeypatch) -> Callable[[str], ModuleType]:
    """Return a callable that generates handlers for a fixture module and imports them.

    The business module stays importable under its own name.
    """
    names: list[str] = []

    def _load(source_module: str) -> ModuleType:
        handlers_module = f"{source_module}_handlers"
        shutil.copy(FIXTURES / f"{source_module}.py", tmp_path / f"{source_module}.py")
        run(tmp_path / f"{source_module}.py", tmp_path / f"{handlers_module}.py")
        monkeypatch.syspath_prepend(str(tmp_path))
        names.extend((source_module, handlers_module))
        for name in names:
            sys.modules.pop(name, None)
        return importlib.import_module(handlers_module)

    yield _load
    for name in names:
        sys.modules.pop(name, None)


@pytest.fixture
def client_for() -> Callable[[object], httpx.Client]:
    """Return a callable that wraps a WSGI app in an httpx client."""
    clients: list[httpx.Client] = []

    def _client(app) -> httpx.Client:
        client = httpx.Client(
            transport=httpx.WSGITransport(app=app),
            base_url="http://testserver",
        )
        clients.append(client)
        return client

    yield _client
    for client in clients:
        client.close()

