# tests/conftest.py
from pathlib import Path

import pytest

from app.config import Settings
from app.di import build_container
from app.services.sandbox import PathSandbox, load_allowed_roots
from server.registry import build_tool_registry


@pytest.fixture
def root(tmp_path: Path) -> Path:
    d = tmp_path / "root"
    d.mkdir()
    return d


@pytest.fixture
def outside(tmp_path: Path) -> Path:
    d = tmp_path / "outside"
    d.mkdir()
    (d / "secret.txt").write_text("top secret", encoding="utf-8")
    return d


@pytest.fixture
def sandbox(root: Path) -> PathSandbox:
    return PathSandbox(load_allowed_roots([str(root)]))


@pytest.fixture
def settings() -> Settings:
    return Settings(ALLOWED_DIRECTORIES="", LOG_LEVEL="DEBUG")


@pytest.fixture
def container(root: Path, settings: Settings):
    return build_container(settings, [str(root)])


@pytest.fixture
def registry(container):
    return build_tool_registry(container)
