from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from clinrecon.adapters.sqlalchemy import start_mappers
from clinrecon.config import ReconcileConfig
from tests.helpers.artifacts import RecordingArtifactWriter
from tests.helpers.store import InMemoryRecordStore

if TYPE_CHECKING:
    from pathlib import Path

_ENV_PREFIXES = ("CLINRECON_",)
_ENV_NAMES = ("DATABASE_URI",)


@pytest.fixture(scope="session", autouse=True)
def mapped_records() -> None:
    start_mappers()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point storage at a temporary directory and drop configuration overrides."""

    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES) or name in _ENV_NAMES:
            monkeypatch.delenv(name)
    data_dir = tmp_path / "data"
    monkeypatch.setenv("CLINRECON_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def writer() -> RecordingArtifactWriter:
    return RecordingArtifactWriter()


@pytest.fixture
def config() -> ReconcileConfig:
    return ReconcileConfig()
