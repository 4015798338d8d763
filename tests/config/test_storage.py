from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from clinrecon.config import storage


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("CLINRECON_DATA_DIR", str(custom))

    config = storage.get_storage_config()

    assert config.resolve_data_dir() == custom.resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+aiosqlite:///override.db")

    assert storage.get_database_config().uri == "sqlite+aiosqlite:///override.db"


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLINRECON_DATA_DIR", str(tmp_path / "data-dir"))

    uri = storage.get_database_config().uri

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert uri == f"sqlite+aiosqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_backup_path_defaults_below_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("CLINRECON_DATA_DIR", str(tmp_path / "data-dir"))

    config = storage.get_storage_config()

    assert config.backup_path() == (tmp_path / "data-dir" / "backups").resolve()


def test_backup_path_honours_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CLINRECON_BACKUP_DIR", str(tmp_path / "elsewhere"))

    assert storage.get_storage_config().backup_path() == (tmp_path / "elsewhere").resolve()
