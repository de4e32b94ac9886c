from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from enrollsync.config import storage


def test_storage_prefers_explicit_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("ENROLLSYNC_DATA_DIR", str(custom))

    result = storage.get_storage_config().resolve_data_dir()

    assert result == custom.resolve()


def test_snapshot_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SNAPSHOT_DATABASE_URI", "sqlite:///override.db")

    assert storage.get_snapshot_database_config().uri == "sqlite:///override.db"


def test_snapshot_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SNAPSHOT_DATABASE_URI", raising=False)
    monkeypatch.setenv("ENROLLSYNC_DATA_DIR", str(tmp_path / "data-dir"))

    uri = storage.get_snapshot_database_config().uri

    expected_path = (tmp_path / "data-dir" / storage.SNAPSHOT_DB_FILENAME).resolve()
    assert uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()
