from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from user_service_api.app.core.config import settings
from user_service_api.app.core.db import get_connection, init_db
from user_service_api.app.main import create_app


@pytest.fixture()
def database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    db_path = tmp_path / "users.sqlite3"
    monkeypatch.setattr(settings, "database_url", str(db_path))
    init_db()
    return db_path


@pytest.fixture()
def conn(database: Path):
    connection = get_connection()
    try:
        yield connection
    finally:
        connection.close()


@pytest.fixture()
def client(database: Path) -> Iterator[TestClient]:
    with TestClient(create_app()) as test_client:
        yield test_client
