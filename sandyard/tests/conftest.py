from __future__ import annotations

import os
import sys
from importlib import import_module
from typing import Generator

import pytest
from fastapi.testclient import TestClient

RELOADED_MODULES = ("sandyard.main", "sandyard.seed", "sandyard.database")


@pytest.fixture()
def isolated_db(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Point the database modules at a throwaway SQLite file and return them."""
    db_path = tmp_path_factory.mktemp("data") / "test_sandyard.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")

    for module in RELOADED_MODULES:
        sys.modules.pop(module, None)

    database = import_module("sandyard.database")
    yield database

    database.engine.dispose()
    if db_path.exists():
        os.remove(db_path)


@pytest.fixture()
def api_client(isolated_db) -> Generator[TestClient, None, None]:
    """Provide a TestClient wired to an isolated SQLite database."""
    app_module = import_module("sandyard.main")

    with TestClient(app_module.app) as client:
        yield client
