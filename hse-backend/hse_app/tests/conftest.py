from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from hse_app.config import settings
from hse_app.main import app


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "database_url", None)
    monkeypatch.setattr(settings, "data_dir", tmp_path / "data")
    return settings.data_dir


@pytest.fixture
def client(data_dir):
    with TestClient(app) as c:
        yield c
