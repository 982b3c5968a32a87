"""Shared pytest fixtures."""

import pytest

from agents.common import storage
from utils import money


@pytest.fixture(autouse=True)
def db(tmp_path, monkeypatch):
    """A fresh sqlite ledger for every test."""
    monkeypatch.setenv("CURRENCY", "R$")
    monkeypatch.setattr(money, "_currency", None)
    path = tmp_path / "caixa.db"
    monkeypatch.setattr(storage, "DB_PATH", path)
    storage.init_db()
    return path
