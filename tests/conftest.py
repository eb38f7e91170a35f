"""Shared pytest fixtures.

All fixtures use a fixed clock (2026-02-20, a Friday) so relative dates and
summary windows are deterministic, and a throwaway TinyDB file per test.
"""

import os
import tempfile
from datetime import date

import pytest

# Keep the process-wide wiring in textledger.deps away from the working directory
os.environ.setdefault("DB_PATH", os.path.join(tempfile.mkdtemp(), "ledger.json"))
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")

from textledger.core.service import LedgerService  # noqa: E402
from textledger.db.repository import LedgerRepository  # noqa: E402
from textledger.parsing.parser import MessageParser  # noqa: E402

FIXED_TODAY = date(2026, 2, 20)


@pytest.fixture
def parser() -> MessageParser:
    return MessageParser(today=lambda: FIXED_TODAY)


@pytest.fixture
def repo(tmp_path) -> LedgerRepository:
    return LedgerRepository(str(tmp_path / "ledger.json"))


@pytest.fixture
def service(repo, parser) -> LedgerService:
    return LedgerService(
        repo,
        parser,
        default_currency="USD",
        default_other_party="vyas",
        today=lambda: FIXED_TODAY,
    )


@pytest.fixture
def client(service, monkeypatch):
    from fastapi.testclient import TestClient

    from main import app
    from textledger.api import routes

    monkeypatch.setattr(routes, "service", service)
    return TestClient(app)
