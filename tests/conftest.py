"""Shared pytest configuration and fixtures."""

import logging
from datetime import timezone
from pathlib import Path
from typing import Dict

import pytest

from tests.helpers import FakeHttpResponse, FakeSession, points_flat, trend_rows_for

LOGS_ROOT = Path(__file__).resolve().parents[1] / "logs" / "tests"
SESSION_LOG = LOGS_ROOT / "pytest.session.log"
_MODULE_HANDLERS: Dict[str, logging.Handler] = {}


def _initialise_logging() -> None:
    LOGS_ROOT.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(SESSION_LOG, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)


def get_test_logger(module_name: str) -> logging.Logger:
    """Return a logger writing into ``logs/tests/<module>.log``."""
    normalised = module_name.replace("tests.", "")
    logger = logging.getLogger(f"tests.{normalised}")
    logger.setLevel(logging.INFO)
    if normalised not in _MODULE_HANDLERS:
        LOGS_ROOT.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(LOGS_ROOT / f"{normalised}.log", mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)
        _MODULE_HANDLERS[normalised] = handler
    return logger


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # noqa: D401 - pytest hook
    _initialise_logging()


def trends_by_date(data: Dict[str, str]) -> FakeHttpResponse:
    return FakeHttpResponse({"trends": trend_rows_for(data["date"])})


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession(
        {
            "ping": FakeHttpResponse({}),
            "points": FakeHttpResponse(points_flat()),
            "trends": trends_by_date,
        }
    )


@pytest.fixture
def client(fake_session: FakeSession):
    from novant_datasource.services.novant_client import NovantClient

    return NovantClient(
        "ak_test",
        base_url="https://api.test/v1",
        session=fake_session,
        session_factory=lambda: fake_session,
    )


@pytest.fixture
def datasource(client):
    from novant_datasource.services.datasource import NovantDatasource

    return NovantDatasource(client, uid="ds-uid", tz=timezone.utc, workers=1)


@pytest.fixture(autouse=True)
def clear_novant_env(monkeypatch: pytest.MonkeyPatch) -> None:
    from novant_datasource import settings

    monkeypatch.setattr(settings, "NOVANT_API_KEY", "")
    monkeypatch.setattr(settings, "NOVANT_TIMEZONE", None)


__all__ = [
    "get_test_logger",
    "trends_by_date",
]
