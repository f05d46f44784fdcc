"""Pytest configuration and fixtures

Provides a fresh session store per test, an A4 page helper, and a fake JSX
runner so handlers can be exercised without InDesign or COM.
"""

import sys
from pathlib import Path

import pytest

# Add project root to sys.path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from handlers import ToolContext
from session import SessionConfig, SessionManager

A4 = {"width": 210, "height": 297}

_CONFIG_ENV_VARS = (
    "INDESIGN_DEFAULT_MARGIN",
    "INDESIGN_MIN_MARGIN",
    "INDESIGN_MIN_DIMENSION",
    "INDESIGN_MAX_DIMENSION",
    "INDESIGN_PRECISION",
    "INDESIGN_SESSION_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Keep the developer's INDESIGN_* settings out of the tests."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config():
    return SessionConfig()


@pytest.fixture
def session():
    return SessionManager()


@pytest.fixture
def a4_session(session):
    session.set_page_dimensions(A4)
    return session


class FakeRunner:
    """Stands in for ``indesign_com.run_jsx``.

    Records every call and returns queued results in order; once the queue
    is empty every call succeeds with a ``None`` result.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, code, undo_name="Agent Script", undo_mode="entire", require_document=False):
        self.calls.append({
            "code": code,
            "undo_name": undo_name,
            "undo_mode": undo_mode,
            "require_document": require_document,
        })
        if self.results:
            return self.results.pop(0)
        return {"success": True, "result": None}

    @property
    def last(self) -> dict:
        return self.calls[-1]


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def ctx(session, runner):
    return ToolContext(session=session, run_jsx=runner)


@pytest.fixture
def a4_ctx(a4_session, runner):
    return ToolContext(session=a4_session, run_jsx=runner)
