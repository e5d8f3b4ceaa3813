"""Pytest configuration and fixtures for carryover tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from carryover.core.log import ConsoleSink, setup_logger


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Console-only logging at debug level for the whole test run.

    Nothing is sent to logfire.dev.
    """
    test_log_root = Path(tempfile.gettempdir()) / "carryover-tests"
    setup_logger(
        log_root=test_log_root,
        session_name="test",
        console=ConsoleSink(level="debug"),
    )


@pytest.fixture
def mock_argv():
    """Save and restore sys.argv."""
    original = sys.argv.copy()
    yield
    sys.argv = original


@pytest.fixture
def state(tmp_path, monkeypatch, mock_argv):
    """A State loaded from the package defaults only.

    Runs from an empty directory so no local carryover.yaml or .env
    leaks in, and sends reports to tmp_path.
    """
    from carryover.core.config import State

    monkeypatch.chdir(tmp_path)
    sys.argv = ["carryover"]

    state = State()
    state.config.log_root = tmp_path / "logs"
    return state
