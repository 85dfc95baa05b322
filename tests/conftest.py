"""Pytest configuration for synckeeper tests."""

import sys
from pathlib import Path

import pytest
import structlog

# Add src directory to sys.path for test imports
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate each test from the caller's SYNCKEEPER_* environment.

    This fixture:
    - Removes any SYNCKEEPER_ variables inherited from the shell
    - Runs the test from a temp directory so no stray .env file is read
    - Resets the global settings instance before each test
    """
    import os

    for name in list(os.environ):
        if name.startswith("SYNCKEEPER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    from synckeeper.config import reset_settings

    reset_settings()


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Drop logging configuration and bound context between tests."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
