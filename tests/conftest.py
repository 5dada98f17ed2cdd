"""Pytest configuration applied to the entire test suite."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_project_root_on_path() -> None:
    """Guarantee the repository root is discoverable for absolute imports."""

    root = Path(__file__).resolve().parent.parent
    root_str = str(root)
    if root_str not in sys.path:
        sys.path.insert(0, root_str)


_ensure_project_root_on_path()


from services.updater import constants  # noqa: E402
from services.updater.config import reset_updater_config_cache  # noqa: E402


@pytest.fixture(autouse=True)
def _updater_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory):
    """Keep user configuration and log files out of the tests."""

    monkeypatch.delenv(constants.CONFIG_FILE_ENV, raising=False)
    monkeypatch.delenv(constants.DISABLE_ENV, raising=False)
    monkeypatch.delenv("UPDATER_LOG_FILE", raising=False)
    monkeypatch.setenv("UPDATER_LOG_DIR", str(tmp_path_factory.mktemp("logs")))
    reset_updater_config_cache()

    yield

    reset_updater_config_cache()
