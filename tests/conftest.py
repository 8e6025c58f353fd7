"""Pytest configuration for csvstore test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def isolated_store_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point relative store paths at a per-test directory."""
    monkeypatch.setenv("CSVSTORE_DATA_ROOT", str(tmp_path))
    monkeypatch.delenv("CSVSTORE_ENCODING", raising=False)
    return tmp_path
