# ABOUTME: Shared fixtures - every filesystem test runs against a temporary home
from pathlib import Path

import pytest


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary home directory with HOME and AGENTX_CONFIG_DIR pointed at it."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.setenv("USERPROFILE", str(home_dir))
    monkeypatch.setenv("AGENTX_CONFIG_DIR", str(home_dir / ".agentx"))
    return home_dir


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project root (not a git repository)."""
    root = tmp_path / "project"
    root.mkdir()
    return root
