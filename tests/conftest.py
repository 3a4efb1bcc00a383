"""
Shared pytest fixtures for all tests.
"""
import os
import tempfile
from pathlib import Path
from typing import Iterator

import pytest

from toolguard import PermissionConfig, PermissionEvent


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory for testing (symlinks resolved)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    """Project directory inside the temp dir."""
    project = temp_dir / "project"
    (project / "src").mkdir(parents=True)
    (project / "src" / "main.py").write_text("print('hello')\n")
    return project


@pytest.fixture
def outside_dir(temp_dir: Path) -> Path:
    """Directory next to the workspace, outside any allow-list."""
    outside = temp_dir / "outside"
    outside.mkdir()
    (outside / "notes.txt").write_text("outside\n")
    return outside


@pytest.fixture
def blocked_dir(temp_dir: Path) -> Path:
    """Directory used as a blocked system directory stand-in."""
    blocked = temp_dir / "system"
    blocked.mkdir()
    (blocked / "passwd").write_text("root:x:0:0\n")
    return blocked


@pytest.fixture
def workspace_config(workspace: Path, blocked_dir: Path) -> PermissionConfig:
    """Config allowing only the workspace and blocking the stand-in system dir."""
    return PermissionConfig(allowed_dirs=[str(workspace)], blocked_dirs=[str(blocked_dir)])


@pytest.fixture
def events() -> list[PermissionEvent]:
    """List collecting the events a manager emits (use list.append as handler)."""
    return []
