"""Shared fixtures: a store in a temp project with a ticking clock."""

from __future__ import annotations

from pathlib import Path

import pytest

from ezer.config import ProjectConfig
from ezer.memory.ids import IdGenerator
from ezer.memory.store import MemoryStore


class TickingClock:
    """Returns a later timestamp on every call so ordering is deterministic."""

    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> str:
        self.ticks += 1
        minutes, seconds = divmod(self.ticks, 60)
        return f"2026-10-19T09:{minutes:02d}:{seconds:02d}.000Z"


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "my-project"
    path.mkdir()
    return path


@pytest.fixture
def store(project_dir: Path) -> MemoryStore:
    root = project_dir / ".ezer"
    return MemoryStore(root, IdGenerator(ProjectConfig.load(root, project_dir)), clock=TickingClock())
