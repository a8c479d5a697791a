"""Memory store: notes, puzzles and feedback as markdown files.

Layout:
    <project>/.ezer/
    ├── config.yaml                    # id prefix, derived from the directory name
    └── memory/
        ├── ez-k3f2a.md                # one file per entry, YAML header + body
        └── ez-q7mzd.md

Commit ``.ezer/`` to version control; that is how memory travels between
sessions and branches.
"""

from ezer.memory.entry import MemoryEntry
from ezer.memory.graph import PuzzleGraph, PuzzleState, TreeNode
from ezer.memory.store import HARD_LIMIT, SOFT_LIMIT, MemoryStore
from ezer.memory.tree import render_tree

__all__ = [
    "HARD_LIMIT",
    "SOFT_LIMIT",
    "MemoryEntry",
    "MemoryStore",
    "PuzzleGraph",
    "PuzzleState",
    "TreeNode",
    "render_tree",
]
