"""Text rendering of a puzzle's dependency tree."""

from __future__ import annotations

from ezer.memory.graph import PuzzleGraph

INDENT = "  "
MARKER = "→ "


def render_tree(graph: PuzzleGraph, root_id: str) -> str:
    """Ancestors above the root, then the root and its descendants.

    ::

          ez-aaaaa: Set up CI
        → ez-bbbbb: Add tests
          → ez-ccccc: Deploy to prod
    """
    root = graph.get(root_id)
    lines = [f"{INDENT}{p.id}: {p.title}" for p in graph.ancestor_chain(root_id)]
    lines.append(f"{MARKER}{root.id}: {root.title}")
    for node in graph.descendant_subtree(root_id):
        lines.append(f"{INDENT * node.depth}{MARKER}{node.entry.id}: {node.entry.title}")
    return "\n".join(lines)
