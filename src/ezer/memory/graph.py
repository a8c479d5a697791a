"""Puzzle dependency graph.

An edge ``A -> B`` exists when ``B`` is in ``A.blocks``: A has to be closed
before B is ready. The graph is a snapshot of one store listing and is
rebuilt for every command, so readiness is never persisted.

``blocks`` is not guaranteed to be acyclic (``link`` does not check), so
both tree walks keep a visited set and stop at the first repeat.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Iterable, NamedTuple

from ezer.errors import NotFoundError, WrongTypeError
from ezer.memory.entry import MemoryEntry, timestamp_key

if TYPE_CHECKING:
    from ezer.memory.store import MemoryStore

logger = logging.getLogger(__name__)


class PuzzleState(str, Enum):
    READY = "ready"
    BLOCKED = "blocked"
    CLOSED = "closed"


class TreeNode(NamedTuple):
    entry: MemoryEntry
    depth: int


class PuzzleGraph:
    """Ready/blocked classification and tree walks over puzzle entries."""

    def __init__(self, entries: Iterable[MemoryEntry]) -> None:
        entries = list(entries)
        self._types = {e.id: e.type for e in entries}
        # Insertion order follows creation time, oldest first
        self._puzzles: dict[str, MemoryEntry] = {
            e.id: e
            for e in sorted(
                (e for e in entries if e.type == "puzzle"),
                key=lambda e: (timestamp_key(e.created), e.id),
            )
        }
        # target id -> puzzles listing it in blocks, oldest first
        self._blocked_by: dict[str, list[str]] = defaultdict(list)
        for puzzle in self._puzzles.values():
            for target in puzzle.blocks:
                self._blocked_by[target].append(puzzle.id)

    @classmethod
    def from_store(cls, store: MemoryStore) -> PuzzleGraph:
        return cls(store.list())

    def __contains__(self, puzzle_id: str) -> bool:
        return puzzle_id in self._puzzles

    def get(self, puzzle_id: str) -> MemoryEntry:
        """Look up a puzzle. Raises NotFoundError or WrongTypeError."""
        puzzle = self._puzzles.get(puzzle_id)
        if puzzle is not None:
            return puzzle
        actual = self._types.get(puzzle_id)
        if actual is not None:
            raise WrongTypeError(puzzle_id, "puzzle", actual)
        raise NotFoundError(puzzle_id, "puzzle")

    @property
    def puzzles(self) -> list[MemoryEntry]:
        return list(self._puzzles.values())

    # ── Classification ────────────────────────────────────────

    def blockers_of(self, puzzle_id: str) -> set[str]:
        """Open puzzles that list ``puzzle_id`` in their blocks."""
        return {
            blocker
            for blocker in self._blocked_by.get(puzzle_id, ())
            if self._puzzles[blocker].is_open
        }

    def classify(self, puzzle_id: str) -> PuzzleState:
        puzzle = self.get(puzzle_id)
        if puzzle.status == "closed":
            return PuzzleState.CLOSED
        return PuzzleState.BLOCKED if self.blockers_of(puzzle_id) else PuzzleState.READY

    def _newest_first(self, state: PuzzleState) -> list[MemoryEntry]:
        matching = [p for p in self._puzzles.values() if self.classify(p.id) is state]
        return matching[::-1]

    def ready(self) -> list[MemoryEntry]:
        return self._newest_first(PuzzleState.READY)

    def blocked(self) -> list[MemoryEntry]:
        return self._newest_first(PuzzleState.BLOCKED)

    def closed(self) -> list[MemoryEntry]:
        """Closed puzzles, most recently closed first."""
        closed = [p for p in self._puzzles.values() if p.status == "closed"]
        closed.sort(key=lambda p: timestamp_key(p.closed_at or p.created), reverse=True)
        return closed

    # ── Tree walks ────────────────────────────────────────────

    def ancestor_chain(self, root_id: str) -> list[MemoryEntry]:
        """Primary-blocker chain above ``root_id``, topmost first.

        At each step the oldest puzzle blocking the current one is taken.
        The root itself is not included.
        """
        self.get(root_id)
        chain: list[MemoryEntry] = []
        visited = {root_id}
        current = root_id
        while True:
            blockers = self._blocked_by.get(current)
            if not blockers:
                break
            primary = blockers[0]
            if primary in visited:
                logger.warning("Cycle in puzzle blocks at %s; truncating ancestors", primary)
                break
            visited.add(primary)
            chain.append(self._puzzles[primary])
            current = primary
        chain.reverse()
        return chain

    def descendant_subtree(self, root_id: str) -> list[TreeNode]:
        """Puzzles transitively blocked by ``root_id``, pre-order with depth.

        A puzzle reachable along several paths is listed once, under the
        first path that reaches it.
        """
        self.get(root_id)
        nodes: list[TreeNode] = []
        visited = {root_id}
        on_path = {root_id}
        # One iterator over ``blocks`` per puzzle on the current path
        stack = [(root_id, iter(self._puzzles[root_id].blocks))]

        while stack:
            puzzle_id, targets = stack[-1]
            target = next(targets, None)
            if target is None:
                stack.pop()
                on_path.discard(puzzle_id)
                continue
            if target not in self._puzzles:
                continue
            if target in visited:
                if target in on_path:
                    logger.warning(
                        "Cycle in puzzle blocks at %s; truncating descendants", target
                    )
                continue
            visited.add(target)
            nodes.append(TreeNode(self._puzzles[target], len(stack)))
            on_path.add(target)
            stack.append((target, iter(self._puzzles[target].blocks)))
        return nodes
