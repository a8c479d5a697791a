"""Entry store, one markdown file per note, puzzle or feedback item.

Files are the source of truth and are meant to be committed to version
control. There is no index and no locking: every read scans the directory,
and concurrent writers are reconciled by the VCS, not here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Literal

from ezer.config import EzerConfig, ProjectConfig
from ezer.errors import (
    HardLimitExceededError,
    InvalidIdError,
    MalformedEntryError,
    NotFoundError,
    WrongTypeError,
)
from ezer.memory.codec import decode, encode
from ezer.memory.entry import EntryType, MemoryEntry, PuzzleStatus, timestamp_key, utc_now
from ezer.memory.ids import IdGenerator, is_valid_id

logger = logging.getLogger(__name__)

MEMORY_DIRNAME = "memory"

SOFT_LIMIT = 30000
HARD_LIMIT = 32768

BlocksMode = Literal["set", "append", "remove"]


def byte_size(text: str) -> int:
    return len(text.encode("utf-8"))


class MemoryStore:
    """CRUD over the entry files in ``<root>/memory``."""

    def __init__(
        self,
        root: Path,
        ids: IdGenerator,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.root = root
        self.memory_dir = root / MEMORY_DIRNAME
        self._ids = ids
        self._clock = clock
        # Note bytes after the last create_note or replace_notes
        self.note_total: int | None = None

    @classmethod
    def open(cls, project_dir: Path, data_dir: str = ".ezer") -> MemoryStore:
        """Open the store of a project, loading its id prefix once."""
        return cls.from_config(EzerConfig(project_dir=project_dir, data_dir=data_dir))

    @classmethod
    def from_config(cls, config: EzerConfig) -> MemoryStore:
        project = ProjectConfig.load(config.root, config.project_dir)
        return cls(config.root, IdGenerator(project))

    # ── Paths & file access ───────────────────────────────────

    def _path(self, entry_id: str) -> Path:
        if not is_valid_id(entry_id):
            raise InvalidIdError(f"invalid id: {entry_id!r}")
        return self.memory_dir / f"{entry_id}.md"

    def _write(self, entry: MemoryEntry) -> None:
        self.memory_dir.mkdir(parents=True, exist_ok=True)
        self._path(entry.id).write_text(encode(entry), encoding="utf-8")

    def get(self, entry_id: str) -> MemoryEntry:
        """Read one entry. Raises InvalidIdError, NotFoundError or MalformedEntryError."""
        path = self._path(entry_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(entry_id) from None
        return decode(entry_id, raw)

    def _get_typed(self, entry_id: str, expected: EntryType) -> MemoryEntry:
        entry = self.get(entry_id)
        if entry.type != expected:
            raise WrongTypeError(entry_id, expected, entry.type)
        return entry

    def _new_entry(self, entry_type: EntryType, content: str, **fields) -> MemoryEntry:
        entry = MemoryEntry(
            id=self._ids.generate(),
            type=entry_type,
            content=content.strip(),
            created=self._clock(),
            **fields,
        )
        self._write(entry)
        logger.info("Created %s %s", entry_type, entry.id)
        return entry

    # ── Listing ───────────────────────────────────────────────

    def list(self, type: EntryType | None = None) -> list[MemoryEntry]:
        """All decodable entries, optionally of one type, newest first.

        Corrupt files are logged and skipped; a missing directory is empty.
        """
        if not self.memory_dir.is_dir():
            return []
        entries: list[MemoryEntry] = []
        for path in sorted(self.memory_dir.glob("*.md")):
            try:
                entry = decode(path.stem, path.read_text(encoding="utf-8"))
            except (MalformedEntryError, OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable entry %s: %s", path.name, exc)
                continue
            if type is None or entry.type == type:
                entries.append(entry)
        entries.sort(key=lambda e: timestamp_key(e.created), reverse=True)
        return entries

    # ── Notes ─────────────────────────────────────────────────

    def note_bytes(self, exclude: Iterable[str] = ()) -> int:
        """Total UTF-8 size of all note contents."""
        skip = set(exclude)
        return sum(byte_size(e.content) for e in self.list("note") if e.id not in skip)

    def _check_budget(self, content: str, exclude: Iterable[str] = ()) -> int:
        total = self.note_bytes(exclude) + byte_size(content.strip())
        if total > HARD_LIMIT:
            raise HardLimitExceededError(total, HARD_LIMIT)
        return total

    def create_note(self, content: str) -> MemoryEntry:
        total = self._check_budget(content)
        entry = self._new_entry("note", content)
        self._record_total(total)
        return entry

    @property
    def over_soft_limit(self) -> bool:
        return self.note_total is not None and self.note_total > SOFT_LIMIT

    def _record_total(self, total: int) -> None:
        self.note_total = total
        if self.over_soft_limit:
            logger.warning(
                "Total notes size (%d bytes) exceeds soft limit of %d bytes", total, SOFT_LIMIT
            )

    def update_note(self, entry_id: str, content: str) -> MemoryEntry:
        entry = self._get_typed(entry_id, "note")
        entry.content = content.strip()
        self._write(entry)
        logger.info("Updated note %s", entry_id)
        return entry

    def replace_notes(self, ids: Iterable[str], content: str) -> MemoryEntry:
        """Consolidate several notes into one.

        Every id is checked before anything changes. The new note is written
        before the old files go, so an interrupted run leaves duplicates
        rather than losing content.
        """
        old_ids = list(dict.fromkeys(ids))
        if not old_ids:
            raise InvalidIdError("replace needs at least one note id")
        for entry_id in old_ids:
            self._get_typed(entry_id, "note")

        total = self._check_budget(content, exclude=old_ids)
        entry = self._new_entry("note", content)
        for entry_id in old_ids:
            self._path(entry_id).unlink(missing_ok=True)
        logger.info("Replaced notes %s with %s", ", ".join(old_ids), entry.id)
        self._record_total(total)
        return entry

    def delete_entry(self, entry_id: str) -> None:
        """Remove a note or puzzle. Feedback only goes through clear_feedback()."""
        entry = self.get(entry_id)
        if entry.type not in ("note", "puzzle"):
            raise WrongTypeError(entry_id, "note or puzzle", entry.type)
        self._path(entry_id).unlink()
        logger.info("Deleted %s %s", entry.type, entry_id)

    # ── Feedback ──────────────────────────────────────────────

    def create_feedback(self, content: str) -> MemoryEntry:
        return self._new_entry("feedback", content)

    def clear_feedback(self) -> int:
        """Delete every feedback entry. Returns count removed."""
        removed = 0
        for entry in self.list("feedback"):
            (self.memory_dir / f"{entry.id}.md").unlink(missing_ok=True)
            removed += 1
        if removed:
            logger.info("Cleared %d feedback entries", removed)
        return removed

    # ── Puzzles ───────────────────────────────────────────────

    def create_puzzle(
        self,
        title: str,
        description: str | None = None,
        blocks_id: str | None = None,
    ) -> MemoryEntry:
        blocks: list[str] = []
        if blocks_id:
            self._check_target(blocks_id)
            blocks.append(blocks_id)
        return self._new_entry(
            "puzzle", description or "", title=title, status="open", blocks=blocks
        )

    def update_puzzle_status(self, entry_id: str, status: PuzzleStatus) -> MemoryEntry:
        if status not in ("open", "closed"):
            raise ValueError(f"unknown puzzle status: {status!r}")
        entry = self._get_typed(entry_id, "puzzle")
        entry.status = status
        entry.closed_at = self._clock() if status == "closed" else None
        self._write(entry)
        logger.info("Puzzle %s is now %s", entry_id, status)
        return entry

    def update_puzzle_blocks(
        self,
        entry_id: str,
        target_id: str | None,
        mode: BlocksMode = "set",
    ) -> MemoryEntry:
        """Change which puzzles ``entry_id`` blocks.

        ``set`` replaces the targets (clears them when ``target_id`` is None),
        ``append`` adds one, ``remove`` drops one or, without a target, all.
        Cycles are not checked here.
        """
        entry = self._get_typed(entry_id, "puzzle")

        if mode == "remove":
            entry.blocks = [] if target_id is None else [b for b in entry.blocks if b != target_id]
        elif mode in ("set", "append"):
            if target_id is None:
                if mode == "append":
                    raise InvalidIdError("append needs a puzzle id to block")
                entry.blocks = []
            else:
                if target_id == entry_id:
                    raise InvalidIdError(f"{entry_id} cannot block itself")
                self._check_target(target_id)
                if mode == "set":
                    entry.blocks = [target_id]
                elif target_id not in entry.blocks:
                    entry.blocks.append(target_id)
        else:
            raise ValueError(f"unknown blocks mode: {mode!r}")

        self._write(entry)
        logger.info("Puzzle %s now blocks %s", entry_id, entry.blocks or "nothing")
        return entry

    def _check_target(self, target_id: str) -> None:
        try:
            self._get_typed(target_id, "puzzle")
        except NotFoundError:
            raise NotFoundError(target_id, "puzzle") from None
