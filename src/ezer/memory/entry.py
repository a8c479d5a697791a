"""The memory entry record and its field validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, NamedTuple

from ezer.memory.ids import is_valid_id

logger = logging.getLogger(__name__)

EntryType = Literal["note", "puzzle", "feedback"]
PuzzleStatus = Literal["open", "closed"]

ENTRY_TYPES: tuple[str, ...] = ("note", "puzzle", "feedback")
PUZZLE_STATUSES: tuple[str, ...] = ("open", "closed")


@dataclass
class MemoryEntry:
    """One persisted note, puzzle or feedback item."""

    id: str
    type: EntryType
    content: str = ""
    created: str = ""
    title: str | None = None
    status: PuzzleStatus | None = None
    closed_at: str | None = None
    # Ids of puzzles that cannot be ready until this one is closed
    blocks: list[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.type == "puzzle" and self.status != "closed"


class BlocksParse(NamedTuple):
    """Result of reading a raw ``blocks`` header value."""

    ids: list[str]
    dropped: list[Any]


def parse_blocks(raw: Any, owner_id: str | None = None) -> BlocksParse:
    """Leniently read a ``blocks`` value (a string or a list of strings).

    Non-strings, malformed ids, self references and duplicates are dropped
    and returned in ``dropped``; order of the kept ids is preserved.
    """
    if raw is None:
        return BlocksParse([], [])
    items = [raw] if isinstance(raw, str) else raw if isinstance(raw, list) else None
    if items is None:
        return BlocksParse([], [raw])

    ids: list[str] = []
    dropped: list[Any] = []
    for item in items:
        if not isinstance(item, str):
            dropped.append(item)
            continue
        candidate = item.strip()
        if not is_valid_id(candidate) or candidate == owner_id or candidate in ids:
            dropped.append(item)
            continue
        ids.append(candidate)
    return BlocksParse(ids, dropped)


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def timestamp_key(value: str | None) -> datetime:
    """Sort key for stored timestamps; unparsable values sort oldest."""
    if not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable timestamp %r", value)
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
