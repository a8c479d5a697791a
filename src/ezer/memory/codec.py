"""Conversion between MemoryEntry and its markdown file text.

File layout::

    ---
    type: puzzle
    created: '2026-10-19T09:30:00.000Z'
    title: Deploy to prod
    status: open
    blocks:
    - ez-abcde
    ---
    Optional body text
"""

from __future__ import annotations

import logging
from datetime import datetime

import frontmatter
import yaml

from ezer.errors import MalformedEntryError
from ezer.memory.entry import (
    ENTRY_TYPES,
    PUZZLE_STATUSES,
    MemoryEntry,
    format_timestamp,
    parse_blocks,
)

logger = logging.getLogger(__name__)


def decode(entry_id: str, raw: str) -> MemoryEntry:
    """Parse file text into an entry. Raises MalformedEntryError."""
    if not frontmatter.checks(raw):
        raise MalformedEntryError(entry_id, "missing --- header")
    try:
        post = frontmatter.loads(raw)
    except yaml.YAMLError as exc:
        raise MalformedEntryError(entry_id, f"unreadable header ({exc})") from exc
    # An unclosed or non-mapping header leaves metadata empty
    meta = post.metadata

    entry_type = meta.get("type")
    if entry_type not in ENTRY_TYPES:
        raise MalformedEntryError(entry_id, f"unknown type {entry_type!r}")

    entry = MemoryEntry(
        id=entry_id,
        type=entry_type,
        content=post.content.strip(),
        created=_text(meta.get("created")) or "",
    )
    title = meta.get("title")
    if title is not None:
        entry.title = _text(title)
    status = meta.get("status")
    if status in PUZZLE_STATUSES:
        entry.status = status
    elif entry_type == "puzzle":
        entry.status = "open"
    closed_at = meta.get("closedAt")
    if isinstance(closed_at, (str, datetime)):
        entry.closed_at = _text(closed_at)

    parsed = parse_blocks(meta.get("blocks"), owner_id=entry_id)
    if parsed.dropped:
        logger.debug("Dropped invalid blocks values from %s: %r", entry_id, parsed.dropped)
    entry.blocks = parsed.ids
    return entry


def encode(entry: MemoryEntry) -> str:
    """Render an entry as header + body, ending in a single newline."""
    header: dict = {"type": entry.type, "created": entry.created}
    if entry.title:
        header["title"] = entry.title
    if entry.status:
        header["status"] = entry.status
    if entry.closed_at:
        header["closedAt"] = entry.closed_at
    if entry.blocks:
        header["blocks"] = list(entry.blocks)
    rendered = yaml.safe_dump(
        header, sort_keys=False, allow_unicode=True, default_flow_style=False
    ).rstrip()
    return f"---\n{rendered}\n---\n{entry.content.strip()}\n"


def _text(value: object) -> str | None:
    """Coerce a YAML scalar back to text (the loader turns bare timestamps into datetimes)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return format_timestamp(value)
    return str(value)
