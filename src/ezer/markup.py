"""Tag-delimited rendering of entries echoed back to an agent."""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

from ezer.memory.entry import MemoryEntry


def render_note(note: MemoryEntry) -> str:
    return f"<note id={quoteattr(note.id)}>\n{escape(note.content)}\n</note>"


def render_puzzle(puzzle: MemoryEntry) -> str:
    return (
        f"<puzzle id={quoteattr(puzzle.id)} title={quoteattr(puzzle.title or '')}>\n"
        f"{escape(puzzle.content)}\n"
        f"</puzzle>"
    )
