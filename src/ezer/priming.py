"""Session priming text: current state plus the command reference."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ezer.markup import render_note
from ezer.memory.graph import PuzzleGraph

if TYPE_CHECKING:
    from ezer.memory.store import MemoryStore

PRIMING_TEMPLATE = """\
=== EZER ===
I am ezer, a robot companion for AI agents. I help you maintain
context and memory across sessions.

## Current State

{state}

## Commands

### Notes
Record decisions, discoveries, or context for future sessions.

  ezer note create --content "..."                   # create note
  ezer note update --id ez-xxxxx --content "..."     # update note
  ezer note delete --id ez-xxxxx                     # delete entry
  ezer note replace --ids ez-a,ez-b --content "..."  # replace many with one
  ezer note list                                     # list all notes

Good notes: decisions made, patterns discovered, important file locations.

### Puzzles
Mark unknowns you can't resolve now. Don't get stuck - note it and move on.

  ezer puzzle create --title "..."                 # create puzzle
  ezer puzzle create --title "..." --blocks ez-x   # this puzzle blocks ez-x
  ezer puzzle link --id ez-a --blocks ez-b         # make ez-a also block ez-b
  ezer puzzle unlink --id ez-a [--blocks ez-b]     # remove block dependency
  ezer puzzle close --id ez-xxxxx                  # mark resolved
  ezer puzzle reopen --id ez-xxxxx                 # reopen puzzle
  ezer puzzle delete --id ez-xxxxx                 # delete puzzle
  ezer puzzle list                                 # list ready puzzles (default)
  ezer puzzle list --blocked                       # puzzles with open blockers
  ezer puzzle list --closed                        # closed puzzles (by closed time)
  ezer puzzle tree --id ez-xxxxx                   # show dependency tree
  ezer puzzle describe --ids ez-a,ez-b             # show puzzle details

Dependency pattern:
  Create a main task:       ezer puzzle create --title "Deploy to prod"
  Create a blocker:         ezer puzzle create --title "Add tests" --blocks <main-id>
  Or link later:            ezer puzzle link --id <test-id> --blocks <main-id>
  View dependency tree:     ezer puzzle tree --id <main-id>
  Work on blockers first, then close them to unblock dependent tasks.

### Memory Management
When notes accumulate, consolidate related ones:

  ezer note replace --ids ez-a,ez-b --content "combined insight"

### Feedback
Help improve ezer:

  ezer feedback create --content "..."             # suggest improvements

### Other
  ezer status                                      # show state without instructions

## How to Work

### Use Puzzles for Work
- Puzzles represent work you CAN'T finish right now
- Put acceptance criteria in the description so it's clear when done
- Break large tasks into smaller puzzles with `--blocks` dependencies
- Close from the bottom up: blockers first

### Use Notes for Knowledge
- Notes capture what you LEARNED: decisions, discoveries, gotchas
- Update or consolidate notes to keep context focused

### Remember
- Run `ezer` at session start to load context
- Commit `.ezer/` to git; that is how memory persists across sessions and branches
"""


def render_state(store: MemoryStore) -> str:
    """Open puzzles and all notes, as shown by ``ezer`` and ``ezer status``."""
    entries = store.list()
    if not entries:
        return "No memory entries yet."

    graph = PuzzleGraph(entries)
    open_puzzles = [e for e in entries if e.is_open]
    notes = [e for e in entries if e.type == "note"]

    lines: list[str] = []
    if open_puzzles:
        lines.append("### Open Puzzles")
        for puzzle in open_puzzles:
            blocks_info = f" (blocks {', '.join(puzzle.blocks)})" if puzzle.blocks else ""
            state = graph.classify(puzzle.id).value
            lines.append(f"- {puzzle.id} [{state}]: {puzzle.title}{blocks_info}")

    if notes:
        if lines:
            lines.append("")
        lines.append("### Notes")
        lines.extend(render_note(note) for note in notes)

    if not lines:
        return "No open puzzles or notes."
    return "\n".join(lines)


def priming_text(store: MemoryStore) -> str:
    return PRIMING_TEMPLATE.format(state=render_state(store))
