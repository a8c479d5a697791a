"""CLI commands for ezer."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from urllib.parse import quote

import typer

from ezer import __version__
from ezer.config import EzerConfig, load_config
from ezer.errors import EzerError, InvalidIdError, NotFoundError
from ezer.markup import render_puzzle
from ezer.memory.graph import PuzzleGraph, PuzzleState
from ezer.memory.ids import is_valid_id
from ezer.memory.store import MemoryStore
from ezer.memory.tree import render_tree
from ezer.priming import priming_text, render_state

app = typer.Typer(name="ezer", help="A robot companion for AI agents")
note_app = typer.Typer(help="Manage notes", no_args_is_help=True)
puzzle_app = typer.Typer(help="Manage puzzles", no_args_is_help=True)
feedback_app = typer.Typer(help="Manage feedback", no_args_is_help=True)
app.add_typer(note_app, name="note")
app.add_typer(puzzle_app, name="puzzle")
app.add_typer(feedback_app, name="feedback")

DESCRIBE_HINT = 'Use "ezer puzzle describe --ids <id1,id2>" to view puzzle details.'


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def version_callback(value: bool):
    if value:
        typer.echo(f"ezer v{__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """ezer - notes and puzzles that persist across agent sessions."""
    config = load_config()
    _setup_logging(config.log_level)
    ctx.obj = config
    if ctx.invoked_subcommand is None:
        typer.echo(priming_text(_store(ctx)))


# ============================================================================
# Shared helpers
# ============================================================================


def _store(ctx: typer.Context) -> MemoryStore:
    config: EzerConfig = ctx.obj or load_config()
    return MemoryStore.from_config(config)


@contextmanager
def _reporting_errors():
    """Turn core errors into ``Error: ...`` on stderr and a non-zero exit."""
    try:
        yield
    except EzerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(exc.exit_code) from None


def _read_content(content: str | None) -> str:
    """Inline --content, or standard input when it is piped."""
    if content is None and not sys.stdin.isatty():
        content = sys.stdin.read()
    if content is None or not content.strip():
        typer.echo("Error: --content is required", err=True)
        raise typer.Exit(1)
    return content


def _split_ids(ids: str) -> list[str]:
    return [i.strip() for i in ids.split(",") if i.strip()]


def _warn_if_over_soft_limit(store: MemoryStore) -> None:
    if store.over_soft_limit:
        typer.echo(
            "Hint: Use 'ezer note replace --ids id1,id2 --content \"...\"' "
            "to consolidate related notes",
            err=True,
        )


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(ctx: typer.Context):
    """Show current state without instructions."""
    typer.echo("=== EZER ===\n")
    typer.echo(render_state(_store(ctx)))


# ============================================================================
# Notes
# ============================================================================


@note_app.command("create")
def note_create(
    ctx: typer.Context,
    content: str = typer.Option(None, "--content", help="Note content (default: stdin)"),
):
    """Create a new note."""
    store = _store(ctx)
    with _reporting_errors():
        entry = store.create_note(_read_content(content))
    typer.echo(f"Created {entry.id}")
    _warn_if_over_soft_limit(store)


@note_app.command("update")
def note_update(
    ctx: typer.Context,
    id: str = typer.Option(..., "--id", help="Note ID"),
    content: str = typer.Option(None, "--content", help="New content (default: stdin)"),
):
    """Update an existing note."""
    with _reporting_errors():
        _store(ctx).update_note(id, _read_content(content))
    typer.echo(f"Updated {id}")


@note_app.command("delete")
def note_delete(ctx: typer.Context, id: str = typer.Option(..., "--id", help="Note ID")):
    """Delete a note."""
    with _reporting_errors():
        _store(ctx).delete_entry(id)
    typer.echo(f"Deleted {id}")


@note_app.command("replace")
def note_replace(
    ctx: typer.Context,
    ids: str = typer.Option(..., "--ids", help="Comma-separated list of note IDs to replace"),
    content: str = typer.Option(None, "--content", help="New consolidated content"),
):
    """Replace multiple notes with one."""
    id_list = _split_ids(ids)
    store = _store(ctx)
    with _reporting_errors():
        entry = store.replace_notes(id_list, _read_content(content))
    typer.echo(f"Created {entry.id} (replaced {', '.join(id_list)})")
    _warn_if_over_soft_limit(store)


@note_app.command("list")
def note_list(ctx: typer.Context):
    """List all notes."""
    notes = _store(ctx).list("note")
    if not notes:
        typer.echo("No notes.")
        return
    for note in notes:
        typer.echo(f"{note.id}: {note.content}")


# ============================================================================
# Puzzles
# ============================================================================


@puzzle_app.command("create")
def puzzle_create(
    ctx: typer.Context,
    title: str = typer.Option(..., "--title", help="Puzzle title"),
    description: str = typer.Option(None, "--description", help="Puzzle description"),
    blocks: str = typer.Option(None, "--blocks", help="ID of puzzle that this new puzzle blocks"),
):
    """Create a new puzzle."""
    with _reporting_errors():
        entry = _store(ctx).create_puzzle(title, description, blocks)
    typer.echo(f"Created {entry.id}")
    if blocks:
        typer.echo(f"  Blocks: {blocks}")


@puzzle_app.command("close")
def puzzle_close(ctx: typer.Context, id: str = typer.Option(..., "--id", help="Puzzle ID")):
    """Close a puzzle."""
    with _reporting_errors():
        _store(ctx).update_puzzle_status(id, "closed")
    typer.echo(f"Closed {id}")


@puzzle_app.command("reopen")
def puzzle_reopen(ctx: typer.Context, id: str = typer.Option(..., "--id", help="Puzzle ID")):
    """Reopen a puzzle."""
    with _reporting_errors():
        _store(ctx).update_puzzle_status(id, "open")
    typer.echo(f"Reopened {id}")


@puzzle_app.command("delete")
def puzzle_delete(ctx: typer.Context, id: str = typer.Option(..., "--id", help="Puzzle ID")):
    """Delete a puzzle."""
    with _reporting_errors():
        _store(ctx).delete_entry(id)
    typer.echo(f"Deleted {id}")


@puzzle_app.command("list")
def puzzle_list(
    ctx: typer.Context,
    ready: bool = typer.Option(False, "--ready", help="Puzzles with all blockers closed (default)"),
    blocked: bool = typer.Option(False, "--blocked", help="Puzzles with open blockers"),
    closed: bool = typer.Option(False, "--closed", help="Closed puzzles, by closed time"),
):
    """List puzzles."""
    graph = PuzzleGraph.from_store(_store(ctx))
    if closed:
        to_show = graph.closed()
    elif blocked:
        to_show = graph.blocked()
    else:
        to_show = graph.ready()

    if not to_show:
        typer.echo("No puzzles.")
        return

    for puzzle in to_show:
        state = graph.classify(puzzle.id)
        blocks_info = f" (blocks {', '.join(puzzle.blocks)})" if puzzle.blocks else ""
        if state is PuzzleState.READY:
            detail = f"created {puzzle.created}"
        elif state is PuzzleState.BLOCKED:
            detail = f"blocked by {', '.join(sorted(graph.blockers_of(puzzle.id)))}"
        else:
            detail = f"closed at {puzzle.closed_at or puzzle.created}"
        typer.echo(f"{puzzle.id} [{state.value}]: {puzzle.title}{blocks_info} ({detail})")
    typer.echo(DESCRIBE_HINT)


@puzzle_app.command("tree")
def puzzle_tree(ctx: typer.Context, id: str = typer.Option(..., "--id", help="Puzzle ID")):
    """Show puzzle dependency tree."""
    with _reporting_errors():
        tree = render_tree(PuzzleGraph.from_store(_store(ctx)), id)
    typer.echo(tree)
    typer.echo('\nUse "ezer puzzle describe --ids <id>" to view puzzle details.')


@puzzle_app.command("describe")
def puzzle_describe(
    ctx: typer.Context,
    ids: str = typer.Option(..., "--ids", help="Comma-separated puzzle IDs"),
):
    """Show puzzle descriptions."""
    id_list = _split_ids(ids)
    with _reporting_errors():
        if not id_list:
            raise InvalidIdError("--ids is required")
        invalid = [i for i in id_list if not is_valid_id(i)]
        if invalid:
            raise InvalidIdError(f"invalid puzzle id(s): {', '.join(invalid)}")
        graph = PuzzleGraph.from_store(_store(ctx))
        missing = [i for i in id_list if i not in graph]
        if missing:
            raise NotFoundError(", ".join(missing), "puzzle(s)")

    typer.echo("\n\n".join(render_puzzle(graph.get(i)) for i in id_list))


@puzzle_app.command("link")
def puzzle_link(
    ctx: typer.Context,
    id: str = typer.Option(..., "--id", help="Puzzle ID to update"),
    blocks: str = typer.Option(..., "--blocks", help="Puzzle ID that this puzzle should block"),
    replace: bool = typer.Option(False, "--replace", help="Drop existing block targets first"),
):
    """Link a puzzle to block another puzzle."""
    with _reporting_errors():
        _store(ctx).update_puzzle_blocks(id, blocks, "set" if replace else "append")
    typer.echo(f"Linked {id} to block {blocks}")


@puzzle_app.command("unlink")
def puzzle_unlink(
    ctx: typer.Context,
    id: str = typer.Option(..., "--id", help="Puzzle ID to update"),
    blocks: str = typer.Option(None, "--blocks", help="Only remove this target"),
):
    """Remove block dependency from a puzzle."""
    with _reporting_errors():
        _store(ctx).update_puzzle_blocks(id, blocks, "remove")
    if blocks:
        typer.echo(f"Unlinked {id} from {blocks}")
    else:
        typer.echo(f"Unlinked {id} (removed block dependency)")


# ============================================================================
# Feedback
# ============================================================================


@feedback_app.command("create")
def feedback_create(
    ctx: typer.Context,
    content: str = typer.Option(None, "--content", help="Feedback content (default: stdin)"),
):
    """Create feedback for ezer developers."""
    with _reporting_errors():
        entry = _store(ctx).create_feedback(_read_content(content))
    typer.echo(f"Created {entry.id}")


@feedback_app.command("submit")
def feedback_submit(ctx: typer.Context):
    """Print an issue link pre-filled with collected feedback."""
    config: EzerConfig = ctx.obj or load_config()
    feedbacks = _store(ctx).list("feedback")
    if not feedbacks:
        typer.echo("No feedback to submit.")
        return
    plural = "" if len(feedbacks) == 1 else "s"
    title = f"Feedback from ezer ({len(feedbacks)} item{plural})"
    body = "\n\n".join(
        f"{index}. {entry.content}\n(id: {entry.id}, created: {entry.created})"
        for index, entry in enumerate(feedbacks, start=1)
    )
    typer.echo(f"{config.feedback_url}?title={quote(title, safe='')}&body={quote(body, safe='')}")


@feedback_app.command("clear")
def feedback_clear(ctx: typer.Context):
    """Remove all collected feedback entries."""
    removed = _store(ctx).clear_feedback()
    if removed == 0:
        typer.echo("No feedback to clear.")
    else:
        typer.echo(f"Cleared {removed} feedback {'entry' if removed == 1 else 'entries'}.")
