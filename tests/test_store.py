"""Tests for the entry store."""

from __future__ import annotations

import logging
from pathlib import Path

import frontmatter
import pytest

from ezer.config import EzerConfig
from ezer.errors import (
    HardLimitExceededError,
    InvalidIdError,
    MalformedEntryError,
    NotFoundError,
    WrongTypeError,
)
from ezer.memory.ids import ID_PATTERN
from ezer.memory.store import HARD_LIMIT, SOFT_LIMIT, MemoryStore


def _files(store: MemoryStore) -> set[str]:
    if not store.memory_dir.is_dir():
        return set()
    return {p.name for p in store.memory_dir.glob("*.md")}


class TestOpen:
    def test_prefix_from_directory_name(self, project_dir: Path):
        store = MemoryStore.open(project_dir)
        entry = store.create_note("hello")
        assert entry.id.startswith("mp-")
        assert ID_PATTERN.fullmatch(entry.id)

    def test_prefix_persisted_on_first_write(self, project_dir: Path):
        store = MemoryStore.open(project_dir)
        config_file = project_dir / ".ezer" / "config.yaml"
        assert not config_file.exists()
        store.create_note("hello")
        assert config_file.read_text(encoding="utf-8") == "prefix: mp\n"

    def test_saved_prefix_wins(self, project_dir: Path):
        (project_dir / ".ezer").mkdir()
        (project_dir / ".ezer" / "config.yaml").write_text("prefix: zz\n", encoding="utf-8")
        entry = MemoryStore.open(project_dir).create_note("hello")
        assert entry.id.startswith("zz-")

    def test_from_config_uses_data_dir(self, project_dir: Path):
        config = EzerConfig(project_dir=project_dir, data_dir=".memory")
        store = MemoryStore.from_config(config)
        entry = store.create_note("hello")
        assert store.memory_dir == project_dir / ".memory" / "memory"
        assert (project_dir / ".memory" / "memory" / f"{entry.id}.md").exists()
        assert (project_dir / ".memory" / "config.yaml").exists()


class TestNotes:
    def test_create_writes_file(self, store: MemoryStore):
        entry = store.create_note("hello world")
        assert _files(store) == {f"{entry.id}.md"}
        text = (store.memory_dir / f"{entry.id}.md").read_text(encoding="utf-8")
        assert "hello world" in text
        assert "type: note" in text

    def test_get(self, store: MemoryStore):
        entry = store.create_note("hello")
        assert store.get(entry.id) == entry

    def test_update_preserves_created(self, store: MemoryStore):
        entry = store.create_note("first")
        updated = store.update_note(entry.id, "second")
        assert updated.content == "second"
        assert store.get(entry.id).created == entry.created

    def test_update_missing(self, store: MemoryStore):
        with pytest.raises(NotFoundError):
            store.update_note("mp-zzzzz", "x")

    def test_update_puzzle_id_is_wrong_type(self, store: MemoryStore):
        puzzle = store.create_puzzle("Main")
        with pytest.raises(WrongTypeError):
            store.update_note(puzzle.id, "x")
        assert store.get(puzzle.id).content == ""

    def test_invalid_id_rejected(self, store: MemoryStore):
        with pytest.raises(InvalidIdError):
            store.update_note("../../etc/passwd", "x")

    def test_trailing_newline_id_rejected(self, store: MemoryStore):
        entry = store.create_note("hello")
        with pytest.raises(InvalidIdError):
            store.get(f"{entry.id}\n")


class TestSizeBudget:
    def test_soft_limit_warns(self, store: MemoryStore, caplog):
        store.create_note("a" * 20000)
        with caplog.at_level(logging.WARNING, logger="ezer.memory.store"):
            store.create_note("b" * 10500)
        assert "soft limit" in caplog.text
        assert store.note_bytes() == 30500
        assert store.note_total == 30500
        assert store.over_soft_limit

    def test_under_soft_limit_is_quiet(self, store: MemoryStore, caplog):
        with caplog.at_level(logging.WARNING, logger="ezer.memory.store"):
            store.create_note("a" * 1000)
        assert "soft limit" not in caplog.text
        assert store.note_total == 1000
        assert not store.over_soft_limit

    def test_exactly_hard_limit_allowed(self, store: MemoryStore):
        store.create_note("a" * HARD_LIMIT)
        assert store.note_bytes() == HARD_LIMIT

    def test_hard_limit_rejects_without_writing(self, store: MemoryStore):
        store.create_note("a" * 30000)
        before = _files(store)
        with pytest.raises(HardLimitExceededError) as exc_info:
            store.create_note("b" * 3000)
        assert exc_info.value.total == 33000
        assert _files(store) == before

    def test_counts_utf8_bytes(self, store: MemoryStore):
        store.create_note("é" * 16000)
        with pytest.raises(HardLimitExceededError):
            store.create_note("x" * 800)

    def test_feedback_and_puzzles_not_counted(self, store: MemoryStore):
        store.create_feedback("f" * 40000)
        store.create_puzzle("P", description="d" * 40000)
        assert store.note_bytes() == 0
        store.create_note("a" * SOFT_LIMIT)


class TestDelete:
    def test_delete_note(self, store: MemoryStore):
        entry = store.create_note("bye")
        store.delete_entry(entry.id)
        assert _files(store) == set()

    def test_delete_puzzle(self, store: MemoryStore):
        puzzle = store.create_puzzle("P")
        store.delete_entry(puzzle.id)
        with pytest.raises(NotFoundError):
            store.get(puzzle.id)

    def test_delete_missing(self, store: MemoryStore):
        with pytest.raises(NotFoundError):
            store.delete_entry("mp-zzzzz")

    def test_feedback_not_deletable(self, store: MemoryStore):
        feedback = store.create_feedback("nice tool")
        with pytest.raises(WrongTypeError):
            store.delete_entry(feedback.id)
        assert store.get(feedback.id).content == "nice tool"


class TestReplaceNotes:
    def test_merges_into_one(self, store: MemoryStore):
        first = store.create_note("one")
        second = store.create_note("two")
        merged = store.replace_notes([first.id, second.id], "merged")

        notes = store.list("note")
        assert [n.content for n in notes] == ["merged"]
        assert notes[0].id == merged.id
        assert f"{first.id}.md" not in _files(store)
        assert f"{second.id}.md" not in _files(store)

    def test_validates_before_deleting(self, store: MemoryStore):
        note = store.create_note("keep me")
        puzzle = store.create_puzzle("P")
        with pytest.raises(WrongTypeError):
            store.replace_notes([note.id, puzzle.id], "merged")
        assert store.get(note.id).content == "keep me"
        assert len(store.list("note")) == 1

    def test_missing_id(self, store: MemoryStore):
        note = store.create_note("keep me")
        with pytest.raises(NotFoundError):
            store.replace_notes([note.id, "mp-zzzzz"], "merged")
        assert store.get(note.id).content == "keep me"

    def test_budget_excludes_replaced_notes(self, store: MemoryStore):
        big = store.create_note("a" * 30000)
        merged = store.replace_notes([big.id], "b" * 31000)
        assert store.note_bytes() == 31000
        assert store.list("note") == [merged]
        assert store.note_total == 31000
        assert store.over_soft_limit

    def test_needs_at_least_one_id(self, store: MemoryStore):
        note = store.create_note("keep me")
        with pytest.raises(InvalidIdError):
            store.replace_notes([], "merged")
        assert store.list("note") == [note]


class TestFeedback:
    def test_clear(self, store: MemoryStore):
        store.create_feedback("one")
        store.create_feedback("two")
        note = store.create_note("stays")
        assert store.clear_feedback() == 2
        assert store.list("feedback") == []
        assert store.list() == [note]

    def test_clear_empty(self, store: MemoryStore):
        assert store.clear_feedback() == 0


class TestPuzzles:
    def test_create_defaults(self, store: MemoryStore):
        puzzle = store.create_puzzle("Main", description="details")
        assert puzzle.status == "open"
        assert puzzle.closed_at is None
        assert puzzle.blocks == []
        assert store.get(puzzle.id) == puzzle

    def test_file_is_plain_frontmatter(self, store: MemoryStore):
        puzzle = store.create_puzzle("Main", description="body")
        post = frontmatter.load(str(store.memory_dir / f"{puzzle.id}.md"))
        assert post.metadata["type"] == "puzzle"
        assert post.metadata["title"] == "Main"
        assert post.content == "body"

    def test_create_with_blocks(self, store: MemoryStore):
        main = store.create_puzzle("Main")
        blocker = store.create_puzzle("Blocker", blocks_id=main.id)
        assert store.get(blocker.id).blocks == [main.id]

    def test_create_blocking_missing_puzzle(self, store: MemoryStore):
        with pytest.raises(NotFoundError):
            store.create_puzzle("Blocker", blocks_id="mp-zzzzz")
        assert _files(store) == set()

    def test_close_and_reopen(self, store: MemoryStore):
        puzzle = store.create_puzzle("P")
        closed = store.update_puzzle_status(puzzle.id, "closed")
        assert closed.status == "closed"
        assert closed.closed_at
        assert store.get(puzzle.id).closed_at == closed.closed_at

        reopened = store.update_puzzle_status(puzzle.id, "open")
        assert reopened.closed_at is None
        assert "closedAt" not in (store.memory_dir / f"{puzzle.id}.md").read_text(encoding="utf-8")

    def test_status_on_note(self, store: MemoryStore):
        note = store.create_note("n")
        with pytest.raises(WrongTypeError):
            store.update_puzzle_status(note.id, "closed")

    def test_status_missing(self, store: MemoryStore):
        with pytest.raises(NotFoundError):
            store.update_puzzle_status("mp-zzzzz", "closed")


class TestPuzzleBlocks:
    @pytest.fixture
    def trio(self, store: MemoryStore):
        return store.create_puzzle("A"), store.create_puzzle("B"), store.create_puzzle("C")

    def test_set_replaces(self, store: MemoryStore, trio):
        a, b, c = trio
        store.update_puzzle_blocks(a.id, b.id, "set")
        assert store.update_puzzle_blocks(a.id, c.id, "set").blocks == [c.id]

    def test_set_none_clears(self, store: MemoryStore, trio):
        a, b, _ = trio
        store.update_puzzle_blocks(a.id, b.id, "set")
        assert store.update_puzzle_blocks(a.id, None, "set").blocks == []

    def test_append_deduplicates(self, store: MemoryStore, trio):
        a, b, c = trio
        store.update_puzzle_blocks(a.id, b.id, "append")
        store.update_puzzle_blocks(a.id, c.id, "append")
        store.update_puzzle_blocks(a.id, b.id, "append")
        assert store.get(a.id).blocks == [b.id, c.id]

    def test_remove_one(self, store: MemoryStore, trio):
        a, b, c = trio
        store.update_puzzle_blocks(a.id, b.id, "append")
        store.update_puzzle_blocks(a.id, c.id, "append")
        assert store.update_puzzle_blocks(a.id, b.id, "remove").blocks == [c.id]

    def test_remove_all(self, store: MemoryStore, trio):
        a, b, c = trio
        store.update_puzzle_blocks(a.id, b.id, "append")
        store.update_puzzle_blocks(a.id, c.id, "append")
        assert store.update_puzzle_blocks(a.id, None, "remove").blocks == []
        assert "blocks" not in (store.memory_dir / f"{a.id}.md").read_text(encoding="utf-8")

    def test_target_must_exist(self, store: MemoryStore, trio):
        a, _, _ = trio
        with pytest.raises(NotFoundError):
            store.update_puzzle_blocks(a.id, "mp-zzzzz", "append")

    def test_target_must_be_puzzle(self, store: MemoryStore, trio):
        a, _, _ = trio
        note = store.create_note("n")
        with pytest.raises(WrongTypeError):
            store.update_puzzle_blocks(a.id, note.id, "set")

    def test_self_link_rejected(self, store: MemoryStore, trio):
        a, _, _ = trio
        with pytest.raises(InvalidIdError):
            store.update_puzzle_blocks(a.id, a.id, "append")

    def test_append_needs_target(self, store: MemoryStore, trio):
        a, _, _ = trio
        with pytest.raises(InvalidIdError):
            store.update_puzzle_blocks(a.id, None, "append")

    def test_cycles_allowed(self, store: MemoryStore, trio):
        a, b, _ = trio
        store.update_puzzle_blocks(a.id, b.id, "append")
        store.update_puzzle_blocks(b.id, a.id, "append")
        assert store.get(b.id).blocks == [a.id]


class TestList:
    def test_missing_directory(self, store: MemoryStore):
        assert store.list() == []

    def test_newest_first(self, store: MemoryStore):
        first = store.create_note("first")
        second = store.create_note("second")
        third = store.create_note("third")
        assert [e.id for e in store.list()] == [third.id, second.id, first.id]

    def test_type_filter(self, store: MemoryStore):
        note = store.create_note("n")
        store.create_puzzle("p")
        store.create_feedback("f")
        assert store.list("note") == [note]
        assert len(store.list()) == 3

    def test_skips_corrupt_file(self, store: MemoryStore, caplog):
        note = store.create_note("fine")
        (store.memory_dir / "mp-broke.md").write_text("garbage", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="ezer.memory.store"):
            assert store.list() == [note]
        assert "mp-broke.md" in caplog.text

    def test_get_corrupt_file_raises(self, store: MemoryStore):
        store.memory_dir.mkdir(parents=True)
        (store.memory_dir / "mp-broke.md").write_text("garbage", encoding="utf-8")
        with pytest.raises(MalformedEntryError):
            store.get("mp-broke")

    def test_ignores_other_files(self, store: MemoryStore):
        note = store.create_note("n")
        (store.memory_dir / "README.txt").write_text("hi", encoding="utf-8")
        assert store.list() == [note]
