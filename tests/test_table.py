"""Tests for fsmengine.table."""

from enum import Enum

import pytest

from fsmengine.exceptions import KeyOverflowError
from fsmengine.table import TransitionIndex, TransitionTable


class State(Enum):
    A = "a"
    B = "b"
    C = "c"


class Event(Enum):
    Go = "go"
    Back = "back"


# ── TransitionTable ────────────────────────────────────────────────────────────

class TestTransitionTable:
    def test_register_and_get(self):
        table = TransitionTable()
        entry = table.register(State.A, State.B, Event.Go)
        assert table.get(State.A, Event.Go) is entry
        assert table.get(State.B, Event.Go) is None

    def test_last_write_wins(self):
        table = TransitionTable()
        table.register(State.A, State.B, Event.Go)
        table.register(State.A, State.C, Event.Go)
        assert len(table) == 1
        assert table.get(State.A, Event.Go).target == State.C

    def test_internal_entry(self):
        table = TransitionTable()
        entry = table.register(State.A, None, Event.Go)
        assert entry.internal

    def test_contains_pair(self):
        table = TransitionTable()
        table.register(State.A, State.B, Event.Go)
        assert (State.A, Event.Go) in table
        assert (State.A, Event.Back) not in table

    def test_entries_sorted_by_key(self):
        table = TransitionTable()
        table.register(State.C, State.A, Event.Back)
        table.register(State.B, State.C, Event.Go)
        table.register(State.A, State.B, Event.Back)
        pairs = [e.pair for e in table.entries()]
        assert pairs == [
            (State.B, Event.Go),
            (State.A, Event.Back),
            (State.C, Event.Back),
        ]

    def test_events_for(self):
        table = TransitionTable()
        table.register(State.A, State.B, Event.Back)
        table.register(State.A, State.C, Event.Go)
        table.register(State.B, State.C, Event.Go)
        assert table.events_for(State.A) == [Event.Go, Event.Back]
        assert table.events_for(State.C) == []

    def test_as_mapping_is_live_and_read_only(self):
        table = TransitionTable()
        view = table.as_mapping()
        table.register(State.A, State.B, Event.Go)
        assert (State.A, Event.Go) in view
        with pytest.raises(TypeError):
            view[(State.B, Event.Go)] = None

    def test_non_callable_action_raises(self):
        with pytest.raises(TypeError, match="callable"):
            TransitionTable().register(State.A, State.B, Event.Go, action=42)

    def test_non_enum_target_raises(self):
        with pytest.raises(TypeError, match="Target"):
            TransitionTable().register(State.A, "B", Event.Go)

    def test_non_enum_source_raises(self):
        with pytest.raises(TypeError, match="Enum member"):
            TransitionTable().register("A", State.B, Event.Go)

    def test_key_overflow_rejected_at_registration(self):
        table = TransitionTable(shift=1)
        with pytest.raises(KeyOverflowError):
            table.register(State.C, State.A, Event.Go)
        assert len(table) == 0

    def test_target_overflow_rejected_at_registration(self):
        table = TransitionTable(shift=1)
        with pytest.raises(KeyOverflowError, match="C"):
            table.register(State.A, State.C, Event.Go)
        assert len(table) == 0

    def test_internal_entry_skips_target_check(self):
        table = TransitionTable(shift=1)
        assert table.register(State.B, None, Event.Go).internal


# ── TransitionIndex ────────────────────────────────────────────────────────────

class TestTransitionIndex:
    def test_empty_index_is_falsy(self):
        assert not TransitionIndex()

    def test_build_and_lookup(self):
        table = TransitionTable()
        entry = table.register(State.A, State.B, Event.Go)
        index = TransitionIndex()
        index.build(table)
        assert index
        assert len(index) == 1
        assert index.lookup(State.A, Event.Go) is entry
        assert index.lookup(State.A, Event.Back) is None

    def test_snapshot_not_updated_by_table_changes(self):
        table = TransitionTable()
        first = table.register(State.A, State.B, Event.Go)
        index = TransitionIndex()
        index.build(table)
        table.register(State.A, State.C, Event.Go)
        table.register(State.B, State.C, Event.Go)
        assert index.lookup(State.A, Event.Go) is first
        assert index.lookup(State.B, Event.Go) is None

    def test_rebuild_picks_up_changes(self):
        table = TransitionTable()
        table.register(State.A, State.B, Event.Go)
        index = TransitionIndex()
        index.build(table)
        table.register(State.A, State.C, Event.Go)
        index.build(table)
        assert index.lookup(State.A, Event.Go).target == State.C

    def test_clear(self):
        table = TransitionTable()
        table.register(State.A, State.B, Event.Go)
        index = TransitionIndex()
        index.build(table)
        index.clear()
        assert not index
