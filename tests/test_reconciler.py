"""
Tests for the board reconciler.

Covers:
    - drag_start(): unknown ids ignored, one active note at a time
    - drag_over(): stage resolution, precedence, idempotence, in-place update
    - drag_end(): commit, no-target, unchanged, failure → resync
    - load(): stale list kept on failure
    - add/edit/remove: form operations through the store
    - subscribe(): change notifications
"""

import copy

import pytest

from conftest import FakeStore, make_note
from pkg.stickyboard.client import StoreError
from pkg.stickyboard.reconciler import BoardReconciler, DragState, DropOutcome
from pkg.stickyboard.schema import NoteColor, NoteDraft, NoteNotFound, Stage


@pytest.fixture
def board(fake_store, sample_notes):
    return BoardReconciler(fake_store, copy.deepcopy(sample_notes))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Drag start
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestDragStart:

    def test_starts_idle(self, board):
        assert board.state == DragState.IDLE
        assert board.active_note is None

    def test_known_note_becomes_active(self, board):
        assert board.drag_start(1)
        assert board.state == DragState.DRAGGING
        assert board.active_note.title == "Buy milk"

    def test_id_given_as_text(self, board):
        assert board.drag_start("3")
        assert board.active_id == 3

    def test_unknown_note_ignored(self, board):
        assert not board.drag_start(99)
        assert board.state == DragState.IDLE

    def test_second_start_ignored_while_dragging(self, board):
        board.drag_start(1)
        assert not board.drag_start(2)
        assert board.active_id == 1


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Drag over
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestDragOver:

    def test_over_stage_moves_note(self, board):
        board.drag_start(1)
        assert board.drag_over("review")
        assert board.find(1).stage == Stage.REVIEW

    def test_over_note_takes_its_stage(self, board):
        board.drag_start(1)
        assert board.drag_over("2")
        assert board.find(1).stage == Stage.DONE

    def test_unresolvable_target_changes_nothing(self, board, sample_notes):
        board.drag_start(1)
        assert not board.drag_over("nowhere")
        assert board.notes == sample_notes

    def test_only_stage_changes(self, board):
        before = copy.deepcopy(board.find(3))
        board.drag_start(3)
        board.drag_over("todo")
        after = board.find(3)
        assert after.stage == Stage.TODO
        assert after.id == before.id
        assert after.title == before.title
        assert after.content == before.content
        assert after.color == before.color
        assert after.is_done == before.is_done
        assert after.created_at == before.created_at

    def test_order_and_other_notes_untouched(self, board, sample_notes):
        board.drag_start(1)
        board.drag_over("done")
        assert [n.id for n in board.notes] == [1, 2, 3]
        assert board.notes[1] == sample_notes[1]
        assert board.notes[2] == sample_notes[2]

    def test_last_resolved_target_wins(self, board):
        board.drag_start(1)
        board.drag_over("in-progress")
        board.drag_over("done")
        board.drag_over("nowhere")
        assert board.find(1).stage == Stage.DONE

    def test_same_target_twice_is_noop(self, board):
        events = []
        board.subscribe(lambda event, **kw: events.append(event))
        board.drag_start(1)
        assert board.drag_over("review")
        assert not board.drag_over("review")
        assert events.count("moved") == 1

    def test_own_stage_is_noop(self, board, sample_notes):
        board.drag_start(1)
        assert not board.drag_over("todo")
        assert board.notes == sample_notes

    def test_without_gesture_does_nothing(self, board, sample_notes):
        assert not board.drag_over("done")
        assert board.notes == sample_notes

    def test_stage_id_beats_colliding_note_id(self):
        # A note whose id is spelled like a stage id, sitting in another stage
        colliding = make_note(1, "Collides", Stage.DONE)
        colliding.id = "review"
        dragged = make_note(2, "Dragged", Stage.TODO)
        board = BoardReconciler(FakeStore(), [colliding, dragged])

        board.drag_start(2)
        board.drag_over("review")
        assert board.find(2).stage == Stage.REVIEW


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Drag end
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestDragEnd:

    def test_drop_commits_full_field_set(self, board, fake_store):
        board.drag_start(3)
        board.drag_over("review")
        assert board.drag_end("review") == DropOutcome.COMMITTED

        updates = fake_store.calls_named("update")
        assert len(updates) == 1
        _, note_id, fields = updates[0]
        assert note_id == 3
        assert fields == {
            "title": "Write docs",
            "content": "API reference\nand examples",
            "color": "green",
            "stage": "review",
            "isDone": False,
        }
        assert fake_store.list()[2].stage == Stage.REVIEW

    def test_active_cleared_after_drop(self, board):
        board.drag_start(1)
        board.drag_over("done")
        board.drag_end("done")
        assert board.state == DragState.IDLE

    def test_drop_on_own_stage_makes_no_store_call(self, board, fake_store):
        board.drag_start(1)
        board.drag_over("todo")
        assert board.drag_end("todo") == DropOutcome.UNCHANGED
        assert fake_store.calls_named("update") == []

    def test_drag_away_and_back_makes_no_store_call(self, board, fake_store):
        board.drag_start(1)
        board.drag_over("done")
        board.drag_over("todo")
        assert board.drag_end("todo") == DropOutcome.UNCHANGED
        assert fake_store.calls_named("update") == []

    def test_no_target_keeps_local_stage_without_store_call(self, board, fake_store):
        # Known divergence: the optimistic stage stays local until the next load()
        board.drag_start(1)
        board.drag_over("review")
        assert board.drag_end(None) == DropOutcome.LOCAL_ONLY

        assert board.state == DragState.IDLE
        assert board.find(1).stage == Stage.REVIEW
        assert fake_store.calls == []
        assert fake_store.notes[0].stage == Stage.TODO

    def test_unresolvable_drop_target_keeps_local_stage(self, board, fake_store):
        board.drag_start(1)
        board.drag_over("review")
        assert board.drag_end("nowhere") == DropOutcome.LOCAL_ONLY

        assert fake_store.calls_named("update") == []
        assert board.state == DragState.IDLE
        assert board.find(1).stage == Stage.REVIEW
        assert fake_store.notes[0].stage == Stage.TODO

    def test_end_without_gesture_ignored(self, board, fake_store):
        assert board.drag_end("done") == DropOutcome.IGNORED
        assert fake_store.calls == []

    def test_failed_commit_resyncs_from_store(self, board, fake_store):
        fake_store.fail_update = True
        board.drag_start(1)
        board.drag_over("done")
        assert board.drag_end("done") == DropOutcome.RESYNCED

        assert board.state == DragState.IDLE
        assert board.notes == fake_store.list()
        assert board.find(1).stage == Stage.TODO

    def test_resync_discards_other_local_state(self, board, fake_store):
        # An earlier local-only move is discarded too
        board.drag_start(2)
        board.drag_over("todo")
        board.drag_end(None)

        fake_store.fail_update = True
        board.drag_start(1)
        board.drag_over("review")
        board.drag_end("review")

        assert board.find(2).stage == Stage.DONE
        assert board.notes == fake_store.list()

    def test_failed_commit_and_failed_refetch(self, board, fake_store):
        fake_store.fail_update = True
        fake_store.fail_list = True
        board.drag_start(1)
        board.drag_over("done")
        assert board.drag_end("done") == DropOutcome.RESYNC_FAILED
        assert board.state == DragState.IDLE
        assert board.find(1).stage == Stage.DONE

    def test_commit_of_note_deleted_elsewhere_resyncs(self, board, fake_store):
        fake_store.delete(1)
        board.drag_start(1)
        board.drag_over("done")
        assert board.drag_end("done") == DropOutcome.RESYNCED
        assert board.find(1) is None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Loading and form edits
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_load_replaces_list(fake_store):
    board = BoardReconciler(fake_store)
    assert board.load()
    assert [n.id for n in board.notes] == [1, 2, 3]


def test_load_failure_keeps_stale_list(board, fake_store, sample_notes):
    fake_store.fail_list = True
    assert not board.load()
    assert board.notes == sample_notes


def test_add_note_appends(board, fake_store):
    note = board.add_note(NoteDraft(title="New", color=NoteColor.PINK))
    assert board.notes[-1] == note
    assert note.id == 4
    assert fake_store.calls_named("create") == [("create", "New")]


def test_edit_note_adopts_stored_copy(board):
    note = board.edit_note(1, {"title": "Buy oat milk", "isDone": True})
    assert note.title == "Buy oat milk"
    assert board.find(1).is_done is True
    assert [n.id for n in board.notes] == [1, 2, 3]


def test_edit_failure_propagates_without_resync(board, fake_store, sample_notes):
    fake_store.fail_update = True
    with pytest.raises(StoreError):
        board.edit_note(1, {"title": "Nope"})
    assert fake_store.calls_named("list") == []
    assert board.notes == sample_notes


def test_remove_note(board, fake_store):
    board.remove_note(2)
    assert [n.id for n in board.notes] == [1, 3]
    assert fake_store.calls_named("delete") == [("delete", 2)]


def test_remove_missing_note_keeps_list(board, sample_notes):
    with pytest.raises(NoteNotFound):
        board.remove_note(42)
    assert board.notes == sample_notes


def test_subscribe_and_unsubscribe(board):
    events = []
    unsubscribe = board.subscribe(lambda event, **kw: events.append((event, kw)))
    board.drag_start(1)
    board.drag_over("done")
    board.drag_end("done")
    assert [e for e, _ in events] == ["moved", "committed"]
    assert events[1][1] == {"note_id": 1, "stage": Stage.DONE}

    unsubscribe()
    board.remove_note(1)
    assert len(events) == 2


def test_broken_subscriber_does_not_break_board(board):
    def explode(event, **kw):
        raise RuntimeError("boom")

    board.subscribe(explode)
    board.drag_start(1)
    assert board.drag_over("done")
    assert board.drag_end("done") == DropOutcome.COMMITTED
