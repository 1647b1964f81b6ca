"""
Board reconciler: keeps the client's note list in step with drag-and-drop.

Gesture lifecycle:
  IDLE → (drag_start) → DRAGGING → (drag_over)* → (drag_end) → IDLE

Stage changes are applied optimistically on drag_over. On drop the note's
full field set is written to the store; if that write fails the whole list
is discarded and refetched (resync) instead of rolled back piecemeal.
"""
import logging
from enum import Enum
from typing import Optional, List, Dict, Any, Callable

from .schema import Note, NoteDraft, NoteNotFound, Stage
from .client import StoreError

logger = logging.getLogger(__name__)

# Failures that count as "the store rejected the write"
STORE_ERRORS = (StoreError, NoteNotFound)


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DropOutcome(Enum):
    """What drag_end did."""
    IGNORED = "ignored"              # no gesture in progress
    LOCAL_ONLY = "local_only"        # no drop target: nothing written, local stage kept
    UNCHANGED = "unchanged"          # dropped on its own stage: nothing written
    COMMITTED = "committed"          # store accepted the write
    RESYNCED = "resynced"            # store rejected the write, list refetched
    RESYNC_FAILED = "resync_failed"  # write and refetch both failed


class BoardReconciler:
    """
    Authoritative in-memory note list for one board client.

    ``store`` is anything with ``list()``, ``create(draft)``,
    ``update(id, fields)`` and ``delete(id)``; normally a NoteClient.
    """

    def __init__(self, store, notes: Optional[List[Note]] = None):
        self.store = store
        self.notes: List[Note] = list(notes or [])
        self.active_id: Optional[int] = None
        self._origin_stage: Optional[Stage] = None
        self._subscribers: List[Callable] = []

    # ── Subscriptions ────────────────────────────────────────────────────

    def subscribe(self, callback: Callable) -> Callable[[], None]:
        """
        Register ``callback(event, **details)`` for board changes.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _emit(self, event: str, **kwargs) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event, **kwargs)
            except Exception:
                logger.exception(f"Error in {event} subscriber")

    # ── Lookups ──────────────────────────────────────────────────────────

    @property
    def state(self) -> DragState:
        return DragState.IDLE if self.active_id is None else DragState.DRAGGING

    @property
    def active_note(self) -> Optional[Note]:
        if self.active_id is None:
            return None
        return self.find(self.active_id)

    def find(self, note_id) -> Optional[Note]:
        """Note whose id matches ``note_id`` (compared as text), or None."""
        key = str(note_id)
        for note in self.notes:
            if str(note.id) == key:
                return note
        return None

    def resolve_target(self, target_id) -> Optional[Stage]:
        """
        Stage a drop target stands for.

        A stage id wins over a note id that happens to be spelled the same.
        """
        stage = Stage.lookup(target_id)
        if stage is not None:
            return stage
        over = self.find(target_id)
        if over is not None:
            return over.stage
        return None

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self) -> bool:
        """Replace the list with the store's. On failure keep the stale list."""
        try:
            notes = self.store.list()
        except STORE_ERRORS as e:
            logger.warning(f"Failed to fetch notes: {e}")
            return False
        self.notes = list(notes)
        self._emit("loaded", count=len(self.notes))
        return True

    # ── Drag gesture ─────────────────────────────────────────────────────

    def drag_start(self, note_id) -> bool:
        """Begin a gesture. Unknown ids, or a gesture already running, are ignored."""
        if self.active_id is not None:
            logger.debug(f"drag_start({note_id}) ignored: note {self.active_id} is active")
            return False
        note = self.find(note_id)
        if note is None:
            logger.debug(f"drag_start({note_id}) ignored: unknown note")
            return False
        self.active_id = note.id
        self._origin_stage = note.stage
        return True

    def drag_over(self, target_id) -> bool:
        """
        Optimistically move the active note to the target's stage.

        Returns True if the list changed. Only the dragged note's ``stage``
        is written; list order and every other note stay as they are.
        """
        note = self.active_note
        if note is None:
            return False
        stage = self.resolve_target(target_id)
        if stage is None or stage == note.stage:
            return False
        note.stage = stage
        self._emit("moved", note_id=note.id, stage=stage)
        return True

    def drag_end(self, target_id=None) -> DropOutcome:
        """
        Finish the gesture.

        ``target_id`` is whatever the pointer was released over, or None
        when it was released outside any target. When it resolves to no
        stage nothing is written and the last optimistic stage stays local
        until the next load().
        """
        note = self.active_note
        origin = self._origin_stage
        self.active_id = None
        self._origin_stage = None

        if note is None:
            return DropOutcome.IGNORED
        if target_id is None or self.resolve_target(target_id) is None:
            return DropOutcome.LOCAL_ONLY
        if note.stage == origin:
            return DropOutcome.UNCHANGED
        return self._commit(note)

    def _commit(self, note: Note) -> DropOutcome:
        try:
            self.store.update(note.id, note.fields())
        except STORE_ERRORS as e:
            logger.warning(f"Failed to update note {note.id}, resyncing board: {e}")
            if self.load():
                self._emit("resynced", note_id=note.id)
                return DropOutcome.RESYNCED
            return DropOutcome.RESYNC_FAILED
        self._emit("committed", note_id=note.id, stage=note.stage)
        return DropOutcome.COMMITTED

    # ── Form edits ───────────────────────────────────────────────────────

    def add_note(self, draft: NoteDraft) -> Note:
        """Create through the store, then append locally."""
        note = self.store.create(draft)
        self.notes.append(note)
        self._emit("added", note_id=note.id)
        return note

    def edit_note(self, note_id, fields: Dict[str, Any]) -> Note:
        """
        Write a form edit through the store and adopt the stored note.

        Errors propagate; the local list is not resynced.
        """
        updated = self.store.update(note_id, fields)
        key = str(updated.id)
        for i, note in enumerate(self.notes):
            if str(note.id) == key:
                self.notes[i] = updated
                break
        else:
            self.notes.append(updated)
        self._emit("edited", note_id=updated.id)
        return updated

    def remove_note(self, note_id) -> None:
        """Delete through the store, then drop the local copy."""
        self.store.delete(note_id)
        key = str(note_id)
        self.notes = [n for n in self.notes if str(n.id) != key]
        self._emit("removed", note_id=note_id)
