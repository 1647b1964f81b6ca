"""Shared test fixtures for the sticky board tests."""

import copy
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Ensure the repository root is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from pkg.stickyboard.client import StoreError
from pkg.stickyboard.schema import Note, NoteColor, NoteNotFound, Stage


class FakeStore:
    """In-memory stand-in for NoteClient that records every call."""

    def __init__(self, notes=None):
        self.notes = [copy.deepcopy(n) for n in (notes or [])]
        self.calls = []
        self.fail_update = False
        self.fail_list = False
        self._next_id = max((n.id for n in self.notes), default=0) + 1

    def list(self):
        self.calls.append(("list",))
        if self.fail_list:
            raise StoreError("list unavailable", status=500)
        return [copy.deepcopy(n) for n in self.notes]

    def create(self, draft):
        self.calls.append(("create", draft.title))
        note = Note(id=self._next_id, title=draft.title, content=draft.content,
                    color=draft.color, stage=draft.stage)
        self._next_id += 1
        self.notes.append(note)
        return copy.deepcopy(note)

    def update(self, note_id, fields):
        self.calls.append(("update", note_id, dict(fields)))
        if self.fail_update:
            raise StoreError("update rejected", status=500)
        for note in self.notes:
            if note.id == int(note_id):
                if "title" in fields:
                    note.title = fields["title"]
                if "content" in fields:
                    note.content = fields["content"]
                if "color" in fields:
                    note.color = NoteColor(fields["color"])
                if "stage" in fields:
                    note.stage = Stage(fields["stage"])
                if "isDone" in fields:
                    note.is_done = fields["isDone"]
                return copy.deepcopy(note)
        raise NoteNotFound(note_id)

    def delete(self, note_id):
        self.calls.append(("delete", note_id))
        before = len(self.notes)
        self.notes = [n for n in self.notes if n.id != int(note_id)]
        if len(self.notes) == before:
            raise NoteNotFound(note_id)

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]


def make_note(note_id, title, stage=Stage.TODO, color=NoteColor.YELLOW,
              content="", is_done=False, age_minutes=0):
    created = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc) - timedelta(minutes=age_minutes)
    return Note(id=note_id, title=title, content=content, color=color,
                stage=stage, is_done=is_done, created_at=created)


@pytest.fixture
def sample_notes():
    return [
        make_note(1, "Buy milk", Stage.TODO, NoteColor.YELLOW, age_minutes=3),
        make_note(2, "Ship v2", Stage.DONE, NoteColor.BLUE, age_minutes=2),
        make_note(3, "Write docs", Stage.IN_PROGRESS, NoteColor.GREEN,
                  content="API reference\nand examples", age_minutes=1),
    ]


@pytest.fixture
def fake_store(sample_notes):
    return FakeStore(sample_notes)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "notes.db")


@pytest.fixture
def server(db_path, monkeypatch):
    """Flask test client bound to a throwaway database."""
    monkeypatch.setenv("STICKYBOARD_DB", db_path)
    import notes_server
    notes_server.app.config["TESTING"] = True
    with notes_server.app.test_client() as client:
        yield client
