"""
Note storage backend (SQLite).

Provides the CRUD operations the REST API exposes. Errors from SQLite are
not swallowed here; the server maps them to HTTP 500.
"""
import sqlite3
import logging
from pathlib import Path
from typing import List, Optional, Dict, Any
from datetime import datetime
from .schema import Note, NoteDraft, NoteNotFound, Stage, NoteColor, utc_now

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".local" / "share" / "stickyboard" / "notes.db"


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class NoteStore:
    """SQLite-backed store for sticky notes."""

    def __init__(self, db_path: str = None):
        """Initialize store and create the table if needed."""
        if db_path is None:
            db_path = str(DEFAULT_DB_PATH)
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL DEFAULT '',
                    color TEXT NOT NULL DEFAULT 'yellow',
                    stage TEXT NOT NULL DEFAULT 'todo',
                    is_done INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_notes_stage ON notes(stage)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_notes_created ON notes(created_at)")
            conn.commit()

    def list_all(self) -> List[Note]:
        """List all notes, newest first."""
        with _connect(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM notes ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [self._row_to_note(row) for row in rows]

    def get(self, note_id: int) -> Optional[Note]:
        """Retrieve a note by id, or None if absent."""
        with _connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM notes WHERE id = ?", (note_id,)
            ).fetchone()
        return self._row_to_note(row) if row else None

    def create(self, draft: NoteDraft) -> Note:
        """Insert a new note and return it with its assigned id."""
        created_at = utc_now()
        with _connect(self.db_path) as conn:
            cur = conn.execute("""
                INSERT INTO notes (title, content, color, stage, is_done, created_at)
                VALUES (?, ?, ?, ?, 0, ?)
            """, (
                draft.title,
                draft.content,
                draft.color.value,
                draft.stage.value,
                created_at.isoformat(),
            ))
            conn.commit()
            note_id = cur.lastrowid
        logger.debug(f"Created note {note_id} in {draft.stage.value}")
        return Note(
            id=note_id,
            title=draft.title,
            content=draft.content,
            color=draft.color,
            stage=draft.stage,
            is_done=False,
            created_at=created_at,
        )

    def update(self, note_id: int, patch: Dict[str, Any]) -> Note:
        """
        Apply a validated patch (see ``schema.parse_patch``).

        Fields missing from the patch keep their stored value. ``id`` and
        ``created_at`` are never written. Raises NoteNotFound.
        """
        columns = {
            "title": ("title", lambda v: v),
            "content": ("content", lambda v: v),
            "color": ("color", lambda v: v.value),
            "stage": ("stage", lambda v: v.value),
            "isDone": ("is_done", lambda v: 1 if v else 0),
        }
        assignments = []
        params = []
        for key, value in patch.items():
            column, convert = columns[key]
            assignments.append(f"{column} = ?")
            params.append(convert(value))

        with _connect(self.db_path) as conn:
            if assignments:
                cur = conn.execute(
                    f"UPDATE notes SET {', '.join(assignments)} WHERE id = ?",
                    (*params, note_id),
                )
                conn.commit()
                if cur.rowcount == 0:
                    raise NoteNotFound(note_id)
            row = conn.execute(
                "SELECT * FROM notes WHERE id = ?", (note_id,)
            ).fetchone()
        if not row:
            raise NoteNotFound(note_id)
        return self._row_to_note(row)

    def delete(self, note_id: int) -> None:
        """Delete a note. Raises NoteNotFound if there was nothing to delete."""
        with _connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            conn.commit()
        if cur.rowcount == 0:
            raise NoteNotFound(note_id)

    def count_by_stage(self) -> Dict[str, int]:
        """Number of notes per stage, every stage present."""
        counts = {stage.value: 0 for stage in Stage}
        with _connect(self.db_path) as conn:
            for row in conn.execute("SELECT stage, COUNT(*) FROM notes GROUP BY stage"):
                counts[row[0]] = row[1]
        return counts

    def _row_to_note(self, row: sqlite3.Row) -> Note:
        data = dict(row)
        return Note(
            id=data["id"],
            title=data["title"],
            content=data.get("content") or "",
            color=NoteColor(data["color"]),
            stage=Stage(data["stage"]),
            is_done=bool(data["is_done"]),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
