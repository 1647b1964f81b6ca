#!/usr/bin/env python3
"""
Sticky Notes Board Server
-------------------------
Serves the board page and a JSON API backed by a single SQLite table.

Usage:
    python notes_server.py
    python notes_server.py --host 0.0.0.0 --port 3000 --db ./notes.db

Access:
    Local:  http://localhost:3000

API:
    GET    /notes        → JSON: [note, ...]           (newest first)
    POST   /notes        → JSON body: { title, content, color?, stage? }
                           Returns: note (201)
    GET    /notes/<id>   → JSON: note                  (404 if absent)
    PUT    /notes/<id>   → JSON body: { title, content, color, stage, isDone }
                           Returns: note
    DELETE /notes/<id>   → JSON: { message }
    GET    /board        → JSON: { stages: [{ id, title, count, notes }], total }
                           Query: search, color, stage ("all" disables)
    GET    /health       → JSON: { status, db, counts }
"""

import os
from pathlib import Path

from flask import Flask, jsonify, request, render_template_string

from pkg.stickyboard.config import Config
from pkg.stickyboard.schema import (
    NoteDraft, NoteNotFound, Stage, NoteColor, ValidationError, parse_patch,
)
from pkg.stickyboard.store import NoteStore
from pkg.stickyboard.view import ALL, BoardFilter, project, board_to_dict

app = Flask(__name__)


# ── Config ───────────────────────────────────────────────────────────────────

def get_db_path() -> Path:
    """STICKYBOARD_DB wins, then stickyboard.yaml, then the default path."""
    return Path(Config.load().db_path)


def get_store() -> NoteStore:
    return NoteStore(str(get_db_path()))


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


# ── Board page ───────────────────────────────────────────────────────────────

BOARD_TEMPLATE = """<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>Sticky Notes Board</title>
  <style>
    body { font-family: sans-serif; background: #f3f4f6; margin: 2rem; }
    .board { display: flex; gap: 1.5rem; }
    .column { flex: 1; min-width: 240px; background: #fff; border-radius: 8px; padding: 1rem; }
    .note { border-radius: 6px; padding: .75rem; margin-bottom: .75rem; }
    .note.done { opacity: .6; text-decoration: line-through; }
    .yellow { background: #fef08a; } .pink { background: #fbcfe8; }
    .blue { background: #bfdbfe; } .green { background: #bbf7d0; }
    .purple { background: #e9d5ff; }
    .content { white-space: pre-wrap; font-size: .9rem; }
  </style>
</head>
<body>
  <h1>Sticky Notes Board</h1>
  <form method="get">
    <input name="search" value="{{ criteria.search }}" placeholder="Search notes">
    <select name="color">
      <option value="all">All colors</option>
      {% for c in colors %}<option value="{{ c }}" {% if c == criteria.color %}selected{% endif %}>{{ c }}</option>{% endfor %}
    </select>
    <select name="stage">
      <option value="all">All stages</option>
      {% for s in stages %}<option value="{{ s.value }}" {% if s.value == criteria.stage %}selected{% endif %}>{{ s.label }}</option>{% endfor %}
    </select>
    <button type="submit">Filter</button>
  </form>
  <div class="board">
    {% for stage, notes in groups.items() %}
    <div class="column" id="{{ stage.value }}">
      <h2>{{ stage.label }} ({{ notes|length }})</h2>
      {% for note in notes %}
      <div class="note {{ note.color.value }}{% if note.is_done %} done{% endif %}" id="note-{{ note.id }}">
        <strong>{{ note.title }}</strong>
        <div class="content">{{ note.content[:100] }}{% if note.content|length > 100 %}...{% endif %}</div>
      </div>
      {% endfor %}
    </div>
    {% endfor %}
  </div>
</body>
</html>
"""


def _board_filter() -> BoardFilter:
    return BoardFilter.from_args(
        search=request.args.get("search"),
        color=request.args.get("color", ALL),
        stage=request.args.get("stage", ALL),
    )


@app.route("/")
def index():
    try:
        criteria = _board_filter()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    try:
        notes = get_store().list_all()
    except Exception as e:
        app.logger.warning(f"index error: {e}")
        notes = []
    return render_template_string(
        BOARD_TEMPLATE,
        groups=project(notes, criteria),
        criteria=criteria,
        colors=NoteColor.ids(),
        stages=list(Stage),
    )


# ── Notes API ────────────────────────────────────────────────────────────────

@app.route("/notes", methods=["GET"])
def api_list_notes():
    try:
        notes = get_store().list_all()
        return jsonify([n.to_dict() for n in notes])
    except Exception as e:
        app.logger.warning(f"list_notes error: {e}")
        return jsonify({"error": "Failed to fetch notes"}), 500


@app.route("/notes", methods=["POST"])
def api_create_note():
    try:
        draft = NoteDraft.from_dict(_json_body())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    try:
        note = get_store().create(draft)
        return jsonify(note.to_dict()), 201
    except Exception as e:
        app.logger.warning(f"create_note error: {e}")
        return jsonify({"error": "Failed to create note"}), 500


@app.route("/notes/<int:note_id>", methods=["GET"])
def api_get_note(note_id):
    try:
        note = get_store().get(note_id)
    except Exception as e:
        app.logger.warning(f"get_note error: {e}")
        return jsonify({"error": "Failed to fetch note"}), 500
    if not note:
        return jsonify({"error": "Note not found"}), 404
    return jsonify(note.to_dict())


@app.route("/notes/<int:note_id>", methods=["PUT"])
def api_update_note(note_id):
    try:
        patch = parse_patch(_json_body())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    try:
        note = get_store().update(note_id, patch)
        return jsonify(note.to_dict())
    except NoteNotFound:
        return jsonify({"error": "Note not found"}), 404
    except Exception as e:
        app.logger.warning(f"update_note error: {e}")
        return jsonify({"error": "Failed to update note"}), 500


@app.route("/notes/<int:note_id>", methods=["DELETE"])
def api_delete_note(note_id):
    try:
        get_store().delete(note_id)
        return jsonify({"message": "Note deleted successfully"})
    except NoteNotFound:
        return jsonify({"error": "Note not found"}), 404
    except Exception as e:
        app.logger.warning(f"delete_note error: {e}")
        return jsonify({"error": "Failed to delete note"}), 500


@app.route("/board")
def api_board():
    """Filtered notes grouped by stage, with per-stage counts."""
    try:
        criteria = _board_filter()
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    try:
        notes = get_store().list_all()
    except Exception as e:
        app.logger.warning(f"board error: {e}")
        return jsonify({"error": "Failed to fetch notes"}), 500
    return jsonify(board_to_dict(project(notes, criteria), criteria))


@app.route("/health")
def health():
    try:
        counts = get_store().count_by_stage()
    except Exception as e:
        app.logger.warning(f"health error: {e}")
        return jsonify({"status": "error", "db": str(get_db_path())}), 500
    return jsonify({"status": "ok", "db": str(get_db_path()), "counts": counts})


# ── Main ─────────────────────────────────────────────────────────────────────

def main():
    import argparse

    cfg = Config.load()

    parser = argparse.ArgumentParser(description="Sticky Notes Board Server")
    parser.add_argument("--host", default=cfg.host,
                        help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int, default=cfg.port)
    parser.add_argument("--db", help="Path to notes.db (overrides STICKYBOARD_DB env var)")
    args = parser.parse_args()

    if args.db:
        os.environ["STICKYBOARD_DB"] = args.db

    db_path = get_db_path()
    app.logger.setLevel(cfg.log_level.upper())

    print(f"""
╔═══════════════════════════════════════╗
║  Sticky Notes Board Server            ║
╠═══════════════════════════════════════╣
║  URL:  http://{args.host}:{args.port:<20}║
║  DB:   {str(db_path):<31}║
╚═══════════════════════════════════════╝
""")

    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
