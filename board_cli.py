#!/usr/bin/env python3
"""
Sticky Notes Board: terminal client
──────────────────────────────
Talks to notes_server.py through the board reconciler, so moves made here
follow the same optimistic-update and resync rules as the board UI.

Usage:
    python board_cli.py list [--search TEXT] [--color COLOR] [--stage STAGE]
    python board_cli.py add "Buy milk" --content "2 litres" --color blue
    python board_cli.py edit 3 --title "Buy oat milk" --done
    python board_cli.py rm 3
    python board_cli.py move 3 review          # drag note 3 onto the Review column
    python board_cli.py move 3 7               # drag note 3 onto note 7's column
    python board_cli.py settings               # show all settings
    python board_cli.py settings preferences.sortBy alphabetical
"""

import argparse
import json
import logging
import sys

from pkg.stickyboard.client import NoteClient, StoreError
from pkg.stickyboard.config import Config, ConfigError
from pkg.stickyboard.preferences import PreferencesStore, SettingsError, coerce_setting
from pkg.stickyboard.reconciler import BoardReconciler, DropOutcome
from pkg.stickyboard.schema import (
    NoteDraft, NoteNotFound, Stage, NoteColor, ValidationError,
    parse_color, parse_stage,
)
from pkg.stickyboard.view import ALL, BoardFilter, project, stage_counts

logger = logging.getLogger("board_cli")


def render_board(groups, show_timestamps: bool = True) -> str:
    """Plain-text board, one block per stage."""
    lines = []
    for stage, notes in groups.items():
        lines.append(f"── {stage.label} ({len(notes)}) " + "─" * 20)
        for note in notes:
            check = "✓" if note.is_done else " "
            line = f"  [{check}] #{note.id} {note.title}  ({note.color.value})"
            if show_timestamps:
                line += f"  {note.created_at.strftime('%Y-%m-%d %H:%M')}"
            lines.append(line)
            if note.content:
                first = note.content.splitlines()[0]
                lines.append(f"        {first[:60]}")
        lines.append("")
    return "\n".join(lines).rstrip()


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_list(board: BoardReconciler, prefs: PreferencesStore, args) -> int:
    if not board.load():
        print("Could not reach the notes server.", file=sys.stderr)
        return 1
    criteria = BoardFilter.from_args(args.search, args.color, args.stage)
    groups = project(board.notes, criteria, prefs.get("preferences", "sortBy"))
    print(render_board(groups, prefs.get("preferences", "showTimestamps")))
    if criteria.is_active():
        shown = sum(stage_counts(groups).values())
        print(f"\n{shown} of {len(board.notes)} notes match the filter")
    return 0


def cmd_add(board: BoardReconciler, prefs: PreferencesStore, args) -> int:
    draft = NoteDraft(
        title=args.title,
        content=args.content or "",
        color=parse_color(args.color) if args.color else NoteColor.YELLOW,
        stage=parse_stage(args.stage) if args.stage else Stage.TODO,
    )
    note = board.add_note(draft)
    print(f"Created #{note.id} in {note.stage.label}")
    return 0


def cmd_edit(board: BoardReconciler, prefs: PreferencesStore, args) -> int:
    fields = {}
    if args.title is not None:
        fields["title"] = args.title
    if args.content is not None:
        fields["content"] = args.content
    if args.color is not None:
        fields["color"] = parse_color(args.color).value
    if args.stage is not None:
        fields["stage"] = parse_stage(args.stage).value
    if args.done is not None:
        fields["isDone"] = args.done
    if not fields:
        print("Nothing to change.", file=sys.stderr)
        return 1
    note = board.edit_note(args.id, fields)
    print(f"Updated #{note.id}")
    return 0


def cmd_rm(board: BoardReconciler, prefs: PreferencesStore, args) -> int:
    if prefs.get("preferences", "confirmDelete") and not args.yes:
        answer = input(f"Delete note #{args.id}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Cancelled.")
            return 1
    board.remove_note(args.id)
    print(f"Deleted #{args.id}")
    return 0


def cmd_move(board: BoardReconciler, prefs: PreferencesStore, args) -> int:
    if not board.load():
        print("Could not reach the notes server.", file=sys.stderr)
        return 1
    if board.resolve_target(args.target) is None:
        print(f"Unknown target {args.target!r}: use a stage ({', '.join(Stage.ids())}) or a note id",
              file=sys.stderr)
        return 2
    if not board.drag_start(args.id):
        print(f"Note #{args.id} is not on the board.", file=sys.stderr)
        return 1
    board.drag_over(args.target)
    outcome = board.drag_end(args.target)
    note = board.find(args.id)

    if outcome == DropOutcome.COMMITTED:
        print(f"Moved #{args.id} to {note.stage.label}")
        return 0
    if outcome == DropOutcome.UNCHANGED:
        print(f"#{args.id} is already in {note.stage.label}")
        return 0
    if outcome == DropOutcome.RESYNCED:
        print(f"Move failed; board reloaded (#{args.id} is in {note.stage.label if note else '?'})",
              file=sys.stderr)
        return 1
    print(f"Move failed ({outcome.value})", file=sys.stderr)
    return 1


def cmd_settings(board: BoardReconciler, prefs: PreferencesStore, args) -> int:
    if args.reset:
        prefs.reset()
        print("Settings reset to defaults.")
        return 0
    if not args.key:
        print(json.dumps(prefs.current(), indent=2))
        return 0
    section, _, key = args.key.partition(".")
    if args.value is None:
        print(json.dumps(prefs.get(section, key)))
        return 0
    prefs.update(section, key, coerce_setting(section, key, args.value))
    print(f"{section}.{key} = {json.dumps(prefs.get(section, key))}")
    return 0


COMMANDS = {
    "list": cmd_list,
    "add": cmd_add,
    "edit": cmd_edit,
    "rm": cmd_rm,
    "move": cmd_move,
    "settings": cmd_settings,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sticky Notes Board client")
    parser.add_argument("--url", help="Notes server URL (overrides STICKYBOARD_URL)")
    parser.add_argument("--config", help="Path to stickyboard.yaml")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="Show the board")
    p.add_argument("--search", default="")
    p.add_argument("--color", default=ALL)
    p.add_argument("--stage", default=ALL)

    p = sub.add_parser("add", help="Create a note")
    p.add_argument("title")
    p.add_argument("--content")
    p.add_argument("--color")
    p.add_argument("--stage")

    p = sub.add_parser("edit", help="Edit a note")
    p.add_argument("id", type=int)
    p.add_argument("--title")
    p.add_argument("--content")
    p.add_argument("--color")
    p.add_argument("--stage")
    p.add_argument("--done", dest="done", action="store_true", default=None)
    p.add_argument("--not-done", dest="done", action="store_false")

    p = sub.add_parser("rm", help="Delete a note")
    p.add_argument("id", type=int)
    p.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    p = sub.add_parser("move", help="Drag a note onto a stage or another note")
    p.add_argument("id", type=int)
    p.add_argument("target", help="Stage id (todo, in-progress, review, done) or note id")

    p = sub.add_parser("settings", help="Show or change display settings")
    p.add_argument("key", nargs="?", help="section.key, e.g. appearance.theme")
    p.add_argument("value", nargs="?")
    p.add_argument("--reset", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = Config.load(args.config)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    if args.url:
        cfg.api_url = args.url.rstrip("/")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else cfg.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    board = BoardReconciler(NoteClient(cfg.api_url, timeout=cfg.request_timeout))
    prefs = PreferencesStore(cfg.settings_path)

    try:
        return COMMANDS[args.command](board, prefs, args)
    except (ValidationError, SettingsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except NoteNotFound as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except StoreError as e:
        logger.warning(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
