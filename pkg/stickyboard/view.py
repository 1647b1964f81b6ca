"""
Filtered / grouped board view.

Pure functions over a note list. The view is recomputed from scratch on
every call; nothing is cached.
"""
from dataclasses import dataclass
from typing import Iterable, List, Dict, Any, Optional

from .schema import Note, Stage, NoteColor, parse_stage, parse_color

ALL = "all"

SORT_KEYS = ("modified", "created", "alphabetical", "color")


@dataclass
class BoardFilter:
    """Active filter predicates. Empty search or ``all`` disables a predicate."""

    search: str = ""
    color: str = ALL
    stage: str = ALL

    @classmethod
    def from_args(cls, search: Optional[str] = None, color: Optional[str] = None,
                  stage: Optional[str] = None) -> "BoardFilter":
        """Build a filter from raw query values, validating color/stage."""
        color = (color or ALL).strip().lower()
        stage = (stage or ALL).strip().lower()
        if color != ALL:
            parse_color(color)
        if stage != ALL:
            parse_stage(stage)
        return cls(search=(search or "").strip(), color=color, stage=stage)

    def is_active(self) -> bool:
        return bool(self.search) or self.color != ALL or self.stage != ALL

    def accepts(self, note: Note) -> bool:
        if self.search and not note.matches(self.search):
            return False
        if self.color != ALL and note.color.value != self.color:
            return False
        if self.stage != ALL and note.stage.value != self.stage:
            return False
        return True


def filter_notes(notes: Iterable[Note], criteria: Optional[BoardFilter] = None) -> List[Note]:
    """Notes matching every active predicate, in their original order."""
    if criteria is None:
        return list(notes)
    return [n for n in notes if criteria.accepts(n)]


def sort_notes(notes: Iterable[Note], sort_by: str = "modified") -> List[Note]:
    """
    Order notes for display.

    ``modified`` keeps the incoming order (the store returns newest first and
    keeps no modification time). Sorting is stable.
    """
    notes = list(notes)
    if sort_by == "created":
        return sorted(notes, key=lambda n: n.created_at, reverse=True)
    if sort_by == "alphabetical":
        return sorted(notes, key=lambda n: n.title.lower())
    if sort_by == "color":
        order = {c: i for i, c in enumerate(NoteColor)}
        return sorted(notes, key=lambda n: order[n.color])
    return notes


def group_by_stage(notes: Iterable[Note]) -> Dict[Stage, List[Note]]:
    """Bucket notes into all four stages, in board order."""
    groups = {stage: [] for stage in Stage}
    for note in notes:
        groups[note.stage].append(note)
    return groups


def project(notes: Iterable[Note], criteria: Optional[BoardFilter] = None,
            sort_by: str = "modified") -> Dict[Stage, List[Note]]:
    """Filter, then sort, then group. Counts per stage reflect the filter."""
    return group_by_stage(sort_notes(filter_notes(notes, criteria), sort_by))


def stage_counts(groups: Dict[Stage, List[Note]]) -> Dict[str, int]:
    return {stage.value: len(items) for stage, items in groups.items()}


def board_to_dict(groups: Dict[Stage, List[Note]],
                  criteria: Optional[BoardFilter] = None) -> Dict[str, Any]:
    """JSON shape served by GET /board."""
    return {
        "stages": [
            {
                "id": stage.value,
                "title": stage.label,
                "count": len(items),
                "notes": [n.to_dict() for n in items],
            }
            for stage, items in groups.items()
        ],
        "counts": stage_counts(groups),
        "total": sum(len(items) for items in groups.values()),
        "filtered": criteria is not None and criteria.is_active(),
    }
