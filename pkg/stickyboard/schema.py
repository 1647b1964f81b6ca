"""
Sticky note schema.

Board layout:
  To Do → In Progress → Review → Done

Stages and colors are closed enumerations. A note's ``is_done`` flag is
independent of its stage.
"""
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any


class ValidationError(Exception):
    """Raised when note fields fail validation."""
    pass


class NoteNotFound(Exception):
    """Raised when a note id does not exist in the store."""

    def __init__(self, note_id):
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class Stage(Enum):
    """Fixed workflow buckets, in board order."""
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"

    @property
    def label(self) -> str:
        return STAGE_LABELS[self]

    @classmethod
    def ids(cls) -> List[str]:
        return [s.value for s in cls]

    @classmethod
    def lookup(cls, value: Any) -> Optional["Stage"]:
        """Return the stage whose id equals ``value``, or None."""
        if isinstance(value, Stage):
            return value
        try:
            return cls(str(value))
        except ValueError:
            return None


STAGE_LABELS = {
    Stage.TODO: "To Do",
    Stage.IN_PROGRESS: "In Progress",
    Stage.REVIEW: "Review",
    Stage.DONE: "Done",
}


class NoteColor(Enum):
    """Color tags a note can carry."""
    YELLOW = "yellow"
    PINK = "pink"
    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"

    @classmethod
    def ids(cls) -> List[str]:
        return [c.value for c in cls]


DEFAULT_COLOR = NoteColor.YELLOW
DEFAULT_STAGE = Stage.TODO

# Fields a client may send on create / update
EDITABLE_FIELDS = ("title", "content", "color", "stage", "isDone")


def parse_stage(value: Any) -> Stage:
    stage = Stage.lookup(value)
    if stage is None:
        raise ValidationError(f"Invalid stage: {value!r} (expected one of {Stage.ids()})")
    return stage


def parse_color(value: Any) -> NoteColor:
    if isinstance(value, NoteColor):
        return value
    try:
        return NoteColor(str(value))
    except ValueError:
        raise ValidationError(f"Invalid color: {value!r} (expected one of {NoteColor.ids()})")


def parse_title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("title is required")
    return value


def parse_content(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("content must be a string")
    return value


def parse_is_done(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationError("isDone must be a boolean")
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Note:
    """A sticky note on the board."""

    id: int
    title: str
    content: str = ""
    color: NoteColor = DEFAULT_COLOR
    stage: Stage = DEFAULT_STAGE
    is_done: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def matches(self, text: str) -> bool:
        """Case-insensitive substring match against title or content."""
        needle = text.lower()
        return needle in self.title.lower() or needle in self.content.lower()

    def fields(self) -> Dict[str, Any]:
        """The full editable field set, as sent on PUT."""
        return {
            "title": self.title,
            "content": self.content,
            "color": self.color.value,
            "stage": self.stage.value,
            "isDone": self.is_done,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON wire format."""
        data = {"id": self.id}
        data.update(self.fields())
        data["createdAt"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Note":
        """Deserialize from the JSON wire format."""
        created_at = data.get("createdAt")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        elif not isinstance(created_at, datetime):
            created_at = utc_now()

        return cls(
            id=int(data["id"]),
            title=data.get("title", ""),
            content=data.get("content") or "",
            color=parse_color(data.get("color") or DEFAULT_COLOR.value),
            stage=parse_stage(data.get("stage") or DEFAULT_STAGE.value),
            is_done=bool(data.get("isDone", False)),
            created_at=created_at,
        )


@dataclass
class NoteDraft:
    """Fields for a note that has not been stored yet."""

    title: str
    content: str = ""
    color: NoteColor = DEFAULT_COLOR
    stage: Stage = DEFAULT_STAGE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "color": self.color.value,
            "stage": self.stage.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NoteDraft":
        """Validate a create payload. Missing color/stage fall back to defaults."""
        return cls(
            title=parse_title(data.get("title")),
            content=parse_content(data.get("content")),
            color=parse_color(data["color"]) if data.get("color") else DEFAULT_COLOR,
            stage=parse_stage(data["stage"]) if data.get("stage") else DEFAULT_STAGE,
        )


def parse_patch(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an update payload.

    Only the keys present in ``data`` are returned, converted to their
    typed values. Unknown keys (``id``, ``createdAt``, ...) are dropped.
    """
    parsers = {
        "title": parse_title,
        "content": parse_content,
        "color": parse_color,
        "stage": parse_stage,
        "isDone": parse_is_done,
    }
    patch = {}
    for key in EDITABLE_FIELDS:
        if key in data:
            patch[key] = parsers[key](data[key])
    return patch
