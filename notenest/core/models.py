# notenest/core/models.py
import copy
import math
import re
from dataclasses import dataclass, field

# Reserved keys, never valid generated ids
ROOT_ORDER_KEY = "__root__"
TRASH_ID = "trash-notebook"
TRASH_TITLE = "Trash"

NOTE_ID_PREFIX = "note-"
NOTE_ID_PATTERN = re.compile(r"^note-(\d+)$")

# Snapshot record keys handled explicitly; anything else goes to Note.extra
_KNOWN_KEYS = {"title", "content", "parent", "inTrash", "trashedAt", "originalParent"}


def make_note_id(number: int) -> str:
    return f"{NOTE_ID_PREFIX}{number}"


def note_id_number(note_id) -> int | None:
    """Returns n for ids shaped like 'note-<n>', otherwise None."""
    match = NOTE_ID_PATTERN.match(str(note_id))
    return int(match.group(1)) if match else None


def normalize_parent_key(parent_id) -> str:
    """Maps a parent id (None for top level) to its Order Index key."""
    return parent_id or ROOT_ORDER_KEY


def parent_from_key(key):
    return None if key in (None, ROOT_ORDER_KEY) else key


@dataclass
class Note:
    """A notebook or note. Both share one schema."""
    title: str
    content: str = ""
    parent: str | None = None
    in_trash: bool = False
    trashed_at: int | None = None
    # Only meaningful while in_trash; None then means "was top level"
    original_parent: str | None = None
    extra: dict = field(default_factory=dict)

    def clear_trash_state(self):
        self.in_trash = False
        self.trashed_at = None
        self.original_parent = None

    def copy(self) -> "Note":
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        data = copy.deepcopy(self.extra)
        data["title"] = self.title
        data["content"] = self.content
        data["parent"] = self.parent
        if self.in_trash:
            data["inTrash"] = True
            data["trashedAt"] = self.trashed_at
            data["originalParent"] = self.original_parent
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        in_trash = bool(data.get("inTrash", False))
        trashed_at = data.get("trashedAt") if in_trash else None
        # JSON allows NaN and Infinity, which no timestamp can hold
        if in_trash and (isinstance(trashed_at, bool) or not isinstance(trashed_at, (int, float))
                         or not math.isfinite(trashed_at)):
            trashed_at = 0
        title = data.get("title")
        content = data.get("content")
        return cls(
            title=str(title) if title is not None else "",
            content=str(content) if content is not None else "",
            parent=data.get("parent") or None,
            in_trash=in_trash,
            trashed_at=int(trashed_at) if in_trash else None,
            original_parent=(data.get("originalParent") or None) if in_trash else None,
            extra={k: copy.deepcopy(v) for k, v in data.items() if k not in _KNOWN_KEYS},
        )
