# notenest/core/errors.py
class NoteStoreError(Exception):
    """Base exception for note store operations."""

    pass


class NotFound(NoteStoreError):
    """Raised when an operation references an unknown note id."""

    def __init__(self, note_id, message=None):
        self.note_id = note_id
        super().__init__(message or f"Note not found: {note_id}")


class InvalidMove(NoteStoreError):
    """Raised when a move would create a cycle or touch the trash."""

    pass


class ImportFailed(NoteStoreError):
    """Raised when a snapshot is malformed or contradictory."""

    pass
