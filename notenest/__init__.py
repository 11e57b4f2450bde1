"""NoteNest - hierarchical note store with trash and import/export."""

APP_NAME = "NoteNest"
ORG_NAME = "NoteNestOrg"

__version__ = "0.1.0"
