#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import sys
import os
import argparse
import traceback
from PyQt6.QtCore import QCoreApplication, QDateTime, QDir, Qt

from notenest import APP_NAME, ORG_NAME

# Set Application names early for QSettings/QStandardPaths
QCoreApplication.setApplicationName(APP_NAME)
QCoreApplication.setOrganizationName(ORG_NAME)

# Core imports read QSettings, so they come after the names are set
from notenest.core.errors import ImportFailed, NoteStoreError
from notenest.core.models import TRASH_ID, TRASH_TITLE
from notenest.core.notebook import Notebook
from notenest.core.settings import settings_manager
from notenest.logic.autosave import AutosaveManager
from notenest.logic.exporter import Exporter
from notenest.logic.persistence import JsonFileGateway


# --- Crash Reporting ---
CRASH_LOG_NAME = "notenest_crash.log"


def crash_log_path() -> str:
    """<data dir>/logs/notenest_crash.log, or the data dir itself if logs/ can't be made."""
    data_dir = settings_manager.data_dir()
    logs_dir = os.path.join(data_dir, "logs")
    if not QDir().mkpath(logs_dir):
        print(f"Warning: Could not create log directory {logs_dir}", file=sys.stderr)
        logs_dir = data_dir
    return os.path.join(logs_dir, CRASH_LOG_NAME)


def handle_unhandled_exception(exc_type, exc_value, exc_traceback):
    """Reports an unhandled exception on stderr and in the crash log, then exits."""
    stamp = QDateTime.currentDateTime().toString(Qt.DateFormat.ISODateWithMs)
    report = "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
    entry = f"--- {stamp} ---\n{APP_NAME} crashed:\n{report}\n"
    print(entry, file=sys.stderr)

    log_path = None
    try:
        log_path = crash_log_path()
        with open(log_path, "a", encoding='utf-8') as f:
            f.write(entry)
    except OSError as e:
        print(f"Error: Could not write crash log '{log_path}': {e}", file=sys.stderr)

    sys.exit(1)


def open_notebook(data_file=None, interval_ms=None):
    """Loads the stored notebook and wires autosave to it.

    A missing, unreadable or contradictory data file starts an empty notebook.
    """
    gateway = JsonFileGateway(data_file, legacy_file="" if data_file else None)
    notebook = Notebook()
    autosave = AutosaveManager(notebook, gateway, interval_ms=interval_ms)
    with autosave.suppressed():
        snapshot = gateway.load()
        if snapshot is not None:
            try:
                notebook.load_snapshot(snapshot)
            except ImportFailed as e:
                print(f"Error: Stored notes are inconsistent, starting empty: {e}", file=sys.stderr)
    return notebook, autosave


def format_tree(notebook: Notebook) -> list[str]:
    """Indented outline of the notebook, trash last."""
    lines = []

    def walk(note_id, depth, children_of):
        note = notebook.note(note_id)
        lines.append(f"{'  ' * depth}{note.title} [{note_id}]")
        for child_id in children_of(note_id):
            walk(child_id, depth + 1, children_of)

    for entry in notebook.root_entries():
        if entry == TRASH_ID:
            lines.append(f"{TRASH_TITLE} [{TRASH_ID}]")
            for root_id in notebook.trashed_roots():
                walk(root_id, 1, notebook.trashed_children)
        else:
            walk(entry, 0, notebook.children)
    return lines


def build_parser():
    parser = argparse.ArgumentParser(prog="notenest", description=f"{APP_NAME} note store")
    parser.add_argument("--data-file", help="Notes file to use instead of the app data location")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("tree", help="Print the notebook outline")

    exp = sub.add_parser("export", help="Export notes (with their descendants) to a file")
    exp.add_argument("ids", nargs="*", help="Note ids to export (default: everything)")
    exp.add_argument("-o", "--output", help="Output file (default: Documents/notes-backup.json)")

    imp = sub.add_parser("import", help="Merge notes from an exported file")
    imp.add_argument("file", help="Snapshot file to import")
    return parser


# --- Main Application Logic ---
def main(argv=None):
    args = build_parser().parse_args(argv)
    sys.excepthook = handle_unhandled_exception
    # Timers need an application object; reuse one if we are embedded
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])

    notebook, autosave = open_notebook(args.data_file)
    exporter = Exporter(notebook, autosave)
    command = args.command or "tree"

    try:
        if command == "tree":
            for line in format_tree(notebook):
                print(line)
        elif command == "export":
            ids = args.ids or notebook.children(None)
            result = exporter.export_to_file(ids, args.output)
            if not result.success:
                print(f"Error: Export failed: {result.error}", file=sys.stderr)
                return 1
        elif command == "import":
            result = exporter.import_from_file(args.file)
            if result is not None:
                print(f"Imported {len(result.imported_ids)} note(s) from {args.file}")
    except NoteStoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        autosave.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
