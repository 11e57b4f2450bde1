# notenest/logic/autosave.py
import sys
from contextlib import contextmanager

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from notenest.core.settings import settings_manager
from notenest.logic.persistence import SaveResult


class AutosaveManager(QObject):
    """Debounced persistence of the notebook.

    Every mutation restarts one single-shot timer, so a pending flush always
    supersedes earlier ones and captures the latest state when it fires.
    flush_now() bypasses the timer for import, export and shutdown.
    """
    saved = pyqtSignal()
    saveFailed = pyqtSignal(str) # error message

    def __init__(self, notebook, gateway, interval_ms=None, settings=None, parent=None):
        super().__init__(parent)
        self.notebook = notebook
        self.gateway = gateway
        self.settings = settings or settings_manager
        self._fixed_interval = interval_ms
        self._suppress_depth = 0
        self._dirty = False
        self.interval_ms = 0
        self.last_result = None

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self.flush_now)

        self.load_interval()
        self.settings.settingsChanged.connect(self._handle_settings_change)
        notebook.structureChanged.connect(self.schedule)
        notebook.contentChanged.connect(self.schedule)

    def _handle_settings_change(self, key):
        if key == "autosave_debounce_ms" and self._fixed_interval is None:
            self.load_interval()

    def load_interval(self):
        """Loads the debounce interval; an explicit constructor value wins."""
        if self._fixed_interval is not None:
            self.interval_ms = max(0, int(self._fixed_interval))
            return
        try:
            self.interval_ms = max(0, int(self.settings.get("autosave_debounce_ms")))
        except (ValueError, TypeError):
            print("Warning: Invalid autosave debounce in settings, using 400 ms.", file=sys.stderr)
            self.interval_ms = 400

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def is_suppressed(self) -> bool:
        return self._suppress_depth > 0

    def is_dirty(self) -> bool:
        return self._dirty

    def schedule(self, *_):
        """(Re)starts the debounce timer."""
        if self.is_suppressed():
            return
        self._dirty = True
        if self.interval_ms > 0:
            self._timer.start(self.interval_ms)

    def cancel(self):
        self._timer.stop()

    def flush_now(self) -> SaveResult | None:
        """Saves the current snapshot immediately, cancelling any pending flush.

        Failures are reported through saveFailed and the return value; they
        never propagate to the caller.
        """
        self._timer.stop()
        if self.is_suppressed():
            return None
        try:
            result = self.gateway.save(self.notebook.snapshot())
        except Exception as e:
            result = SaveResult(False, str(e))
        if result is None:
            result = SaveResult(True)

        self.last_result = result
        if result.success:
            self._dirty = False
            self.saved.emit()
        else:
            print(f"Error: Auto-save failed: {result.error}", file=sys.stderr)
            self.saveFailed.emit(result.error or "Unknown error")
        return result

    def shutdown(self) -> SaveResult | None:
        """Final flush: drops the pending timer first so nothing fires later.

        Skips the write when nothing changed since the last successful save.
        """
        self._timer.stop()
        self._suppress_depth = 0
        if not self._dirty:
            return None
        return self.flush_now()

    @contextmanager
    def suppressed(self):
        """Disables scheduling, e.g. while bulk-loading a snapshot."""
        self._suppress_depth += 1
        self._timer.stop()
        try:
            yield self
        finally:
            self._suppress_depth -= 1
