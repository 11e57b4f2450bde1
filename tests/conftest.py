import itertools
import os

# Qt must not look for a display while testing
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtCore import QSettings

from notenest.core.notebook import Notebook
from notenest.core.settings import SettingsManager
from notenest.logic.persistence import PersistenceGateway, SaveResult


class MemoryGateway(PersistenceGateway):
    """Keeps saved snapshots in a list instead of on disk."""

    def __init__(self, stored=None, fail_with=None, raise_with=None):
        self.stored = stored
        self.saved = []
        self.fail_with = fail_with
        self.raise_with = raise_with

    def load(self):
        return self.stored

    def save(self, snapshot):
        if self.raise_with is not None:
            raise self.raise_with
        if self.fail_with is not None:
            return SaveResult(False, self.fail_with)
        self.saved.append(snapshot)
        self.stored = snapshot
        return SaveResult(True)


@pytest.fixture
def clock():
    ticks = itertools.count(1000)
    return lambda: next(ticks)


@pytest.fixture
def notebook(clock) -> Notebook:
    return Notebook(clock=clock)


@pytest.fixture
def tree(notebook) -> dict:
    """A (top level) -> B, C and D (top level), displayed as [A, D]."""
    d = notebook.create("D")
    a = notebook.create("A")
    b = notebook.create("B", a)
    c = notebook.create("C", a)
    return {"A": a, "B": b, "C": c, "D": d}


@pytest.fixture
def settings(tmp_path) -> SettingsManager:
    q_settings = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    return SettingsManager(q_settings)


@pytest.fixture
def gateway() -> MemoryGateway:
    return MemoryGateway()


@pytest.fixture
def make_gateway():
    return MemoryGateway


@pytest.fixture
def signal_log():
    """Collects emitted signal arguments: log.connect(signal, 'name')."""

    class SignalLog:
        def __init__(self):
            self.events = []

        def connect(self, signal, name):
            signal.connect(lambda *args: self.events.append((name,) + args))

        def names(self):
            return [event[0] for event in self.events]

    return SignalLog()
