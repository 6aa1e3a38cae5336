"""Shared fixtures for SleightMap tests."""

import logging
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ScriptedRng:
    """Random source that replays fixed d20 faces and donor indexes."""

    def __init__(self, faces=(), picks=()):
        self.faces = list(faces)
        self.picks = list(picks)
        self.offered = []

    def roll_single(self, sides):
        return self.faces.pop(0)

    def weighted_pick(self, items, weights):
        self.offered.append((list(items), list(weights)))
        index = self.picks.pop(0) if self.picks else 0
        return items[index]


@pytest.fixture
def scripted_rng():
    return ScriptedRng


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo configure_logging() calls made by the CLI under test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
