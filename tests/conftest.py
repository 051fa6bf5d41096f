# tests/conftest.py
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so "field_engine" and "flask_api" can be imported in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from field_engine.puzzle import PuzzleModel  # noqa: E402

QUADRANTS = [
    [0, 0, 1, 1],
    [0, 0, 1, 1],
    [2, 2, 3, 3],
    [2, 2, 3, 3],
]
SOLUTION = [[0, 1], [1, 3], [2, 0], [3, 2]]


def make_puzzle(prefills=None, regions=None, queens=None, date="2025-01-01"):
    return PuzzleModel.from_record({
        "date": date,
        "gridSize": 4,
        "regions": regions or QUADRANTS,
        "queens": queens or SOLUTION,
        "prefills": prefills or [],
    })


@pytest.fixture
def puzzle():
    return make_puzzle()


@pytest.fixture
def prefilled_puzzle():
    return make_puzzle(prefills=[[0, 1]])


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


class ManualTimer:
    """Stands in for threading.Timer; fires only when the test says so."""

    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.fn()


class ManualTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, fn):
        t = ManualTimer(delay, fn)
        self.timers.append(t)
        return t

    @property
    def last(self):
        return self.timers[-1]


@pytest.fixture
def timers():
    return ManualTimerFactory()
