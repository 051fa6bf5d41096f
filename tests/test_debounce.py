# tests/test_debounce.py
import threading

from field_engine.debounce import Debouncer


def test_schedule_replaces_pending_timer(timers):
    calls = []
    d = Debouncer(0.3, lambda: calls.append(1), timers)
    d.schedule()
    first = timers.last
    d.schedule()
    assert first.cancelled
    assert timers.last.started

    first.fn()  # stale timer
    assert calls == []
    timers.last.fire()
    assert calls == [1]
    assert not d.pending


def test_cancel_and_flush(timers):
    calls = []
    d = Debouncer(0.3, lambda: calls.append(1), timers)
    assert not d.flush()
    d.schedule()
    d.cancel()
    assert not d.pending
    timers.last.fn()
    assert calls == []

    d.schedule()
    assert d.flush()
    assert calls == [1]


def test_real_timer_fires_once():
    done = threading.Event()
    calls = []

    def cb():
        calls.append(1)
        done.set()

    d = Debouncer(0.01, cb)
    for _ in range(5):
        d.schedule()
    assert done.wait(2)
    assert calls == [1]
