# tests/test_session.py
from conftest import make_puzzle
from field_engine.board import HISTORY_LIMIT
from field_engine.models import CellMark, HintType, MessageKind, ViolationKind
from field_engine.puzzle import PuzzleModel
from field_engine.session import GameSession, SessionStatus

SOLUTION_CELLS = [(0, 1), (1, 3), (2, 0), (3, 2)]


def _session(puzzle, clock=None, **kw):
    kw.setdefault("debounce_seconds", 0)
    return GameSession(puzzle, clock=clock, **kw)


def _place(session, r, c):
    # empty -> X -> football
    session.click(r, c)
    session.click(r, c)


def _solve(session):
    for (r, c) in SOLUTION_CELLS:
        if not session.puzzle.is_prefilled(r, c):
            _place(session, r, c)


def test_three_clicks_cycle_back(puzzle):
    s = _session(puzzle)
    seen = []
    for _ in range(3):
        assert s.click(2, 2)
        seen.append(s.board.mark_at(2, 2))
    assert seen == [CellMark.MARKED, CellMark.PLACED, CellMark.EMPTY]
    assert s.board.move_count == 3


def test_prefilled_cell_ignores_clicks(prefilled_puzzle):
    s = _session(prefilled_puzzle)
    s.click(3, 3)
    s.click(3, 3)
    for _ in range(4):
        assert not s.click(0, 1)
        assert s.board.mark_at(0, 1) == CellMark.PLACED
    assert s.board.move_count == 2


def test_out_of_range_click_is_ignored(puzzle):
    s = _session(puzzle)
    assert not s.click(4, 0)
    assert not s.click(-1, 2)
    assert s.board.move_count == 0


def test_undo_back_to_initial(prefilled_puzzle):
    s = _session(prefilled_puzzle)
    initial = s.board.snapshot()
    for (r, c) in [(0, 0), (3, 3), (3, 3), (2, 2), (0, 0), (1, 2)]:
        s.click(r, c)
    while s.undo():
        pass
    assert s.board.snapshot() == initial
    assert not s.undo()


def test_history_keeps_latest_fifty():
    size = 8
    cols = [0, 2, 4, 6, 1, 3, 5, 7]
    p = PuzzleModel("2025-02-01", size, [[r] * size for r in range(size)],
                    frozenset((r, c) for r, c in enumerate(cols)), frozenset())
    s = _session(p)
    cells = [(r, c) for r in range(size) for c in range(size)][:60]
    for (r, c) in cells:
        s.click(r, c)

    assert len(s.board.history) == HISTORY_LIMIT
    marked = lambda snap: sum(1 for row in snap for m in row if m == CellMark.MARKED)
    # oldest kept snapshot was taken before click 11, newest before click 60
    assert marked(s.board.history[0]) == 10
    assert marked(s.board.history[-1]) == 59


def test_win_completes_session_and_reports_result(puzzle, clock):
    results = []
    s = _session(puzzle, clock=clock, on_complete=results.append)
    s.click(3, 3)
    s.click(3, 3)
    s.click(3, 3)  # back to empty
    s.request_hint()
    clock.advance(10_000)
    _solve(s)

    assert s.status == SessionStatus.COMPLETED
    assert s.board.completed
    assert s.info.kind == MessageKind.SUCCESS
    assert len(results) == 1
    r = results[0]
    assert r.moves == 11
    assert r.hints_used == 1
    assert r.elapsed_ms == 10_000 + 15_000
    assert r.score == -25_000
    assert r.date == puzzle.date


def test_completed_session_rejects_clicks_and_hints(puzzle):
    s = _session(puzzle)
    _solve(s)
    assert not s.click(0, 0)
    assert s.board.mark_at(0, 0) == CellMark.EMPTY
    assert s.request_hint() is None
    assert s.board.hint_count == 0


def test_undo_reopens_a_completed_session(puzzle):
    s = _session(puzzle)
    _solve(s)
    assert s.undo()
    assert s.status == SessionStatus.ACTIVE
    assert s.board.mark_at(3, 2) == CellMark.MARKED
    assert s.click(0, 0)


def test_hint_counts_even_when_nothing_found():
    p = make_puzzle(regions=[[0] * 4 for _ in range(4)])
    s = _session(p)
    for (r, c) in p.all_cells():
        s.click(r, c)
    for (r, c) in SOLUTION_CELLS:
        s.click(r, c)
    assert not s.board.completed
    assert s.request_hint() is None
    assert s.board.hint_count == 1


def test_hint_sets_highlights_and_click_clears_them(puzzle):
    s = _session(puzzle)
    _place(s, 0, 0)
    h = s.request_hint()
    assert h.hint_type == HintType.WRONG_FOOTBALL
    assert s.highlights == frozenset({(0, 0)})
    assert s.info.text == "This football is in the wrong position"
    assert s.board.hint_count == 1

    s.click(3, 3)
    assert s.highlights == frozenset()


def test_reset_restores_initial_state(prefilled_puzzle, clock):
    s = _session(prefilled_puzzle, clock=clock)
    s.click(2, 2)
    s.click(2, 2)
    s.request_hint()
    clock.advance(5000)
    s.reset()
    assert s.board.placements() == [(0, 1)]
    assert s.board.move_count == 0
    assert s.board.hint_count == 0
    assert len(s.board.history) == 0
    assert s.board.start_time == clock.now
    assert not s.board.completed


def test_clicks_are_debounced(puzzle, timers):
    s = GameSession(puzzle, debounce_seconds=0.3, timer_factory=timers)
    for _ in range(2):
        s.click(0, 0)
    for _ in range(2):
        s.click(0, 2)

    assert len(timers.timers) == 4
    assert all(t.cancelled for t in timers.timers[:-1])
    assert timers.last.delay == 0.3
    assert s.evaluation.violations == {}
    assert s.evaluation_pending

    timers.last.fire()
    assert not s.evaluation_pending
    assert s.evaluation.violations == {(0, c): ViolationKind.ROW for c in range(4)}


def test_undo_evaluates_immediately_and_cancels_timer(puzzle, timers):
    s = GameSession(puzzle, debounce_seconds=0.3, timer_factory=timers)
    _place(s, 0, 0)
    timers.last.fire()
    _place(s, 0, 2)
    pending = timers.last

    s.undo()  # (0, 2) back to X
    assert pending.cancelled
    assert s.evaluation.violations == {}
    assert not s.evaluation_pending


def test_load_puzzle_drops_stale_evaluation(puzzle, timers):
    s = GameSession(puzzle, debounce_seconds=0.3, timer_factory=timers)
    _place(s, 0, 0)
    _place(s, 0, 2)
    stale = timers.last

    other = make_puzzle(date="2025-03-01", prefills=[[2, 0]])
    s.load_puzzle(other)
    assert stale.cancelled
    stale.fn()  # a timer that fired anyway must not touch the new board
    assert s.evaluation.violations == {}
    assert s.board.placements() == [(2, 0)]
    assert s.puzzle is other


def test_flush_runs_pending_evaluation(puzzle, timers):
    s = GameSession(puzzle, debounce_seconds=0.3, timer_factory=timers)
    _solve(s)
    assert not s.board.completed
    assert s.flush()
    assert s.board.completed
    assert not s.flush()


def test_close_cancels_timer(puzzle, timers):
    s = GameSession(puzzle, debounce_seconds=0.3, timer_factory=timers)
    s.click(1, 1)
    s.close()
    assert timers.last.cancelled
    assert not s.evaluation_pending


def test_snapshot_shape(prefilled_puzzle):
    s = _session(prefilled_puzzle)
    _place(s, 1, 1)
    snap = s.snapshot()
    assert snap["gridSize"] == 4
    assert snap["cells"][0][1] == "F"
    assert snap["cells"][1][1] == "F"
    # same column, same region and touching
    assert snap["violations"]["0,1"] == "ADJACENT"
    assert snap["violations"]["1,1"] == "ADJACENT"
    assert snap["violations"]["1,0"] == "REGION"
    assert snap["violations"]["3,1"] == "COLUMN"
    assert snap["message"]["kind"] == "CONFLICT"
    assert snap["completed"] is False
    assert snap["moveCount"] == 2


def test_reset_evaluates_immediately_and_cancels_timer(puzzle, timers):
    s = GameSession(puzzle, debounce_seconds=0.3, timer_factory=timers)
    _place(s, 0, 0)
    _place(s, 0, 2)
    pending = timers.last
    assert s.evaluation_pending

    s.reset()
    assert pending.cancelled
    assert s.evaluation.violations == {}
    assert not s.evaluation_pending
    pending.fn()  # a timer that fired anyway changes nothing
    assert s.board.placements() == []
