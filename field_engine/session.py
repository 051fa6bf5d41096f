from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from field_engine.board import BoardState
from field_engine.debounce import Debouncer
from field_engine.evaluator import evaluate
from field_engine.hints import generate_hint
from field_engine.models import Evaluation, GameResult, Hint, Highlights, InfoMessage, MessageKind
from field_engine.puzzle import PuzzleModel
from field_engine.results import compute_result

log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

DEFAULT_INFO = InfoMessage("Click on cells to place X or a football. Use hints if you get stuck!")
IDLE_INFO = InfoMessage("Use hints if you get stuck!")
WIN_INFO = InfoMessage("Congratulations! You solved the puzzle!", MessageKind.SUCCESS)


class SessionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


def now_ms() -> int:
    return int(time.time() * 1000)


class GameSession:
    """
    Owns one BoardState and is the only place it is mutated.
    Clicks schedule a debounced evaluation; undo/reset evaluate at once.
    on_complete(result) is called each time the board enters the won state.
    """

    def __init__(
        self,
        puzzle: PuzzleModel,
        clock: Optional[Callable[[], int]] = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        on_complete: Optional[Callable[[GameResult], None]] = None,
        timer_factory=None,
    ):
        self.clock = clock or now_ms
        self.on_complete = on_complete
        self.debounce_seconds = debounce_seconds
        self._lock = threading.RLock()
        self._debouncer = Debouncer(debounce_seconds, self._debounced_evaluate, timer_factory)
        self._generation = 0
        self._scheduled_generation = 0

        self.puzzle = puzzle
        self.board = BoardState.initial(puzzle, self.clock)
        self.evaluation = Evaluation()
        self.highlights: Highlights = frozenset()
        self.info = DEFAULT_INFO
        self.last_hint: Optional[Hint] = None
        self.result: Optional[GameResult] = None

    # ---------- state ----------
    @property
    def status(self) -> SessionStatus:
        return SessionStatus.COMPLETED if self.board.completed else SessionStatus.ACTIVE

    @property
    def evaluation_pending(self) -> bool:
        return self._debouncer.pending

    # ---------- gameplay ----------
    def click(self, r: int, c: int) -> bool:
        with self._lock:
            if self.board.completed:
                return False
            if not self.puzzle.in_bounds(r, c) or self.puzzle.is_prefilled(r, c):
                return False

            self._clear_hint()
            self.board.push_history()
            mark = self.board.cycle(r, c)
            self.board.move_count += 1
            log.debug("click (%d, %d) -> %r, moves=%d", r, c, mark.value, self.board.move_count)

            if self.debounce_seconds <= 0:
                self.evaluate_now()
            else:
                self._scheduled_generation = self._generation
                self._debouncer.schedule()
            return True

    def undo(self) -> bool:
        with self._lock:
            previous = self.board.pop_history()
            if previous is None:
                return False
            self._debouncer.cancel()
            self.board.cells = previous
            self.board.completed = False
            self.evaluation = Evaluation()
            self._clear_hint()
            self.result = None
            self.evaluate_now()
            return True

    def reset(self) -> None:
        with self._lock:
            self._debouncer.cancel()
            self.board.restore_initial(self.clock())
            self.evaluation = Evaluation()
            self._clear_hint()
            self.result = None
            self.evaluate_now()
            self.info = DEFAULT_INFO

    def request_hint(self) -> Optional[Hint]:
        with self._lock:
            # a pending click must be reflected before judging completion
            self.flush()
            if self.board.completed:
                return None

            # counted even when nothing is found
            self.board.hint_count += 1
            h = generate_hint(self.board, self.puzzle)
            self.last_hint = h
            if h is None:
                log.debug("no hint available after %d requests", self.board.hint_count)
                self.highlights = frozenset()
                return None

            self.highlights = frozenset(h.cells)
            self.info = InfoMessage(h.message, h.message_kind)
            return h

    def load_puzzle(self, puzzle: PuzzleModel) -> None:
        with self._lock:
            self._debouncer.cancel()
            self._generation += 1
            self.puzzle = puzzle
            self.board = BoardState.initial(puzzle, self.clock)
            self.evaluation = Evaluation()
            self.highlights = frozenset()
            self.last_hint = None
            self.result = None
            self.info = DEFAULT_INFO
            log.debug("loaded puzzle %s (%dx%d)", puzzle.date, puzzle.grid_size, puzzle.grid_size)

    def close(self) -> None:
        with self._lock:
            self._debouncer.cancel()
            self._generation += 1

    def flush(self) -> bool:
        """Run a pending debounced evaluation immediately."""
        with self._lock:
            return self._debouncer.flush()

    # ---------- evaluation ----------
    def evaluate_now(self) -> Evaluation:
        with self._lock:
            ev = evaluate(self.board, self.puzzle)
            self.evaluation = ev
            was_completed = self.board.completed
            self.board.completed = ev.is_win

            if ev.violations:
                self.info = InfoMessage(ev.message, MessageKind.CONFLICT)
            elif ev.is_win:
                self.info = WIN_INFO
            else:
                self.info = IDLE_INFO

            if ev.is_win and not was_completed:
                self.result = compute_result(self.board, self.puzzle.date, self.clock())
                log.info("puzzle %s completed: moves=%d hints=%d elapsed_ms=%d",
                         self.puzzle.date, self.result.moves, self.result.hints_used, self.result.elapsed_ms)
                if self.on_complete is not None:
                    self.on_complete(self.result)
            return ev

    def _debounced_evaluate(self) -> None:
        with self._lock:
            if self._scheduled_generation != self._generation:
                return
            self.evaluate_now()

    def _clear_hint(self) -> None:
        self.highlights = frozenset()
        self.last_hint = None

    # ---------- rendering view ----------
    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            b = self.board
            return {
                "date": self.puzzle.date,
                "gridSize": self.puzzle.grid_size,
                "cells": [[m.value for m in row] for row in b.cells],
                "prefills": [list(rc) for rc in sorted(self.puzzle.prefills)],
                "violations": {f"{r},{c}": k.value for (r, c), k in sorted(self.evaluation.violations.items())},
                "highlights": [list(rc) for rc in sorted(self.highlights)],
                "message": {"text": self.info.text, "kind": self.info.kind.value},
                "moveCount": b.move_count,
                "hintCount": b.hint_count,
                "historySize": len(b.history),
                "startTime": b.start_time,
                "completed": b.completed,
                "status": self.status.value,
                "evaluationPending": self.evaluation_pending,
                "result": None if self.result is None else {
                    "moves": self.result.moves,
                    "hintsUsed": self.result.hints_used,
                    "elapsedMs": self.result.elapsed_ms,
                    "score": self.result.score,
                    "time": self.result.time_display,
                },
            }
