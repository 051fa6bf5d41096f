from __future__ import annotations
from collections import deque
from typing import Callable, Deque, Iterable, List, Optional

from field_engine.models import RC, CellMark
from field_engine.puzzle import PuzzleModel

HISTORY_LIMIT = 50

Cells = List[List[CellMark]]

_TO_CHAR = {CellMark.EMPTY: ".", CellMark.MARKED: "x", CellMark.PLACED: "F"}
_FROM_CHAR = {".": CellMark.EMPTY, "0": CellMark.EMPTY, "x": CellMark.MARKED, "X": CellMark.MARKED,
              "F": CellMark.PLACED, "f": CellMark.PLACED}


def parse_rows(rows: Iterable[str], grid_size: int) -> Cells:
    rows = [row.strip() for row in rows if row.strip()]
    if len(rows) != grid_size:
        raise ValueError(f"Expected {grid_size} rows, got {len(rows)}")
    cells: Cells = []
    for r, row in enumerate(rows):
        row = "".join(ch for ch in row if not ch.isspace())
        if len(row) != grid_size:
            raise ValueError(f"Row {r} must have {grid_size} characters, got {len(row)}")
        marks = []
        for ch in row:
            if ch not in _FROM_CHAR:
                raise ValueError(f"Invalid char '{ch}' in board row {r}.")
            marks.append(_FROM_CHAR[ch])
        cells.append(marks)
    return cells


class BoardState:
    """
    Per-session board:
    - cells[r][c] = CellMark
    - history = up to 50 earlier copies of cells, most recent last
    - move_count / hint_count / start_time (epoch ms) / completed
    """

    def __init__(self, grid_size: int, prefills: Iterable[RC], start_time: int = 0):
        self.grid_size = grid_size
        self.prefills = frozenset(prefills)
        self.cells: Cells = []
        self.history: Deque[Cells] = deque(maxlen=HISTORY_LIMIT)
        self.move_count = 0
        self.hint_count = 0
        self.start_time = start_time
        self.completed = False
        self.restore_initial(start_time)

    @staticmethod
    def initial(puzzle: PuzzleModel, clock: Optional[Callable[[], int]] = None) -> "BoardState":
        start = clock() if clock is not None else 0
        return BoardState(puzzle.grid_size, puzzle.prefills, start)

    @staticmethod
    def from_strings(puzzle: PuzzleModel, rows: Iterable[str]) -> "BoardState":
        """Board with the given marks; prefilled cells are forced to PLACED."""
        b = BoardState.initial(puzzle)
        b.cells = parse_rows(rows, puzzle.grid_size)
        for (r, c) in b.prefills:
            b.cells[r][c] = CellMark.PLACED
        return b

    def restore_initial(self, start_time: Optional[int] = None) -> None:
        n = self.grid_size
        self.cells = [[CellMark.EMPTY for _ in range(n)] for _ in range(n)]
        for (r, c) in self.prefills:
            if 0 <= r < n and 0 <= c < n:
                self.cells[r][c] = CellMark.PLACED
        self.history.clear()
        self.move_count = 0
        self.hint_count = 0
        self.completed = False
        if start_time is not None:
            self.start_time = start_time

    def snapshot(self) -> Cells:
        return [row[:] for row in self.cells]

    def push_history(self) -> None:
        # deque(maxlen) drops the oldest entry once full
        self.history.append(self.snapshot())

    def pop_history(self) -> Optional[Cells]:
        if not self.history:
            return None
        return self.history.pop()

    def mark_at(self, r: int, c: int) -> CellMark:
        return self.cells[r][c]

    def is_prefilled(self, r: int, c: int) -> bool:
        return (r, c) in self.prefills

    def cycle(self, r: int, c: int) -> CellMark:
        self.cells[r][c] = self.cells[r][c].next()
        return self.cells[r][c]

    def placements(self) -> List[RC]:
        n = self.grid_size
        return [(r, c) for r in range(n) for c in range(n) if self.cells[r][c] == CellMark.PLACED]

    def to_strings(self) -> List[str]:
        return ["".join(_TO_CHAR[m] for m in row) for row in self.cells]

    def pretty(self) -> str:
        lines = []
        for r in range(self.grid_size):
            row = []
            for c in range(self.grid_size):
                m = self.cells[r][c]
                if m == CellMark.PLACED and (r, c) in self.prefills:
                    row.append("*")
                else:
                    row.append(_TO_CHAR[m])
            lines.append(" ".join(row))
        return "\n".join(lines)
