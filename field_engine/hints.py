from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from field_engine.board import BoardState
from field_engine.models import RC, CellMark, Hint, HintType, MessageKind
from field_engine.puzzle import PuzzleModel

log = logging.getLogger(__name__)

Finder = Callable[[BoardState, PuzzleModel], Optional[Hint]]


def is_valid_football(board: BoardState, puzzle: PuzzleModel, r: int, c: int) -> bool:
    if board.cells[r][c] != CellMark.PLACED:
        return False
    return puzzle.is_prefilled(r, c) or puzzle.is_solution_cell(r, c)


def _has_valid(board: BoardState, puzzle: PuzzleModel, cells: Sequence[RC]) -> bool:
    return any(is_valid_football(board, puzzle, r, c) for (r, c) in cells)


def _has_empty(board: BoardState, cells: Sequence[RC]) -> bool:
    return any(board.cells[r][c] == CellMark.EMPTY for (r, c) in cells)


def _hint(hint_type: HintType, cells: Sequence[RC], kind: MessageKind, message: str) -> Hint:
    return Hint(hint_type, tuple(cells), kind, message)


# ------------------ Hint finders (ladder order) ------------------
def hint_wrong_football(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for (r, c) in board.placements():
        if not is_valid_football(board, puzzle, r, c):
            return _hint(HintType.WRONG_FOOTBALL, [(r, c)], MessageKind.CONFLICT,
                         "This football is in the wrong position")
    return None


def hint_region_x(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for region in puzzle.region_ids():
        cells = puzzle.cells_in_region(region)
        if _has_valid(board, puzzle, cells) and _has_empty(board, cells):
            return _hint(HintType.REGION_X, cells, MessageKind.HINT,
                         "This region already has a football. Mark the highlighted cells with X")
    return None


def hint_row_x(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for r in range(puzzle.grid_size):
        cells = puzzle.row_cells(r)
        if _has_valid(board, puzzle, cells) and _has_empty(board, cells):
            return _hint(HintType.ROW_X, cells, MessageKind.HINT,
                         f"Row {r+1} already has a football. Mark the highlighted cells with X")
    return None


def hint_column_x(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for c in range(puzzle.grid_size):
        cells = puzzle.col_cells(c)
        if _has_valid(board, puzzle, cells) and _has_empty(board, cells):
            return _hint(HintType.COLUMN_X, cells, MessageKind.HINT,
                         f"Column {c+1} already has a football. Mark the highlighted cells with X")
    return None


def hint_adjacent_x(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for (r, c) in board.placements():
        if not is_valid_football(board, puzzle, r, c):
            continue
        empties = [(rr, cc) for (rr, cc) in puzzle.neighbours(r, c) if board.cells[rr][cc] == CellMark.EMPTY]
        if empties:
            return _hint(HintType.ADJACENT_X, empties, MessageKind.CONFLICT,
                         "Footballs cannot touch each other. Mark the highlighted cells with X")
    return None


def hint_empty_region(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    best: Optional[List[RC]] = None
    # region_ids() is ascending, so strict < keeps the lowest id on ties
    for region in puzzle.region_ids():
        cells = puzzle.cells_in_region(region)
        if _has_valid(board, puzzle, cells):
            continue
        if best is None or len(cells) < len(best):
            best = cells
    if best is None:
        return None
    return _hint(HintType.EMPTY_REGION, best, MessageKind.HINT,
                 "This region needs a football. Look for a valid placement in the highlighted area")


def hint_empty_row(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for r in range(puzzle.grid_size):
        cells = puzzle.row_cells(r)
        if not _has_valid(board, puzzle, cells):
            return _hint(HintType.EMPTY_ROW, cells, MessageKind.HINT,
                         f"Row {r+1} needs a football. Look for a valid placement in the highlighted row")
    return None


def hint_empty_column(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for c in range(puzzle.grid_size):
        cells = puzzle.col_cells(c)
        if not _has_valid(board, puzzle, cells):
            return _hint(HintType.EMPTY_COLUMN, cells, MessageKind.HINT,
                         f"Column {c+1} needs a football. Look for a valid placement in the highlighted column")
    return None


def hint_wrong_x(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    wrong = [(r, c) for (r, c) in puzzle.all_cells()
             if board.cells[r][c] == CellMark.MARKED and puzzle.is_solution_cell(r, c)]
    if not wrong:
        return None
    return _hint(HintType.WRONG_X, wrong, MessageKind.CONFLICT,
                 "These X marks are incorrect. Remove them - these cells should have footballs")


def hint_valid_placement(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    for (r, c) in puzzle.all_cells():
        if board.cells[r][c] == CellMark.EMPTY and puzzle.is_solution_cell(r, c):
            return _hint(HintType.VALID_PLACEMENT, [(r, c)], MessageKind.HINT,
                         "Try placing a football in the highlighted cell")
    return None


HINT_LADDER: Sequence[Finder] = (
    hint_wrong_football,
    hint_region_x,
    hint_row_x,
    hint_column_x,
    hint_adjacent_x,
    hint_empty_region,
    hint_empty_row,
    hint_empty_column,
    hint_wrong_x,
    hint_valid_placement,
)


def generate_hint(board: BoardState, puzzle: PuzzleModel) -> Optional[Hint]:
    """
    Walk the ladder top to bottom and return the first hint found.
    Returns None when no rung applies (typically a solved board).
    Does not touch hint_count; the session owns the counter.
    """
    for step, finder in enumerate(HINT_LADDER, start=1):
        h = finder(board, puzzle)
        if h is not None:
            log.debug("hint step %d (%s) fired on %d cells", step, h.hint_type.value, len(h.cells))
            return h
        log.debug("hint step %d (%s): nothing", step, finder.__name__)
    return None
