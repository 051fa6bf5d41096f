from __future__ import annotations
from typing import Dict, List

from field_engine.board import BoardState
from field_engine.models import RC, Evaluation, ViolationKind
from field_engine.puzzle import PuzzleModel

ViolationMap = Dict[RC, ViolationKind]

# display order for the summary message
MESSAGE_ORDER = (
    (ViolationKind.ADJACENT, "Footballs cannot touch each other"),
    (ViolationKind.ROW, "Multiple footballs in the same row"),
    (ViolationKind.COLUMN, "Multiple footballs in the same column"),
    (ViolationKind.REGION, "Multiple footballs in the same region"),
)


def find_violations(board: BoardState, puzzle: PuzzleModel) -> ViolationMap:
    """
    Compare every pair of footballs.
    Row/column/region clashes flag the whole unit; touching flags only the pair.
    A cell keeps the kind written last (row, column, region, adjacent per pair).
    """
    violations: ViolationMap = {}
    footballs = board.placements()
    n = puzzle.grid_size

    for i in range(len(footballs)):
        r1, c1 = footballs[i]
        for j in range(i + 1, len(footballs)):
            r2, c2 = footballs[j]

            if r1 == r2:
                for c in range(n):
                    violations[(r1, c)] = ViolationKind.ROW

            if c1 == c2:
                for r in range(n):
                    violations[(r, c1)] = ViolationKind.COLUMN

            region = puzzle.region_of(r1, c1)
            if region == puzzle.region_of(r2, c2):
                for rc in puzzle.cells_in_region(region):
                    violations[rc] = ViolationKind.REGION

            if abs(r1 - r2) <= 1 and abs(c1 - c2) <= 1:
                violations[(r1, c1)] = ViolationKind.ADJACENT
                violations[(r2, c2)] = ViolationKind.ADJACENT

    return violations


def check_win(board: BoardState, puzzle: PuzzleModel) -> bool:
    """Exactly one football per row, column and region. Does not look at the solution."""
    footballs = board.placements()
    n = puzzle.grid_size
    if len(footballs) != n:
        return False

    row_counts = [0] * n
    col_counts = [0] * n
    region_counts: Dict[int, int] = {}
    for (r, c) in footballs:
        row_counts[r] += 1
        col_counts[c] += 1
        region = puzzle.region_of(r, c)
        region_counts[region] = region_counts.get(region, 0) + 1

    if any(k != 1 for k in row_counts) or any(k != 1 for k in col_counts):
        return False
    return all(region_counts.get(region, 0) == 1 for region in puzzle.region_ids())


def violation_message(violations: ViolationMap) -> str:
    present = set(violations.values())
    lines: List[str] = [text for kind, text in MESSAGE_ORDER if kind in present]
    return "\n".join(lines)


def evaluate(board: BoardState, puzzle: PuzzleModel) -> Evaluation:
    violations = find_violations(board, puzzle)
    return Evaluation(
        violations=violations,
        is_win=check_win(board, puzzle),
        message=violation_message(violations),
    )
