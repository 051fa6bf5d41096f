from __future__ import annotations

from typing import Dict, List, Optional, Set

from field_engine.models import RC
from field_engine.puzzle import PuzzleModel


def _search(puzzle: PuzzleModel, row: int, placed: List[RC], used_cols: Set[int],
            used_regions: Set[int], prefilled_col: Dict[int, int],
            found: List[List[RC]], limit: int) -> None:
    n = puzzle.grid_size
    if len(found) >= limit:
        return
    if row == n:
        found.append(placed[:])
        return

    for c in range(n):
        if c in used_cols:
            continue
        region = puzzle.region_of(row, c)
        if region in used_regions:
            continue
        # only the previous row can touch this one
        if placed and abs(placed[-1][1] - c) <= 1:
            continue
        fixed = prefilled_col.get(row)
        if fixed is not None and fixed != c:
            continue

        placed.append((row, c))
        used_cols.add(c)
        used_regions.add(region)
        _search(puzzle, row + 1, placed, used_cols, used_regions, prefilled_col, found, limit)
        used_regions.discard(region)
        used_cols.discard(c)
        placed.pop()
        if len(found) >= limit:
            return


def find_solutions(puzzle: PuzzleModel, limit: int = 2) -> List[List[RC]]:
    """
    Backtracking, one football per row.
    Prefilled cells are honoured. Stops after `limit` solutions.
    """
    regions = puzzle.region_ids()
    if len(regions) != puzzle.grid_size:
        return []
    prefilled_col: Dict[int, int] = {}
    for (r, c) in puzzle.prefills:
        if r in prefilled_col and prefilled_col[r] != c:
            return []
        prefilled_col[r] = c
    found: List[List[RC]] = []
    _search(puzzle, 0, [], set(), set(), prefilled_col, found, limit)
    return found


def count_solutions(puzzle: PuzzleModel, limit: int = 2) -> int:
    return len(find_solutions(puzzle, limit))


def is_uniquely_solvable(puzzle: PuzzleModel) -> bool:
    return count_solutions(puzzle, limit=2) == 1


def first_solution(puzzle: PuzzleModel) -> Optional[List[RC]]:
    sols = find_solutions(puzzle, limit=1)
    return sols[0] if sols else None
