from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Tuple

from field_engine.models import RC


class PuzzleDataError(ValueError):
    """Raised when a puzzle record cannot be turned into a PuzzleModel."""


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _parse_coords(raw: Any, name: str) -> FrozenSet[RC]:
    if not isinstance(raw, (list, tuple, set, frozenset)):
        raise PuzzleDataError(f"'{name}' must be a list of [row, col] pairs.")
    coords = set()
    for item in raw:
        if not isinstance(item, (list, tuple)) or len(item) != 2 or not all(_is_int(v) for v in item):
            raise PuzzleDataError(f"Invalid coordinate {item!r} in '{name}'.")
        coords.add((item[0], item[1]))
    return frozenset(coords)


@dataclass(frozen=True)
class PuzzleModel:
    """
    One day's puzzle:
    - regions[r][c] = region id of the cell
    - solution = the N football cells the puzzle was built from
    - prefills = solution cells shown to the player from the start
    """

    date: str
    grid_size: int
    regions: Tuple[Tuple[int, ...], ...]
    solution: FrozenSet[RC]
    prefills: FrozenSet[RC]

    def __post_init__(self):
        if not _is_int(self.grid_size) or self.grid_size <= 0:
            raise PuzzleDataError(f"grid_size must be a positive integer, got {self.grid_size!r}.")

        n = self.grid_size
        if not isinstance(self.regions, (list, tuple)) or len(self.regions) != n:
            raise PuzzleDataError(f"regions must have exactly {n} rows.")
        rows = []
        for r, row in enumerate(self.regions):
            if not isinstance(row, (list, tuple)) or len(row) != n:
                raise PuzzleDataError(f"regions row {r} must have exactly {n} columns.")
            for v in row:
                if not _is_int(v):
                    raise PuzzleDataError(f"Region ids must be integers, got {v!r} in row {r}.")
            rows.append(tuple(row))

        # normalise so callers may pass lists
        object.__setattr__(self, "regions", tuple(rows))
        object.__setattr__(self, "solution", _parse_coords(self.solution, "solution"))
        object.__setattr__(self, "prefills", _parse_coords(self.prefills, "prefills"))

    @staticmethod
    def from_record(record: Mapping[str, Any]) -> "PuzzleModel":
        """Build from a {date, gridSize, regions, queens, prefills} record."""
        if not isinstance(record, Mapping):
            raise PuzzleDataError("Puzzle record must be an object.")
        missing = [k for k in ("gridSize", "regions", "queens", "prefills") if k not in record]
        if missing:
            raise PuzzleDataError(f"Puzzle record is missing {missing}.")
        return PuzzleModel(
            date=str(record.get("date", "")),
            grid_size=record["gridSize"],
            regions=record["regions"],
            solution=_parse_coords(record["queens"], "queens"),
            prefills=_parse_coords(record["prefills"], "prefills"),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "gridSize": self.grid_size,
            "regions": [list(row) for row in self.regions],
            "queens": [list(rc) for rc in sorted(self.solution)],
            "prefills": [list(rc) for rc in sorted(self.prefills)],
        }

    # ---------- Queries ----------
    def region_of(self, r: int, c: int) -> int:
        return self.regions[r][c]

    def is_prefilled(self, r: int, c: int) -> bool:
        return (r, c) in self.prefills

    def is_solution_cell(self, r: int, c: int) -> bool:
        return (r, c) in self.solution

    def in_bounds(self, r: int, c: int) -> bool:
        return 0 <= r < self.grid_size and 0 <= c < self.grid_size

    def all_cells(self) -> List[RC]:
        n = self.grid_size
        return [(r, c) for r in range(n) for c in range(n)]

    def region_ids(self) -> List[int]:
        return sorted({v for row in self.regions for v in row})

    def cells_in_region(self, region: int) -> List[RC]:
        return [(r, c) for (r, c) in self.all_cells() if self.regions[r][c] == region]

    def row_cells(self, r: int) -> List[RC]:
        return [(r, c) for c in range(self.grid_size)]

    def col_cells(self, c: int) -> List[RC]:
        return [(r, c) for r in range(self.grid_size)]

    def neighbours(self, r: int, c: int) -> List[RC]:
        out = []
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                if dr == 0 and dc == 0:
                    continue
                if self.in_bounds(r + dr, c + dc):
                    out.append((r + dr, c + dc))
        return out


def touching(a: RC, b: RC) -> bool:
    return a != b and abs(a[0] - b[0]) <= 1 and abs(a[1] - b[1]) <= 1


def validate_solution(puzzle: PuzzleModel) -> List[str]:
    """
    Strict loader checks on the solution/prefill sets.
    Returns a list of problems; empty means the puzzle is well formed.
    """
    problems: List[str] = []
    n = puzzle.grid_size
    sol = sorted(puzzle.solution)

    outside = [rc for rc in sol + sorted(puzzle.prefills) if not puzzle.in_bounds(*rc)]
    if outside:
        return [f"Coordinates outside the {n}x{n} grid: {outside}."]

    if len(sol) != n:
        problems.append(f"Solution has {len(sol)} cells, expected {n}.")

    def _check_unit(label: str, keys: Iterable[int], key_of) -> None:
        for k in keys:
            count = sum(1 for rc in sol if key_of(rc) == k)
            if count != 1:
                problems.append(f"{label} {k} has {count} solution cells, expected 1.")

    _check_unit("Row", range(n), lambda rc: rc[0])
    _check_unit("Column", range(n), lambda rc: rc[1])
    _check_unit("Region", puzzle.region_ids(), lambda rc: puzzle.region_of(*rc))

    for i in range(len(sol)):
        for j in range(i + 1, len(sol)):
            if touching(sol[i], sol[j]):
                problems.append(f"Solution cells {sol[i]} and {sol[j]} touch.")

    extra = sorted(puzzle.prefills - puzzle.solution)
    if extra:
        problems.append(f"Prefills not in the solution: {extra}.")

    return problems
