from __future__ import annotations

import csv
import io
import json
import logging
import os
import time
from typing import Callable, Dict, List, Optional

from field_engine.puzzle import PuzzleDataError, PuzzleModel, validate_solution
from field_engine.solver import is_uniquely_solvable

log = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("date", "grid_size", "regions", "queens", "prefills")
DEFAULT_CACHE_SECONDS = 3600

FALLBACK_PUZZLES: Dict[str, PuzzleModel] = {
    "2024-01-01": PuzzleModel.from_record({
        "date": "2024-01-01",
        "gridSize": 6,
        "regions": [
            [0, 0, 1, 1, 1, 1],
            [0, 0, 1, 1, 2, 2],
            [3, 0, 4, 2, 2, 2],
            [3, 3, 4, 4, 2, 5],
            [3, 3, 4, 4, 5, 5],
            [3, 3, 4, 5, 5, 5],
        ],
        "queens": [[0, 1], [1, 3], [2, 5], [3, 0], [4, 2], [5, 4]],
        "prefills": [[0, 1], [2, 5]],
    }),
}


def _json_cell(row: Dict[str, str], column: str, date: str):
    raw = (row.get(column) or "").strip()
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise PuzzleDataError(f"Puzzle {date}: column '{column}' is not valid JSON ({e.msg}).")


def parse_puzzle_row(row: Dict[str, str], require_unique: bool = False) -> PuzzleModel:
    date = (row.get("date") or "").strip()
    try:
        grid_size = int((row.get("grid_size") or "").strip())
    except ValueError:
        raise PuzzleDataError(f"Puzzle {date}: grid_size is not an integer.")

    puzzle = PuzzleModel.from_record({
        "date": date,
        "gridSize": grid_size,
        "regions": _json_cell(row, "regions", date),
        "queens": _json_cell(row, "queens", date),
        "prefills": _json_cell(row, "prefills", date),
    })

    problems = validate_solution(puzzle)
    if problems:
        raise PuzzleDataError(f"Puzzle {date}: " + " ".join(problems))
    if require_unique and not is_uniquely_solvable(puzzle):
        raise PuzzleDataError(f"Puzzle {date}: more than one arrangement satisfies the rules.")
    return puzzle


def parse_puzzle_csv(text: str, strict: bool = True, require_unique: bool = False) -> Dict[str, PuzzleModel]:
    """
    CSV with columns date, grid_size, regions, queens, prefills.
    regions/queens/prefills hold JSON arrays.
    strict=False logs and skips bad rows instead of raising.
    """
    reader = csv.DictReader(io.StringIO(text.strip()))
    headers = [h.strip() for h in (reader.fieldnames or [])]
    missing = [c for c in REQUIRED_COLUMNS if c not in headers]
    if missing:
        raise PuzzleDataError(f"Invalid CSV format: missing required columns {missing}.")
    reader.fieldnames = headers

    puzzles: Dict[str, PuzzleModel] = {}
    for row in reader:
        date = (row.get("date") or "").strip()
        if not date:
            continue
        try:
            puzzles[date] = parse_puzzle_row(row, require_unique=require_unique)
        except PuzzleDataError as e:
            if strict:
                raise
            log.warning("skipping puzzle row: %s", e)
    return puzzles


class PuzzleLibrary:
    """
    Date -> PuzzleModel lookup backed by a CSV file.
    The parsed file is kept for ttl_seconds; without a usable file the
    built-in fallback puzzles are served.
    """

    def __init__(
        self,
        csv_path: Optional[str] = None,
        ttl_seconds: float = DEFAULT_CACHE_SECONDS,
        clock: Callable[[], float] = time.time,
        require_unique: bool = False,
    ):
        self.csv_path = csv_path
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.require_unique = require_unique
        self._cache: Dict[str, PuzzleModel] = {}
        self._loaded_at: Optional[float] = None

    def _read_csv(self) -> Optional[str]:
        if not self.csv_path or not os.path.exists(self.csv_path):
            return None
        with open(self.csv_path, "r", encoding="utf-8") as f:
            return f.read()

    def puzzles(self) -> Dict[str, PuzzleModel]:
        now = self.clock()
        if self._cache and self._loaded_at is not None and now - self._loaded_at < self.ttl_seconds:
            return self._cache

        text = self._read_csv()
        if not text or not text.strip():
            log.warning("no puzzle CSV available, using fallback puzzle data")
            self._cache = dict(FALLBACK_PUZZLES)
        else:
            parsed = parse_puzzle_csv(text, strict=False, require_unique=self.require_unique)
            if not parsed:
                log.warning("puzzle CSV %s had no usable rows, using fallback puzzle data", self.csv_path)
                parsed = dict(FALLBACK_PUZZLES)
            self._cache = parsed
        self._loaded_at = now
        return self._cache

    def invalidate(self) -> None:
        self._cache = {}
        self._loaded_at = None

    def dates(self) -> List[str]:
        return sorted(self.puzzles())

    def get(self, date: str) -> Optional[PuzzleModel]:
        return self.puzzles().get(date)

    def latest(self, on_or_before: Optional[str] = None) -> PuzzleModel:
        """Most recent puzzle, optionally not later than an ISO date."""
        dates = self.dates()
        if on_or_before is not None:
            earlier = [d for d in dates if d <= on_or_before]
            dates = earlier or dates
        return self.puzzles()[dates[-1]]
