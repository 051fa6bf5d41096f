from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Tuple

from field_engine.board import BoardState
from field_engine.models import GameResult, LeaderboardEntry

HINT_PENALTY_MS = 15000


def format_time(total_seconds: int) -> str:
    minutes, seconds = divmod(max(0, total_seconds), 60)
    return f"{minutes}:{seconds:02d}"


def compute_result(board: BoardState, date: str, now_ms: int) -> GameResult:
    """elapsed = wall time + 15s per hint; score = -elapsed (faster is higher)."""
    elapsed = (now_ms - board.start_time) + board.hint_count * HINT_PENALTY_MS
    return GameResult(
        date=date,
        moves=board.move_count,
        hints_used=board.hint_count,
        elapsed_ms=elapsed,
        score=-elapsed,
        time_display=format_time(elapsed // 1000),
    )


def share_text(result: GameResult) -> str:
    lines = ["Field Puzzle complete!"]
    penalty = result.hints_used * HINT_PENALTY_MS // 1000
    time_line = f"Time: {result.time_display}"
    if result.hints_used > 0:
        time_line += f" (+{penalty}s penalty)"
    lines.append(time_line)
    lines.append(f"Moves: {result.moves}")
    lines.append(f"Hints: {result.hints_used}")
    return "\n".join(lines)


def leaderboard_sort_key(entry: LeaderboardEntry) -> Tuple[int, int, int]:
    # score desc, then fewer hints, then fewer moves
    return (-entry.score, entry.hints_used, entry.moves)


def rank_entries(entries: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    ordered = sorted(entries, key=leaderboard_sort_key)
    return [
        LeaderboardEntry(e.user_id, e.display_name, e.date, e.moves, e.hints_used,
                         e.elapsed_ms, e.score, rank=i + 1)
        for i, e in enumerate(ordered)
    ]


class ResultStore:
    """In-memory result storage keyed by (user_id, date). One result per user per puzzle."""

    def __init__(self):
        self._lock = threading.Lock()
        self._results: Dict[Tuple[str, str], LeaderboardEntry] = {}

    def has_result(self, user_id: str, date: str) -> bool:
        with self._lock:
            return (user_id, date) in self._results

    def submit(self, user_id: str, display_name: str, result: GameResult) -> bool:
        """Store the result unless one already exists. Returns True if stored."""
        key = (user_id, result.date)
        with self._lock:
            if key in self._results:
                return False
            self._results[key] = LeaderboardEntry(
                user_id=user_id,
                display_name=display_name,
                date=result.date,
                moves=result.moves,
                hints_used=result.hints_used,
                elapsed_ms=result.elapsed_ms,
                score=result.score,
            )
            return True

    def leaderboard(self, date: str, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        if limit is not None and limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")
        with self._lock:
            entries = [e for (uid, d), e in self._results.items() if d == date]
        ranked = rank_entries(entries)
        return ranked if limit is None else ranked[:limit]

    def user_rank(self, user_id: str, date: str) -> Optional[int]:
        for e in self.leaderboard(date):
            if e.user_id == user_id:
                return e.rank
        return None

    def user_history(self, user_id: str) -> List[LeaderboardEntry]:
        """All results of one user, newest puzzle date first, each ranked within its day."""
        with self._lock:
            dates = sorted((d for (uid, d) in self._results if uid == user_id), reverse=True)
        history = []
        for date in dates:
            history.extend(e for e in self.leaderboard(date) if e.user_id == user_id)
        return history
