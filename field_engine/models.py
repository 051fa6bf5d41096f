from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

RC = Tuple[int, int]  # (row, col)


class CellMark(str, Enum):
    EMPTY = ""
    MARKED = "X"
    PLACED = "F"  # football

    def next(self) -> "CellMark":
        return _CYCLE[self]


_CYCLE = {
    CellMark.EMPTY: CellMark.MARKED,
    CellMark.MARKED: CellMark.PLACED,
    CellMark.PLACED: CellMark.EMPTY,
}


class ViolationKind(str, Enum):
    ROW = "ROW"
    COLUMN = "COLUMN"
    REGION = "REGION"
    ADJACENT = "ADJACENT"


class MessageKind(str, Enum):
    DEFAULT = "DEFAULT"
    HINT = "HINT"
    CONFLICT = "CONFLICT"
    SUCCESS = "SUCCESS"


class HintType(str, Enum):
    WRONG_FOOTBALL = "WRONG_FOOTBALL"
    REGION_X = "REGION_X"
    ROW_X = "ROW_X"
    COLUMN_X = "COLUMN_X"
    ADJACENT_X = "ADJACENT_X"
    EMPTY_REGION = "EMPTY_REGION"
    EMPTY_ROW = "EMPTY_ROW"
    EMPTY_COLUMN = "EMPTY_COLUMN"
    WRONG_X = "WRONG_X"
    VALID_PLACEMENT = "VALID_PLACEMENT"


@dataclass(frozen=True)
class Hint:
    hint_type: HintType
    cells: Tuple[RC, ...]
    message_kind: MessageKind
    message: str


@dataclass(frozen=True)
class Evaluation:
    violations: Dict[RC, ViolationKind] = field(default_factory=dict)
    is_win: bool = False
    message: str = ""


@dataclass(frozen=True)
class InfoMessage:
    text: str
    kind: MessageKind = MessageKind.DEFAULT


@dataclass(frozen=True)
class GameResult:
    date: str
    moves: int
    hints_used: int
    elapsed_ms: int
    score: int
    time_display: str = ""


@dataclass(frozen=True)
class LeaderboardEntry:
    user_id: str
    display_name: str
    date: str
    moves: int
    hints_used: int
    elapsed_ms: int
    score: int
    rank: Optional[int] = None


Highlights = FrozenSet[RC]
