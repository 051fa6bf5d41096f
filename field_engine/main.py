import argparse
import os
from typing import List, Tuple

from field_engine.board import BoardState
from field_engine.evaluator import evaluate
from field_engine.hints import generate_hint
from field_engine.loader import PuzzleLibrary
from field_engine.puzzle import PuzzleModel
from field_engine.solver import count_solutions

RC = Tuple[int, int]


def print_regions(puzzle: PuzzleModel):
    width = len(str(max(puzzle.region_ids())))
    for row in puzzle.regions:
        print(" ".join(str(v).rjust(width) for v in row))


def parse_clicks(text: str) -> List[RC]:
    clicks: List[RC] = []
    for token in (text or "").split():
        parts = token.split(",")
        if len(parts) != 2:
            raise ValueError(f"Bad click '{token}', expected row,col")
        clicks.append((int(parts[0]), int(parts[1])))
    return clicks


def main():
    p = argparse.ArgumentParser(description="Field puzzle rules engine")
    p.add_argument("--csv", default=os.environ.get("FIELD_PUZZLE_CSV"), help="Puzzle CSV (date,grid_size,regions,queens,prefills)")
    p.add_argument("--date", required=False, help="Puzzle date (default: latest)")
    p.add_argument("--clicks", default="", help='Clicks to apply in order, e.g. "0,1 0,1 2,3"')
    p.add_argument("--hint", action="store_true", help="Print one hint for the resulting board")
    p.add_argument("--check-unique", action="store_true", help="Count solutions of the puzzle")
    args = p.parse_args()

    library = PuzzleLibrary(args.csv)
    puzzle = library.get(args.date) if args.date else library.latest()
    if puzzle is None:
        print(f"No puzzle for {args.date}. Available: {', '.join(library.dates())}")
        return

    board = BoardState.initial(puzzle)
    for (r, c) in parse_clicks(args.clicks):
        if not puzzle.in_bounds(r, c) or puzzle.is_prefilled(r, c):
            print(f"Ignoring click on ({r}, {c})")
            continue
        board.push_history()
        board.cycle(r, c)
        board.move_count += 1

    print(f"\nPUZZLE {puzzle.date} ({puzzle.grid_size}x{puzzle.grid_size})\n")
    print("REGIONS:")
    print_regions(puzzle)
    print("\nBOARD (* prefilled, F football, x mark):")
    print(board.pretty())
    print()

    print("EVALUATION REPORT")
    print("=" * 60)
    ev = evaluate(board, puzzle)
    if ev.violations:
        print("Status: CONFLICT")
        print(ev.message)
        for (r, c), kind in sorted(ev.violations.items()):
            print(f"  (r{r+1}, c{c+1}): {kind.value}")
    else:
        print("Status: OK")
    print(f"Solved: {'yes' if ev.is_win else 'no'}")
    print("-" * 60)

    if args.hint:
        print("HINT REPORT")
        print("-" * 60)
        h = generate_hint(board, puzzle)
        if h is None:
            print("No hint available.")
        else:
            print(f"Rule: {h.hint_type.value} ({h.message_kind.value})")
            print(h.message)
            print("Cells: " + ", ".join(f"(r{r+1}, c{c+1})" for (r, c) in h.cells))
        print("-" * 60)

    if args.check_unique:
        print("SOLVER REPORT")
        print("-" * 60)
        n = count_solutions(puzzle, limit=2)
        if n == 0:
            print("Status: FAIL (no arrangement satisfies the rules)")
        elif n == 1:
            print("Status: PASS (unique solution)")
        else:
            print("Status: WARN (more than one solution; wins are judged by the rules, not the stored answer)")
        print("-" * 60)

    print("=" * 60)
    print()


if __name__ == "__main__":
    main()
