"""
Quickstart example for Mindsweeper.

This script demonstrates the board-state API and the analysis helpers.
"""

from mindsweeper import (
    LOST,
    WON,
    GameConfig,
    MinesweeperSolver,
    configure_logging,
    format_deduction,
    new_board,
    run_solver_many_tests,
)


def main():
    configure_logging()

    print("=" * 60)
    print("Mindsweeper - Quickstart Example")
    print("=" * 60)

    # Example 1: Play a beginner board using hints only
    print("\n1. Playing a Beginner game (9x9, 10 mines) with hints...")
    print("-" * 60)

    game = new_board(9, 9, 10, seed=7)
    status, _ = game.reveal(4, 4)
    while status not in (LOST, WON):
        cell = game.hint()
        if cell is None:
            break
        status, _ = game.reveal(*cell)

    print("Result: " + {WON: "WON", LOST: "LOST"}.get(status, "STUCK"))
    print(game.format_board(reveal_all=True))

    # Example 2: Guess on purpose and read the post-mortem
    print("\n2. Guessing with punishment enabled...")
    print("-" * 60)

    game = new_board(9, 9, 10, seed=11)
    game.reveal(4, 4)
    undetermined = [
        (x, y)
        for y in range(game.height)
        for x in range(game.width)
        if game.forced_status(x, y) == "undetermined"
    ]
    if undetermined:
        x, y = undetermined[0]
        status, payload = game.reveal(x, y)
        print(f"Revealed undetermined cell ({x}, {y}): status {status}")
        labels = game.postmortem()
        print(f"Post-mortem label of the losing cell: {labels[(x, y)]}")
        counts = {}
        for label in labels.values():
            counts[label] = counts.get(label, 0) + 1
        print(f"Hidden cells by label: {counts}")
    else:
        print("The first click opened the whole board.")

    # Example 3: Inspect a solver's deduction
    print("\n3. Solver deduction after the first click:")
    print("-" * 60)

    game = new_board(16, 16, 40, seed=3)
    solver = MinesweeperSolver(game)
    solver.reveal_cell(game.board.cell_id(8, 8))
    print(format_deduction(solver.view(), solver.deduce()))

    # Example 4: Forced-move play on each preset
    print("\n4. Forced-move win rates (5 games each)...")
    print("-" * 60)

    for name in ("beginner", "intermediate", "expert"):
        config = GameConfig.preset(name)
        results = run_solver_many_tests(config, runs=5, seed=0)
        print(
            f"{config.describe():40s}: {results['win_rate']*100:5.1f}% win rate, "
            f"{results['avg_generation_attempts']:.1f} generation attempts"
        )

    print("\n" + "=" * 60)
    print("Done!")
    print("=" * 60)


if __name__ == "__main__":
    main()
