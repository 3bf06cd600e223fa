# cli_driver.py
# This file is intended to be run to play or test the 2048 tile game on the CLI

import argparse
import logging
import random
from typing import List, Optional

from core import DEFAULT_BOARD_SIZE, DEFAULT_WIN_TILE, Direction, GameStatus
from session import TileGame

DIRECTION_KEYS = {'W': Direction.UP, 'A': Direction.LEFT, 'S': Direction.DOWN, 'D': Direction.RIGHT}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play 2048 in the terminal.")
    parser.add_argument("--size", type=int, default=DEFAULT_BOARD_SIZE, help="Board dimension N (at least 2)")
    parser.add_argument("--win-tile", type=int, default=DEFAULT_WIN_TILE, help="Tile value that wins the game")
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible tile spawns")
    parser.add_argument("--verbose", action="store_true", help="Log engine activity")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    rng = random.Random(args.seed) if args.seed is not None else None
    game = TileGame(size=args.size, win_tile=args.win_tile, rng=rng)
    display_game(game)

    while game.status == GameStatus.PLAYING:
        command = input("Enter move (W/A/S/D to move, U to undo, R to restart, Q to quit): ").strip().upper()

        if command == 'Q':
            print("Quitting game.")
            break
        if command == 'U':
            if not game.undo():
                print("Nothing to undo.")
        elif command == 'R':
            game.reset()
        elif command in DIRECTION_KEYS:
            if not game.move(DIRECTION_KEYS[command]):
                print("Move did not change the board. Try a different direction.")
        else:
            print("Invalid input. Use W, A, S, D, U, R or Q.")
            continue

        display_game(game)

    print("\n--- Final Board State ---")
    display_game(game)
    if game.status == GameStatus.WON:
        print(f"Congratulations! You reached the {game.win_tile} tile!")
    elif game.status == GameStatus.LOST:
        print("No more moves possible. Better luck next time!")


def display_game(game: TileGame):
    """Prints the board, score, move count and game status to the console."""
    print(f"\nScore: {game.score}    Best: {game.best_score}    Moves: {game.move_count}")
    status_message = {
        GameStatus.PLAYING: "Status: playing",
        GameStatus.WON: "YOU WON!",
        GameStatus.LOST: "GAME OVER!"
    }
    print(status_message[game.status])

    for row in game.board():
        print("\t".join(str(value) if value else "." for value in row))
    print("-" * (game.size * 6))


if __name__ == "__main__":
    main()
