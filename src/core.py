# core.py
# Grid-of-integers engine for the 2048 tile game: direction and status enums,
# board helpers, the transpose/reverse move transform and the terminal-state checks.

from enum import Enum
from typing import Tuple, List
import logging

logger = logging.getLogger(__name__)

DEFAULT_BOARD_SIZE = 4
DEFAULT_WIN_TILE = 2048
MAX_BOARD_SIZE = 16
SPAWN_FOUR_PROBABILITY = 0.1
HISTORY_LIMIT = 50


class GameStatus(str, Enum):
    """Represents the current progress state of the game."""
    PLAYING = "playing"
    WON = "won"
    LOST = "lost"


class Direction(str, Enum):
    """Represents the possible move directions."""
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

# --- Board Helper Functions ---

def get_board_size(board: List[List[int]]) -> int:
    """
    Gets the size (N) of an N x N board.
    Args:
        board (List[List[int]]): The game board.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: If the board is not square or smaller than 2 x 2.
    """
    if not board or not all(len(row) == len(board) for row in board):
        raise ValueError("Board must be a non-empty square matrix.")
    if len(board) < 2:
        raise ValueError("Board must be at least 2 x 2.")
    return len(board)

def empty_board(size: int) -> List[List[int]]:
    """Returns an N x N board of zeros."""
    if not isinstance(size, int) or size < 2:
        raise ValueError("Board size must be an integer of at least 2.")
    return [[0] * size for _ in range(size)]

def get_empty_cells(board: List[List[int]]) -> List[Tuple[int, int]]:
    """
    Get coordinates of empty (0-value) cells in the given board.
    Args:
        board (List[List[int]]): The board to check.
    Returns:
        List[Tuple[int, int]]: List of (row, col) tuples for empty cells.
    """
    n = get_board_size(board)
    return [(row, col) for row in range(n) for col in range(n) if board[row][col] == 0]

# --- Line Manipulation ---

def _slide_line_left(line: List[int]) -> Tuple[List[int], int]:
    """
    Compacts a line towards index 0 and merges adjacent equal values once.
    Args:
        line (List[int]): The line to process.
    Returns:
        Tuple[List[int], int]: The processed line and the score gained
                               (sum of the merged values).
    """
    compact = [value for value in line if value != 0]
    merged: List[int] = []
    score_gained = 0
    read_idx = 0

    while read_idx < len(compact):
        current_val = compact[read_idx]
        if read_idx + 1 < len(compact) and current_val == compact[read_idx + 1]:
            merged.append(current_val * 2)
            score_gained += current_val * 2
            read_idx += 2  # the partner is consumed, merges never chain
        else:
            merged.append(current_val)
            read_idx += 1

    merged += [0] * (len(line) - len(merged))
    return merged, score_gained

# --- Board Transformations (used by the reference transform `process_move`) ---

def transpose_board(board: List[List[int]]) -> List[List[int]]:
    """
    Transposes a given board (swaps rows and columns).
    Args:
        board (List[List[int]]): The board to transpose.
    Returns:
        List[List[int]]: A new transposed board.
    """
    n = get_board_size(board)
    return [[board[r][c] for r in range(n)] for c in range(n)]

def reverse_rows(board: List[List[int]]) -> List[List[int]]:
    """
    Reverses each row in a given board.
    Args:
        board (List[List[int]]): The board whose rows are to be reversed.
    Returns:
        List[List[int]]: A new board with rows reversed.
    """
    return [row[::-1] for row in board]

# --- Core Game Move Processing ---

def _move_all_lines_left(board: List[List[int]]) -> Tuple[List[List[int]], int]:
    processed_board = []
    total_score = 0
    for row in board:
        new_row, score_from_row = _slide_line_left(row)
        processed_board.append(new_row)
        total_score += score_from_row
    return processed_board, total_score

def process_move(board: List[List[int]], direction: Direction) -> Tuple[List[List[int]], int, bool]:
    """
    Reference grid transform for a move; the tile engine is checked against it.
    Processes a move in the specified direction on a copy of the board.

    Every direction is mapped onto a left move: RIGHT reverses the rows,
    UP transposes, DOWN transposes then reverses. The inverse transform is
    applied to the result.
    Args:
        board (List[List[int]]): The current game board.
        direction (Direction): The direction to move.
    Returns:
        Tuple[List[List[int]], int, bool]:
            - The new board state after the move.
            - The score gained from this move.
            - A boolean indicating if the board changed as a result of the move.
    Raises:
        ValueError: If an invalid direction is specified.
    """
    get_board_size(board)
    direction = Direction(direction)

    if direction == Direction.LEFT:
        new_board, score_gained = _move_all_lines_left(board)
    elif direction == Direction.RIGHT:
        processed, score_gained = _move_all_lines_left(reverse_rows(board))
        new_board = reverse_rows(processed)
    elif direction == Direction.UP:
        processed, score_gained = _move_all_lines_left(transpose_board(board))
        new_board = transpose_board(processed)
    else:
        processed, score_gained = _move_all_lines_left(reverse_rows(transpose_board(board)))
        new_board = transpose_board(reverse_rows(processed))

    changed = new_board != [list(row) for row in board]
    return new_board, score_gained, changed

# --- Game State Checks ---

def check_win(board: List[List[int]], target: int = DEFAULT_WIN_TILE) -> bool:
    """
    Check if the game is won (a tile with the target value exists).
    Args:
        board (List[List[int]]): The game board.
        target (int): The tile value that signifies a win. Default is 2048.
    Returns:
        bool: True if the game is won, False otherwise.
    """
    return any(value == target for row in board for value in row)

def can_move(board: List[List[int]]) -> bool:
    """
    Checks if any move is possible: an empty cell exists or two
    horizontally or vertically adjacent cells hold equal values.
    """
    n = get_board_size(board)
    if get_empty_cells(board):
        return True
    for r in range(n):
        for c in range(n - 1):
            if board[r][c] == board[r][c + 1]:
                return True
    for c in range(n):
        for r in range(n - 1):
            if board[r][c] == board[r + 1][c]:
                return True
    return False

def check_game_over(board: List[List[int]]) -> bool:
    """
    Check if the game is lost (no empty cell and no adjacent equal pair).
    Args:
        board (List[List[int]]): The game board, evaluated after spawning.
    Returns:
        bool: True if no move can change the board.
    """
    return not can_move(board)

def determine_game_status(board: List[List[int]], win_tile: int = DEFAULT_WIN_TILE) -> GameStatus:
    """
    Determines the current progress state of the game based on the board.
    Args:
        board (List[List[int]]): The current game board.
        win_tile (int): The tile value that signifies a win. Default is 2048.
    Returns:
        GameStatus: PLAYING, WON or LOST. A win takes precedence over a full board.
    """
    if check_win(board, win_tile):
        return GameStatus.WON
    if check_game_over(board):
        logger.debug("No moves left on board %s", board)
        return GameStatus.LOST
    return GameStatus.PLAYING
