# session.py
# Stateful game session over the stateless tile engine: applies a move in three
# phases, keeps score, move count, status and the undo history.

from enum import Enum
from typing import List, Optional
import logging
import random

from pydantic import BaseModel, ConfigDict, Field

from core import (
    DEFAULT_BOARD_SIZE,
    DEFAULT_WIN_TILE,
    HISTORY_LIMIT,
    Direction,
    GameStatus,
    determine_game_status,
)
from history import HistoryEntry, HistoryStack
from tile_core import (
    MoveResult,
    Tile,
    apply_merges,
    apply_positions,
    clone_tiles,
    compute_move,
    score_gained,
    spawn_random_tile,
    tiles_to_board,
    validate_tiles,
)

logger = logging.getLogger(__name__)


class MovePhase(str, Enum):
    """Where the session is in applying the current move."""
    POSITIONS_UPDATED = "positions_updated"
    MERGES_APPLIED = "merges_applied"
    SPAWNED = "spawned"


class GameState(BaseModel):
    """Save/restore shape of a session."""
    model_config = ConfigDict(populate_by_name=True, serialize_by_alias=True)

    size: int = Field(default=DEFAULT_BOARD_SIZE, ge=2)
    tiles: List[Tile] = Field(default_factory=list)
    score: int = Field(default=0, ge=0)
    best_score: int = Field(default=0, ge=0, alias="bestScore")
    move_count: int = Field(default=0, ge=0, alias="moveCount")
    history: List[HistoryEntry] = Field(default_factory=list)
    status: GameStatus = GameStatus.PLAYING


class TileGame:
    """
    A single game of 2048 on an N x N board.

    A move runs through `begin_move` -> `apply_merges` -> `finish_move`, so a
    renderer can show each phase. New moves and undo are ignored until the
    current move reaches SPAWNED. `move` runs all three phases at once.
    """

    def __init__(self, size: int = DEFAULT_BOARD_SIZE, win_tile: int = DEFAULT_WIN_TILE,
                 history_limit: int = HISTORY_LIMIT, rng: Optional[random.Random] = None):
        if win_tile <= 0:
            raise ValueError("Win tile must be a positive integer.")
        self.win_tile = win_tile
        self.rng = rng
        self.best_score = 0
        self.history = HistoryStack(history_limit)
        self.size = size
        self.tiles: List[Tile] = []
        self.score = 0
        self.move_count = 0
        self.status = GameStatus.PLAYING
        self.phase = MovePhase.SPAWNED
        self._pending: Optional[MoveResult] = None
        self._pending_tiles: List[Tile] = []
        self.reset(size)

    # --- Lifecycle ---

    def reset(self, size: Optional[int] = None) -> None:
        """Starts a fresh game with two random tiles, optionally on a new board size."""
        new_size = self.size if size is None else size
        if not isinstance(new_size, int) or new_size < 2:
            raise ValueError("Board size must be an integer of at least 2.")
        self.size = new_size
        self.tiles = []
        for _ in range(2):
            spawned = spawn_random_tile(self.tiles, self.size, self.rng)
            if spawned is not None:
                self.tiles.append(spawned)
        self.score = 0
        self.move_count = 0
        self.history.clear()
        self.status = GameStatus.PLAYING
        self.phase = MovePhase.SPAWNED
        self._pending = None
        self._pending_tiles = []
        logger.info("New %dx%d game", self.size, self.size)

    @property
    def is_animating(self) -> bool:
        return self.phase != MovePhase.SPAWNED

    def board(self) -> List[List[int]]:
        """The grid representation of the current tiles."""
        return tiles_to_board(self.tiles, self.size)

    # --- Move phases ---

    def begin_move(self, direction: Direction) -> Optional[MoveResult]:
        """
        Computes a move and moves every tile to its destination.
        Returns:
            Optional[MoveResult]: None if input is locked, the game has ended or
                                  nothing would move; the engine result otherwise.
        """
        if self.is_animating:
            logger.debug("Ignoring %s, a move is still being applied", direction)
            return None
        if self.status != GameStatus.PLAYING or not self.tiles:
            return None

        result = compute_move(self.tiles, self.size, direction)
        if not result.moved:
            return None

        self.history.push(self.tiles, self.score)
        self._pending = result
        self._pending_tiles = clone_tiles(self.tiles)
        self.tiles = apply_positions(self.tiles, result)
        self.phase = MovePhase.POSITIONS_UPDATED
        return result

    def apply_merges(self) -> int:
        """
        Removes absorbed tiles and grows their targets.
        Returns:
            int: Points gained by the move.
        Raises:
            RuntimeError: If called outside the POSITIONS_UPDATED phase.
        """
        if self.phase != MovePhase.POSITIONS_UPDATED or self._pending is None:
            raise RuntimeError(f"Cannot apply merges in phase {self.phase.value}.")
        gained = score_gained(self._pending_tiles, self._pending)
        self.tiles = apply_merges(self.tiles, self._pending)
        self.score += gained
        self.best_score = max(self.best_score, self.score)
        self.phase = MovePhase.MERGES_APPLIED
        return gained

    def finish_move(self) -> Optional[Tile]:
        """
        Clears merge flags, spawns one tile and re-evaluates the game status.
        Returns:
            Optional[Tile]: The spawned tile, None if the board was full.
        Raises:
            RuntimeError: If called outside the MERGES_APPLIED phase.
        """
        if self.phase != MovePhase.MERGES_APPLIED:
            raise RuntimeError(f"Cannot spawn in phase {self.phase.value}.")
        self.tiles = [tile.model_copy(update={"merged": False}) for tile in self.tiles]
        spawned = spawn_random_tile(self.tiles, self.size, self.rng)
        if spawned is not None:
            self.tiles.append(spawned)
        self.move_count += 1
        self.status = determine_game_status(self.board(), self.win_tile)
        self.phase = MovePhase.SPAWNED
        self._pending = None
        self._pending_tiles = []
        if self.status != GameStatus.PLAYING:
            logger.info("Game ended: %s after %d moves, score %d",
                        self.status.value, self.move_count, self.score)
        return spawned

    def move(self, direction: Direction) -> bool:
        """Plays a full move. Returns False if nothing happened."""
        if self.begin_move(direction) is None:
            return False
        self.apply_merges()
        self.finish_move()
        return True

    # --- Undo ---

    def undo(self) -> bool:
        """
        Restores the snapshot taken before the last move.
        Returns:
            bool: False (state untouched) mid-move or with an empty history.
        Raises:
            ValueError: If the snapshot does not fit the board; the snapshot stays on the stack.
        """
        if self.is_animating:
            return False
        entry = self.history.peek()
        if entry is None:
            return False
        validate_tiles(entry.tiles, self.size)
        self.history.pop()
        self.tiles = entry.tiles
        self.score = entry.score
        self.move_count = max(0, self.move_count - 1)
        self.status = determine_game_status(self.board(), self.win_tile)
        return True

    # --- Persistence ---

    def to_state(self) -> GameState:
        return GameState(
            size=self.size,
            tiles=clone_tiles(self.tiles),
            score=self.score,
            best_score=self.best_score,
            move_count=self.move_count,
            history=self.history.entries(),
            status=self.status,
        )

    @classmethod
    def from_state(cls, state: GameState, win_tile: int = DEFAULT_WIN_TILE,
                   history_limit: int = HISTORY_LIMIT,
                   rng: Optional[random.Random] = None) -> "TileGame":
        """Rebuilds a settled session from a saved state."""
        validate_tiles(state.tiles, state.size)
        for entry in state.history:
            validate_tiles(entry.tiles, state.size)
        game = cls(state.size, win_tile, history_limit, rng)
        game.tiles = clone_tiles(state.tiles)
        game.score = state.score
        game.best_score = max(state.best_score, state.score)
        game.move_count = state.move_count
        game.history = HistoryStack(history_limit, state.history)
        game.status = state.status
        return game
