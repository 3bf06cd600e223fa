import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import core
import tile_core

logger = logging.getLogger(__name__)

# Initialize the rate limiter
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(
    title="2048 Tile Engine API",
    description="A stateless API for the 2048 tile engine. Tiles keep stable ids across moves "\
                "so clients can animate them. Manage your game state (tiles, score, history) on the client side.",
    version="1.0.0"
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Pydantic Models for API requests and responses ---

class NewGameSettings(BaseModel):
    """Settings for creating a new game."""
    size: int = Field(
        default=core.DEFAULT_BOARD_SIZE,
        ge=2, # Board size must be at least 2x2
        le=core.MAX_BOARD_SIZE,
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    win_tile: int = Field(
        default=core.DEFAULT_WIN_TILE,
        gt=0,
        description="The tile value to achieve for winning the game (e.g., 2048)."
    )

class GameStateData(BaseModel):
    """Represents the complete state of a game instance."""
    tiles: List[tile_core.Tile] = Field(..., description="Every tile on the board with its id, value and cell.")
    score: int = Field(..., ge=0, description="Current score of the game.")
    status: core.GameStatus = Field(..., description="Current status of the game (playing, won, lost).")
    win_tile: int = Field(..., gt=0, description="The tile value required to win this game instance.")
    size: int = Field(..., ge=2, le=core.MAX_BOARD_SIZE, description="The dimension N of the N x N board.")

class ComputeRequestData(BaseModel):
    """Data required to compute a move without applying it."""
    tiles: List[tile_core.Tile] = Field(..., description="Current tiles, settled (no pending merges).")
    size: int = Field(..., ge=2, le=core.MAX_BOARD_SIZE, description="The dimension N of the N x N board.")
    direction: core.Direction = Field(..., description="Direction of the move (up, down, left, right).")

class ComputeResponseData(tile_core.MoveResult):
    """The engine's move result plus the points it would earn."""
    score_gained: int = Field(..., ge=0, description="Points the move earns if applied.")

class MoveRequestData(ComputeRequestData):
    """Data required to make a move."""
    score: int = Field(..., ge=0, description="Current score before the move.")
    win_tile: int = Field(default=core.DEFAULT_WIN_TILE, gt=0, description="The win condition tile for this game instance.")

class MoveResponseData(GameStateData):
    """Response after a move: the new game state plus what the engine did."""
    moved: bool = Field(..., description="True if the move changed the board, False otherwise.")
    steps: List[tile_core.MoveStep] = Field(default_factory=list, description="Destination of every tile, absorbed ones included.")
    merges: List[tile_core.MergeRecord] = Field(default_factory=list, description="Survivors and the ids absorbed into them.")
    spawned: Optional[tile_core.Tile] = Field(default=None, description="The tile added after the move, if any.")
    message: Optional[str] = Field(
        default=None,
        description="An optional message, e.g., if a move was not effective or the game ended."
    )

# --- API Endpoints ---

@app.post("/game/new", response_model=GameStateData, summary="Start a New 2048 Game")
@limiter.limit("100/minute")
async def start_new_game(request: Request, settings: NewGameSettings):
    """
    Initializes a new game with two random tiles on an N x N board.

    - **size**: Dimension of the N x N board (e.g., 4 for 4x4). Default is 4.
    - **win_tile**: Tile value to reach to win (e.g., 2048). Default is 2048.
    """
    try:
        tiles: List[tile_core.Tile] = []
        for _ in range(2):
            spawned = tile_core.spawn_random_tile(tiles, settings.size)
            if spawned is not None:
                tiles.append(spawned)
        status = core.determine_game_status(tile_core.tiles_to_board(tiles, settings.size), settings.win_tile)
        return GameStateData(tiles=tiles, score=0, status=status, win_tile=settings.win_tile, size=settings.size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Unexpected error in /game/new")
        raise HTTPException(status_code=500, detail=f"An unexpected error occurred during game creation: {str(e)}")


@app.post("/game/compute", response_model=ComputeResponseData, summary="Compute a Move Without Applying It")
@limiter.limit("100/minute")
async def preview_move(request: Request, request_data: ComputeRequestData):
    """
    Returns where every tile would go and which tiles would merge, leaving
    the phased application (positions, merges, spawn) to the client.
    """
    try:
        result = tile_core.compute_move(request_data.tiles, request_data.size, request_data.direction)
        gained = tile_core.score_gained(request_data.tiles, result)
        return ComputeResponseData(**result.model_dump(), score_gained=gained)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error computing move: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error in /game/compute")
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while computing the move: {str(e)}")


@app.post("/game/move", response_model=MoveResponseData, summary="Make a Move in the Game")
@limiter.limit("100/minute")
async def make_move(request: Request, request_data: MoveRequestData):
    """
    Processes a player's move in the game.

    The API will:
    1. Compute the move (slide tiles, merge).
    2. If the move changed the board, apply positions and merges, then add a new random tile (2 or 4).
    3. Determine the new game status (playing, won, lost).
    """
    tiles = request_data.tiles
    size = request_data.size
    message_for_client: Optional[str] = None
    spawned: Optional[tile_core.Tile] = None

    try:
        result = tile_core.compute_move(tiles, size, request_data.direction)
        final_tiles = tile_core.clone_tiles(tiles)
        final_score = request_data.score

        if result.moved:
            final_score += tile_core.score_gained(tiles, result)
            final_tiles = tile_core.apply_merges(tile_core.apply_positions(tiles, result), result)
            final_tiles = [tile.model_copy(update={"merged": False}) for tile in final_tiles]
            spawned = tile_core.spawn_random_tile(final_tiles, size)
            if spawned is not None:
                final_tiles.append(spawned)
        else:
            message_for_client = "Move was not effective; no tile can slide or merge in that direction."

        status = core.determine_game_status(tile_core.tiles_to_board(final_tiles, size), request_data.win_tile)
        if status == core.GameStatus.WON:
            message_for_client = "Congratulations! You won!"
        elif status == core.GameStatus.LOST:
            message_for_client = "Game Over. No more valid moves."

        return MoveResponseData(
            tiles=final_tiles,
            score=final_score,
            status=status,
            win_tile=request_data.win_tile,
            size=size,
            moved=result.moved,
            steps=result.steps,
            merges=result.merges,
            spawned=spawned,
            message=message_for_client
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Error processing move: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error in /game/move")
        raise HTTPException(status_code=500, detail=f"An unexpected server error occurred while processing the move: {str(e)}")
