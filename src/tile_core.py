# tile_core.py
# Identity-preserving move engine: every tile keeps a stable id across moves so a
# presentation layer can animate individual tiles. Stateless; callers own the tiles.

from typing import Dict, List, Optional, Sequence, Tuple
import logging
import random
import uuid

from pydantic import BaseModel, Field

from core import (
    Direction,
    SPAWN_FOUR_PROBABILITY,
    empty_board,
)

logger = logging.getLogger(__name__)

# --- Data Model ---

class Coord(BaseModel):
    """A (row, column) cell on the board, 0-indexed."""
    r: int = Field(..., ge=0, description="Row index.")
    c: int = Field(..., ge=0, description="Column index.")


class Tile(BaseModel):
    """A numbered tile with a stable identity."""
    id: str = Field(..., min_length=1, description="Opaque id, stable for the tile's lifetime.")
    value: int = Field(..., gt=0, description="Tile value, a power of two.")
    r: int = Field(..., ge=0, description="Row index.")
    c: int = Field(..., ge=0, description="Column index.")
    merged: bool = Field(
        default=False,
        description="Set on a survivor while its merge is shown; cleared before the next spawn."
    )


class MoveStep(BaseModel):
    """Where one tile ends up after a move."""
    id: str
    to: Coord
    will_merge_into: Optional[str] = Field(
        default=None,
        description="Id of the tile this one slides into and is absorbed by, if any."
    )


class MergeRecord(BaseModel):
    """A survivor and the ids absorbed into it during one move."""
    target_id: str
    from_ids: List[str]


class MoveResult(BaseModel):
    moved: bool
    steps: List[MoveStep] = Field(default_factory=list)
    merges: List[MergeRecord] = Field(default_factory=list)


Slot = Optional[Tuple[str, int]]

# --- Validation ---

def validate_tiles(tiles: Sequence[Tile], size: int) -> None:
    """
    Checks that a tile collection is a well-formed board.
    Args:
        tiles (Sequence[Tile]): The tile collection.
        size (int): The board dimension N.
    Raises:
        ValueError: If the size is below 2, a tile lies outside the board,
                    two tiles share a cell, two tiles share an id
                    or a tile value is not positive.
    """
    if not isinstance(size, int) or size < 2:
        raise ValueError("Board size must be an integer of at least 2.")
    seen_cells = set()
    seen_ids = set()
    for tile in tiles:
        if not (0 <= tile.r < size and 0 <= tile.c < size):
            raise ValueError(f"Tile {tile.id} at ({tile.r}, {tile.c}) is outside a {size}x{size} board.")
        if (tile.r, tile.c) in seen_cells:
            raise ValueError(f"More than one tile at ({tile.r}, {tile.c}).")
        if tile.value <= 0:
            raise ValueError(f"Tile {tile.id} has non-positive value {tile.value}.")
        if tile.id in seen_ids:
            raise ValueError(f"Duplicate tile id {tile.id}.")
        seen_cells.add((tile.r, tile.c))
        seen_ids.add(tile.id)

def tiles_to_board(tiles: Sequence[Tile], size: int) -> List[List[int]]:
    """
    Builds the grid representation (0 for empty cells) of a tile collection.
    """
    validate_tiles(tiles, size)
    board = empty_board(size)
    for tile in tiles:
        board[tile.r][tile.c] = tile.value
    return board

def clone_tiles(tiles: Sequence[Tile]) -> List[Tile]:
    return [tile.model_copy(deep=True) for tile in tiles]

# --- Line Compactor ---

def compact_line(slots: Sequence[Slot]) -> Tuple[List[Optional[str]], List[Tuple[str, str]]]:
    """
    Compacts one line towards index 0, merging equal neighbours once.

    Empty slots are skipped. Of two equal adjacent tiles the one read first
    survives and the later one is absorbed; a survivor is never merged again
    in the same pass.
    Args:
        slots (Sequence[Slot]): `(tile_id, value)` or None per cell, in read order.
    Returns:
        Tuple[List[Optional[str]], List[Tuple[str, str]]]:
            - Surviving ids in output order, padded with None to the input length.
            - `(target_id, absorbed_id)` pairs.
    """
    occupied = [slot for slot in slots if slot is not None]
    output: List[Optional[str]] = []
    merge_pairs: List[Tuple[str, str]] = []
    read_idx = 0

    while read_idx < len(occupied):
        tile_id, value = occupied[read_idx]
        if read_idx + 1 < len(occupied) and occupied[read_idx + 1][1] == value:
            output.append(tile_id)
            merge_pairs.append((tile_id, occupied[read_idx + 1][0]))
            read_idx += 2
        else:
            output.append(tile_id)
            read_idx += 1

    output += [None] * (len(slots) - len(output))
    return output, merge_pairs

# --- Directional Unifier ---

def line_coords(direction: Direction, line: int, size: int) -> List[Coord]:
    """
    Returns the cells of one line in the order they are read for `direction`.

    The same list maps output index j of the compactor to its destination:
    the j-th cell from the edge the tiles slide towards.
    Args:
        direction (Direction): The move direction.
        line (int): Row index for LEFT/RIGHT, column index for UP/DOWN.
        size (int): The board dimension N.
    Returns:
        List[Coord]: N coordinates, leading edge first.
    """
    direction = Direction(direction)
    indices = range(size)
    if direction in (Direction.RIGHT, Direction.DOWN):
        indices = reversed(indices)
    if direction in (Direction.LEFT, Direction.RIGHT):
        return [Coord(r=line, c=i) for i in indices]
    return [Coord(r=i, c=line) for i in indices]

# --- Move Engine ---

def compute_move(tiles: Sequence[Tile], size: int, direction: Direction) -> MoveResult:
    """
    Computes the result of sliding every tile in `direction`.

    The input tiles are never mutated. Survivors get a step to their new cell;
    absorbed tiles get a step to their target's cell with `will_merge_into`
    set, so the caller can animate the slide before removing them.
    Args:
        tiles (Sequence[Tile]): Current tiles, fully settled (no pending merges).
        size (int): The board dimension N.
        direction (Direction): The move direction.
    Returns:
        MoveResult: `moved` is False for a saturated direction.
    Raises:
        ValueError: If the board is malformed or the direction is unknown.
    """
    validate_tiles(tiles, size)
    direction = Direction(direction)

    by_cell: Dict[Tuple[int, int], Tile] = {(t.r, t.c): t for t in tiles}
    steps: List[MoveStep] = []
    destinations: Dict[str, Coord] = {}
    merge_pairs: List[Tuple[str, str]] = []

    for line in range(size):
        coords = line_coords(direction, line, size)
        slots: List[Slot] = []
        for coord in coords:
            tile = by_cell.get((coord.r, coord.c))
            slots.append((tile.id, tile.value) if tile else None)

        output, line_merges = compact_line(slots)
        for tile_id, coord in zip(output, coords):
            if tile_id is not None:
                steps.append(MoveStep(id=tile_id, to=coord))
                destinations[tile_id] = coord
        merge_pairs.extend(line_merges)

    from_ids_by_target: Dict[str, List[str]] = {}
    for target_id, absorbed_id in merge_pairs:
        target_coord = destinations[target_id]
        steps.append(MoveStep(id=absorbed_id, to=target_coord.model_copy(), will_merge_into=target_id))
        destinations[absorbed_id] = target_coord
        from_ids_by_target.setdefault(target_id, []).append(absorbed_id)

    merges = [MergeRecord(target_id=target, from_ids=from_ids)
              for target, from_ids in from_ids_by_target.items()]

    moved = bool(merges)
    for tile in tiles:
        dest = destinations.get(tile.id)
        if dest is not None and (dest.r, dest.c) != (tile.r, tile.c):
            moved = True

    logger.debug("compute_move %s: moved=%s, %d steps, %d merges",
                 direction.value, moved, len(steps), len(merges))
    return MoveResult(moved=moved, steps=steps, merges=merges)

def score_gained(tiles: Sequence[Tile], result: MoveResult) -> int:
    """
    Points earned by a move: the pre-move values of all absorbed tiles.
    Args:
        tiles (Sequence[Tile]): The tiles the move was computed from.
        result (MoveResult): The engine's result for that move.
    Returns:
        int: The score increase.
    """
    values = {tile.id: tile.value for tile in tiles}
    return sum(values.get(from_id, 0) for merge in result.merges for from_id in merge.from_ids)

def apply_positions(tiles: Sequence[Tile], result: MoveResult) -> List[Tile]:
    """
    First phase of applying a move: every tile takes its step's destination.
    Absorbed tiles now share a cell with their target. Tiles without a step stay put.
    """
    step_by_id = {step.id: step for step in result.steps}
    updated = []
    for tile in tiles:
        step = step_by_id.get(tile.id)
        if step is None:
            updated.append(tile.model_copy(update={"merged": False}))
        else:
            updated.append(tile.model_copy(update={"r": step.to.r, "c": step.to.c, "merged": False}))
    return updated

def apply_merges(tiles: Sequence[Tile], result: MoveResult) -> List[Tile]:
    """
    Second phase of applying a move: absorbed tiles are removed and their
    values added to their targets, which are flagged as merged.
    """
    working = {tile.id: tile.model_copy() for tile in tiles}
    for merge in result.merges:
        target = working.get(merge.target_id)
        if target is None:
            continue
        added = 0
        for from_id in merge.from_ids:
            absorbed = working.pop(from_id, None)
            if absorbed is not None:
                added += absorbed.value
        working[merge.target_id] = target.model_copy(update={"value": target.value + added, "merged": True})
    return list(working.values())

# --- Tile Spawner ---

def make_id() -> str:
    """Produces a fresh opaque tile id."""
    return uuid.uuid4().hex

def spawn_random_tile(tiles: Sequence[Tile], size: int,
                      rng: Optional[random.Random] = None) -> Optional[Tile]:
    """
    Creates a new tile (90% chance of 2, 10% chance of 4) in a random empty cell.
    Args:
        tiles (Sequence[Tile]): The current tiles; not modified.
        size (int): The board dimension N.
        rng (Optional[random.Random]): Randomness source, the `random` module if None.
    Returns:
        Optional[Tile]: The new tile, or None if the board is full. The caller
                        decides whether to add it to the collection.
    """
    validate_tiles(tiles, size)
    rng = rng or random
    occupied = {(tile.r, tile.c) for tile in tiles}
    empties = [(r, c) for r in range(size) for c in range(size) if (r, c) not in occupied]
    if not empties:
        return None

    row, col = rng.choice(empties)
    value = 4 if rng.random() < SPAWN_FOUR_PROBABILITY else 2
    tile = Tile(id=make_id(), value=value, r=row, c=col)
    logger.debug("Spawned %d at (%d, %d)", value, row, col)
    return tile
