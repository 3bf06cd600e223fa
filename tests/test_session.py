import random

import pytest

from core import Direction, GameStatus
from helpers import build_tiles
from history import HistoryEntry
from session import GameState, MovePhase, TileGame
from tile_core import Tile


def snapshot(tiles):
    return sorted((t.id, t.value, t.r, t.c) for t in tiles)


@pytest.fixture
def game():
    return TileGame(size=4, rng=random.Random(5))


def test_new_game_has_two_tiles(game):
    assert len(game.tiles) == 2
    assert game.score == 0
    assert game.move_count == 0
    assert game.status == GameStatus.PLAYING
    assert game.phase == MovePhase.SPAWNED
    assert len(game.history) == 0


def test_move_runs_through_three_phases(game):
    game.tiles = build_tiles([[2, 2, 4, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])

    result = game.begin_move(Direction.LEFT)
    assert result.moved
    assert game.phase == MovePhase.POSITIONS_UPDATED
    assert game.is_animating
    # absorbed tile sits on its target until merges are applied
    positions = {t.id: (t.r, t.c) for t in game.tiles}
    assert positions["r0c1"] == positions["r0c0"] == (0, 0)
    assert positions["r0c2"] == (0, 1)

    assert game.apply_merges() == 2
    assert game.phase == MovePhase.MERGES_APPLIED
    assert game.score == 2
    assert snapshot(game.tiles) == [("r0c0", 4, 0, 0), ("r0c2", 4, 0, 1)]
    assert [t.merged for t in game.tiles if t.id == "r0c0"] == [True]

    spawned = game.finish_move()
    assert spawned is not None
    assert game.phase == MovePhase.SPAWNED
    assert game.move_count == 1
    assert len(game.tiles) == 3
    assert not any(t.merged for t in game.tiles)


def test_input_is_locked_during_a_move(game):
    game.tiles = build_tiles([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    game.begin_move(Direction.LEFT)

    assert game.begin_move(Direction.RIGHT) is None
    assert game.undo() is False
    assert len(game.history) == 1


def test_phases_must_run_in_order(game):
    with pytest.raises(RuntimeError):
        game.apply_merges()
    with pytest.raises(RuntimeError):
        game.finish_move()


def test_saturated_move_is_a_no_op(game):
    game.tiles = build_tiles([[2, 4, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    before = snapshot(game.tiles)

    assert game.move(Direction.LEFT) is False
    assert snapshot(game.tiles) == before
    assert len(game.history) == 0
    assert game.move_count == 0


def test_undo_restores_pre_move_state(game):
    game.tiles = build_tiles([[2, 2, 4, 0], [0, 0, 0, 0], [0, 8, 0, 0], [0, 0, 0, 0]])
    game.score = 10
    before = snapshot(game.tiles)

    assert game.move(Direction.LEFT)
    assert game.score == 12

    assert game.undo() is True
    assert snapshot(game.tiles) == before
    assert game.score == 10
    assert game.move_count == 0

    assert game.undo() is False
    assert snapshot(game.tiles) == before
    assert game.score == 10


def test_reaching_win_tile_ends_game(game):
    game.tiles = build_tiles([[1024, 1024, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    assert game.move(Direction.LEFT)
    assert game.status == GameStatus.WON
    assert game.move(Direction.DOWN) is False


def test_filling_last_cell_without_pairs_is_lost():
    game = TileGame(size=2, rng=random.Random(1))
    game.tiles = build_tiles([[2, 8], [0, 16]])

    assert game.move(Direction.LEFT)
    assert len(game.tiles) == 4
    assert game.status == GameStatus.LOST
    assert game.move(Direction.UP) is False


def test_undo_after_loss_resumes_play():
    game = TileGame(size=2, rng=random.Random(1))
    game.tiles = build_tiles([[2, 8], [0, 16]])
    game.move(Direction.LEFT)

    assert game.undo()
    assert game.status == GameStatus.PLAYING


def test_reset_changes_size_and_clears_state(game):
    game.tiles = build_tiles([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    game.move(Direction.LEFT)

    game.reset(3)
    assert game.size == 3
    assert len(game.tiles) == 2
    assert all(t.r < 3 and t.c < 3 for t in game.tiles)
    assert game.score == 0
    assert game.move_count == 0
    assert len(game.history) == 0

    with pytest.raises(ValueError):
        game.reset(1)


def test_invalid_settings_are_rejected():
    with pytest.raises(ValueError):
        TileGame(size=1)
    with pytest.raises(ValueError):
        TileGame(win_tile=0)


def test_state_round_trip(game):
    game.tiles = build_tiles([[2, 2, 0, 0], [0, 4, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    game.move(Direction.LEFT)

    payload = game.to_state().model_dump(mode="json", by_alias=True)
    assert set(payload) >= {"tiles", "score", "moveCount", "history", "status"}
    assert payload["status"] == "playing"
    assert set(payload["tiles"][0]) >= {"id", "value", "r", "c"}

    restored = TileGame.from_state(GameState.model_validate(payload))
    assert snapshot(restored.tiles) == snapshot(game.tiles)
    assert restored.score == game.score
    assert restored.move_count == 1
    assert restored.status == GameStatus.PLAYING

    assert restored.undo()
    assert snapshot(restored.tiles) == [("r0c0", 2, 0, 0), ("r0c1", 2, 0, 1), ("r1c1", 4, 1, 1)]


def test_from_state_rejects_malformed_tiles():
    state = GameState(size=2, tiles=build_tiles([[2, 0], [0, 0]]) + build_tiles([[4, 0], [0, 0]]))
    with pytest.raises(ValueError):
        TileGame.from_state(state)


def test_undo_rejects_snapshot_that_does_not_fit_board():
    state = GameState(
        size=2,
        tiles=build_tiles([[2, 0], [0, 0]]),
        score=4,
        history=[HistoryEntry(tiles=build_tiles([[2, 0], [0, 0]]), score=0)],
    )
    game = TileGame.from_state(state)
    game.history.peek().tiles[0].c = 9

    with pytest.raises(ValueError):
        game.undo()
    assert snapshot(game.tiles) == [("r0c0", 2, 0, 0)]
    assert game.score == 4
    assert len(game.history) == 1


def test_from_state_rejects_malformed_history():
    state = GameState(
        size=2,
        tiles=build_tiles([[2, 0], [0, 0]]),
        history=[HistoryEntry(tiles=[Tile(id="a", value=2, r=0, c=9)], score=99)],
    )
    with pytest.raises(ValueError):
        TileGame.from_state(state)


def test_best_score_survives_reset(game):
    game.tiles = build_tiles([[4, 4, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    game.move(Direction.LEFT)
    assert game.score == 4
    assert game.best_score == 4

    game.undo()
    assert game.score == 0
    assert game.best_score == 4

    game.reset()
    assert game.score == 0
    assert game.best_score == 4

    game.tiles = build_tiles([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    game.move(Direction.LEFT)
    assert game.best_score == 4


def test_best_score_round_trips(game):
    game.tiles = build_tiles([[8, 8, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]])
    game.move(Direction.LEFT)
    game.reset()

    payload = game.to_state().model_dump(mode="json")
    assert payload["bestScore"] == 8
    assert TileGame.from_state(GameState.model_validate(payload)).best_score == 8


def test_state_dumps_persisted_keys_by_default(game):
    payload = game.to_state().model_dump()
    assert "moveCount" in payload
    assert "move_count" not in payload
    assert "bestScore" in payload
