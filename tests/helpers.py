from tile_core import Tile, apply_merges, apply_positions


def build_tiles(rows):
    """Tiles for a grid of ints (0 = empty), with ids like 'r0c1'."""
    return [
        Tile(id=f"r{r}c{c}", value=value, r=r, c=c)
        for r, row in enumerate(rows)
        for c, value in enumerate(row)
        if value
    ]


def settle(tiles, result):
    """Applies positions then merges, the way a caller settles a move before spawning."""
    return apply_merges(apply_positions(tiles, result), result)


def random_tiles(rng, size):
    """A random, non-empty, well-formed tile collection."""
    cells = [(r, c) for r in range(size) for c in range(size)]
    chosen = rng.sample(cells, rng.randint(1, len(cells)))
    return [
        Tile(id=f"t{i}", value=rng.choice([2, 2, 4, 8, 16]), r=r, c=c)
        for i, (r, c) in enumerate(chosen)
    ]
