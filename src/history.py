# history.py
# Bounded undo stack of tile snapshots.

from typing import List, Optional, Sequence
import logging

from pydantic import BaseModel, Field

from core import HISTORY_LIMIT
from tile_core import Tile, clone_tiles

logger = logging.getLogger(__name__)


class HistoryEntry(BaseModel):
    """A snapshot of the tile collection and the score at that point."""
    tiles: List[Tile] = Field(default_factory=list)
    score: int = Field(default=0, ge=0)


class HistoryStack:
    """
    Undo stack holding at most `limit` snapshots. Pushing past the limit
    drops the oldest snapshot.
    """

    def __init__(self, limit: int = HISTORY_LIMIT, entries: Optional[Sequence[HistoryEntry]] = None):
        if limit < 1:
            raise ValueError("History limit must be at least 1.")
        self.limit = limit
        self._entries: List[HistoryEntry] = [entry.model_copy(deep=True) for entry in entries or []]
        del self._entries[:-limit]

    def push(self, tiles: Sequence[Tile], score: int) -> None:
        """Stores a deep copy of `tiles` with `score` on top of the stack."""
        self._entries.append(HistoryEntry(tiles=clone_tiles(tiles), score=score))
        if len(self._entries) > self.limit:
            self._entries.pop(0)
            logger.debug("History full, dropped the oldest snapshot")

    def peek(self) -> Optional[HistoryEntry]:
        """The newest snapshot without removing it, or None if the stack is empty."""
        return self._entries[-1] if self._entries else None

    def pop(self) -> Optional[HistoryEntry]:
        """Removes and returns the newest snapshot, or None if the stack is empty."""
        if not self._entries:
            return None
        return self._entries.pop()

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[HistoryEntry]:
        """Copies of the stored snapshots, oldest first."""
        return [entry.model_copy(deep=True) for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)
