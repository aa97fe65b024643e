"""
Bounded undo/redo history per entity.

Each stream is an arena of snapshots plus a cursor. Pushing after an undo
prunes the redo branch (history never branches). When a stream grows past
the limit the oldest snapshot is dropped and the cursor is rebased so it
keeps pointing at the same logical snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..errors import NoHistoryError, NotFoundError
from ..models import EntityKey

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


@dataclass(frozen=True)
class HistoryInfo:
    """Position of the cursor within one history stream."""

    current_index: int
    length: int

    @property
    def can_undo(self) -> bool:
        return self.current_index > 0

    @property
    def can_redo(self) -> bool:
        return self.current_index < self.length - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_index": self.current_index,
            "length": self.length,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo,
        }


class _Stream:
    """
    Snapshot arena for one entity.

    Dropped head entries are skipped via `_head` and compacted lazily, which
    keeps trim-on-cap amortized O(1).
    """

    __slots__ = ("_items", "_head", "cursor")

    def __init__(self, content: str):
        self._items: list[str] = [content]
        self._head = 0
        self.cursor = 0  # relative to _head

    def __len__(self) -> int:
        return len(self._items) - self._head

    def at(self, index: int) -> str:
        return self._items[self._head + index]

    def snapshots(self) -> list[str]:
        return self._items[self._head:]

    def push(self, content: str, limit: int) -> None:
        # Prune the redo branch
        del self._items[self._head + self.cursor + 1:]
        self._items.append(content)
        self.cursor = len(self) - 1
        while len(self) > limit:
            self._head += 1
            self.cursor -= 1
        if self._head and self._head * 2 >= len(self._items):
            del self._items[: self._head]
            self._head = 0


class HistoryEngine:
    """
    Owns one history stream per entity key.

    Streams only ever hold prior and current content; the live value always
    lives in the ArtifactStore. `undo`/`redo` move the cursor and return the
    snapshot that the caller must write back into the store.
    """

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit
        self._streams: dict[EntityKey, _Stream] = {}

    def _stream(self, key: EntityKey) -> _Stream:
        stream = self._streams.get(key)
        if stream is None:
            raise NotFoundError(f"no history for {key}")
        return stream

    def seed(self, key: EntityKey, content: str) -> None:
        """Start (or restart) a single-entry stream for `key`."""
        self._streams[key] = _Stream(content)

    def push(self, key: EntityKey, content: str) -> HistoryInfo:
        """
        Record a new snapshot as the current position.

        An entity without a stream is seeded instead, so the first commit
        on a fresh entity has nothing to undo.
        """
        stream = self._streams.get(key)
        if stream is None:
            self.seed(key, content)
            return self.info(key)
        stream.push(content, self.limit)
        logger.debug("push %s -> %d/%d", key, stream.cursor, len(stream))
        return self.info(key)

    def undo(self, key: EntityKey) -> str:
        """
        Step the cursor back one snapshot.

        Returns:
            The snapshot now current

        Raises:
            NotFoundError: No stream exists for `key`
            NoHistoryError: Cursor is already at the oldest snapshot
        """
        stream = self._stream(key)
        if stream.cursor == 0:
            raise NoHistoryError(f"nothing to undo for {key}")
        stream.cursor -= 1
        return stream.at(stream.cursor)

    def redo(self, key: EntityKey) -> str:
        """
        Step the cursor forward one snapshot.

        Raises:
            NotFoundError: No stream exists for `key`
            NoHistoryError: Cursor is already at the newest snapshot
        """
        stream = self._stream(key)
        if stream.cursor >= len(stream) - 1:
            raise NoHistoryError(f"nothing to redo for {key}")
        stream.cursor += 1
        return stream.at(stream.cursor)

    def info(self, key: EntityKey) -> HistoryInfo:
        stream = self._stream(key)
        return HistoryInfo(current_index=stream.cursor, length=len(stream))

    def current(self, key: EntityKey) -> str:
        stream = self._stream(key)
        return stream.at(stream.cursor)

    def snapshots(self, key: EntityKey) -> list[str]:
        """Copy of every retained snapshot for `key`, oldest first."""
        return self._stream(key).snapshots()

    def has(self, key: EntityKey) -> bool:
        return key in self._streams

    def drop(self, key: EntityKey) -> None:
        self._streams.pop(key, None)

    def clear(self) -> None:
        self._streams.clear()

    def __len__(self) -> int:
        return len(self._streams)
