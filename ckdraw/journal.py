"""
Operation journal.

State-replacing operations (ingest, restore, restyle, export) can be
appended to a JSON Lines file with counts of what was discarded and what
was produced. The journal is optional and only written when a path is
configured.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class Discarded:
    """What an operation threw away."""
    symbols: int = 0
    schematic: int = 0
    history_entries: int = 0

    def summary(self) -> list[str]:
        return _nonzero(("symbols", self.symbols), ("schematic", self.schematic), ("history entries", self.history_entries))


@dataclass
class Produced:
    """What an operation created."""
    symbols: int = 0
    schematic: int = 0
    bytes_written: int = 0

    def summary(self) -> list[str]:
        return _nonzero(("symbols", self.symbols), ("schematic", self.schematic), ("bytes", self.bytes_written))


def _nonzero(*counts: tuple[str, int]) -> list[str]:
    return [f"{count} {label}" for label, count in counts if count]


def _counts(cls: type, raw: Any) -> Any:
    # Count fields added by later versions are ignored
    if not isinstance(raw, dict):
        raise TypeError("counts must be an object")
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in raw.items() if k in known})


@dataclass
class JournalEntry:
    """One recorded operation, serialized as a single JSON line."""
    timestamp: str
    operation: str
    discarded: Discarded
    produced: Produced
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "JournalEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            discarded=_counts(Discarded, data.get("discarded", {})),
            produced=_counts(Produced, data.get("produced", {})),
            metadata=data.get("metadata", {}),
        )


class Journal:
    """Appends entries to a JSON Lines file; a no-op when `path` is None."""

    def __init__(self, path: Path | None):
        self.path = path

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def record(
        self,
        operation: str,
        discarded: Discarded | None = None,
        produced: Produced | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> JournalEntry:
        """
        Record an operation.

        Args:
            operation: Name of the operation (e.g., "ingest", "export")
            discarded: Summary of what was thrown away
            produced: Summary of what was created
            metadata: Additional context (e.g., design name, file names)

        Returns:
            The created entry
        """
        entry = JournalEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            operation=operation,
            discarded=discarded or Discarded(),
            produced=produced or Produced(),
            metadata=metadata or {},
        )
        if self.path is None:
            return entry

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Append as JSON Lines format (one JSON object per line)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(entry)) + "\n")
        logger.debug("journal: %s", operation)
        return entry


def read_journal(path: Path, last_n: int | None = None) -> list[JournalEntry]:
    """
    Read entries from a journal file.

    Args:
        path: Journal file
        last_n: If specified, return only the last N entries

    Returns:
        List of entries, oldest first
    """
    if not path.exists():
        return []

    entries = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                try:
                    entries.append(JournalEntry.from_dict(json.loads(line)))
                except (json.JSONDecodeError, KeyError, TypeError):
                    logger.warning("skipping malformed journal line")
                    continue

    if last_n is not None:
        return entries[-last_n:]
    return entries


def format_journal_entry(entry: JournalEntry) -> str:
    """Format an entry for human-readable display."""
    lines = [f"[{entry.timestamp}] {entry.operation}"]
    if discarded := entry.discarded.summary():
        lines.append(f"  Discarded: {', '.join(discarded)}")
    if produced := entry.produced.summary():
        lines.append(f"  Produced: {', '.join(produced)}")
    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")
    return "\n".join(lines)
