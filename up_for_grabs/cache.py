"""
Cache stores for issue counts.

Provides local caching of issue counts to reduce GitHub API requests. Entries
are keyed by project identifier and are only ever replaced, never evicted;
staleness is decided by the reader.
"""

import gzip
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from up_for_grabs.config import get_cache_dir
from up_for_grabs.counts import IssueCount, parse_issue_count

CACHE_FILE_NAME = "issue-counts.json.gz"


def format_timestamp(moment: datetime) -> str:
    """Format a timestamp as ISO-8601 UTC with milliseconds, e.g. 2024-01-01T00:00:00.000Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_timestamp(value: str | int | float) -> datetime:
    """
    Parse a persisted cache timestamp.

    Accepts ISO-8601 strings (with or without a ``Z`` suffix) and numeric
    epoch milliseconds.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Invalid timestamp: {value!r}") from e
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        moment = datetime.fromisoformat(text)
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment
    raise ValueError(f"Invalid timestamp: {value!r}")


@dataclass(frozen=True)
class CacheEntry:
    """Last known issue count of one project."""

    count: IssueCount
    date: datetime
    etag: str | None = None

    def is_fresh(self, freshness_window: float, now: datetime) -> bool:
        """Return True if the entry is younger than ``freshness_window`` seconds.

        Entries dated in the future are never fresh.
        """
        age_seconds = (now - self.date).total_seconds()
        return 0 <= age_seconds < freshness_window

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "count": self.count.to_display(),
            "date": format_timestamp(self.date),
        }
        if self.etag is not None:
            data["etag"] = self.etag
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        """
        Build an entry from its persisted layout.

        Raises:
            ValueError: If ``count`` or ``date`` is missing or invalid.
        """
        if "count" not in data or "date" not in data:
            raise ValueError("Cache entry requires 'count' and 'date'")
        etag = data.get("etag")
        return cls(
            count=parse_issue_count(data["count"]),
            date=parse_timestamp(data["date"]),
            etag=etag if isinstance(etag, str) else None,
        )


class CacheStore(ABC):
    """Key-value persistence for issue counts, keyed by project identifier."""

    @abstractmethod
    def read(self, project_id: str) -> CacheEntry | None:
        """Return the cached entry, or None if there is no usable entry."""

    @abstractmethod
    def write(self, project_id: str, entry: CacheEntry) -> None:
        """Replace any entry stored for ``project_id``."""

    @abstractmethod
    def entries(self) -> dict[str, CacheEntry]:
        """Return all readable entries."""

    @abstractmethod
    def clear(self) -> int:
        """Remove all entries and return how many were removed."""

    def stats(self, freshness_window: float, now: datetime | None = None) -> dict[str, int]:
        """
        Count total, fresh and stale entries.

        Args:
            freshness_window: Maximum entry age in seconds.
            now: Reference time (default: current UTC time).

        Returns:
            Dictionary with ``total``, ``fresh`` and ``stale`` counts.
        """
        now = now or datetime.now(timezone.utc)
        entries = self.entries()
        fresh = sum(1 for entry in entries.values() if entry.is_fresh(freshness_window, now))
        return {"total": len(entries), "fresh": fresh, "stale": len(entries) - fresh}


class InMemoryCacheStore(CacheStore):
    """Cache store living for the lifetime of the object."""

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    def read(self, project_id: str) -> CacheEntry | None:
        return self._entries.get(project_id)

    def write(self, project_id: str, entry: CacheEntry) -> None:
        self._entries[project_id] = entry

    def entries(self) -> dict[str, CacheEntry]:
        return dict(self._entries)

    def clear(self) -> int:
        cleared = len(self._entries)
        self._entries.clear()
        return cleared


class JsonFileCacheStore(CacheStore):
    """
    Cache store persisted as a gzip-compressed JSON document.

    The document maps project identifiers to
    ``{"count": ..., "etag": ..., "date": ...}``. Corrupted files and
    malformed entries read as absent.
    """

    def __init__(self, cache_dir: Path | str | None = None):
        """
        Args:
            cache_dir: Directory holding the cache file. Defaults to the
                configured cache directory.
        """
        self.cache_dir = Path(cache_dir) if cache_dir is not None else get_cache_dir()
        self.path = self.cache_dir / CACHE_FILE_NAME

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with gzip.open(self.path, "rt", encoding="utf-8") as f:
                data = json.load(f)
        except (ValueError, OSError, EOFError):
            # Corrupted cache - treat as empty
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with gzip.open(self.path, "wt", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)

    def read(self, project_id: str) -> CacheEntry | None:
        raw = self._load().get(project_id)
        if not isinstance(raw, dict):
            return None
        try:
            return CacheEntry.from_dict(raw)
        except ValueError:
            return None

    def write(self, project_id: str, entry: CacheEntry) -> None:
        data = self._load()
        data[project_id] = entry.to_dict()
        self._save(data)

    def entries(self) -> dict[str, CacheEntry]:
        entries = {}
        for project_id, raw in self._load().items():
            if not isinstance(raw, dict):
                continue
            try:
                entries[project_id] = CacheEntry.from_dict(raw)
            except ValueError:
                continue
        return entries

    def clear(self) -> int:
        if not self.path.exists():
            return 0
        cleared = len(self._load())
        self.path.unlink()
        return cleared
