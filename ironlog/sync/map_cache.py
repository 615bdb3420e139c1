"""
Route cache: external activity id -> processed ``[lng, lat]`` points.

A missing entry means "not fetched yet"; there is no negative entry, so
activities without GPS data are requested again on every pass.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import aiofiles

from ironlog.store.json_store import write_json_atomic
from ironlog.sync.coordinates import LngLat, is_lng_lat
from ironlog.utils.logger import LoggerMixin


class MapCache(ABC):
    """In-memory view of a persistent key-value route store."""

    def __init__(self) -> None:
        self._entries: dict[str, list[LngLat]] = {}
        self._dirty: set[str] = set()

    @abstractmethod
    async def _read_all(self) -> dict[str, list[LngLat]]:
        """Read every persisted entry."""

    @abstractmethod
    async def _write_all(self, entries: dict[str, list[LngLat]]) -> None:
        """Persist every entry, replacing what was stored."""

    async def load(self) -> None:
        """Replace the in-memory view with the persisted entries."""
        self._entries = await self._read_all()
        self._dirty.clear()

    def get(self, external_id: str) -> list[LngLat] | None:
        return self._entries.get(str(external_id))

    def __contains__(self, external_id: object) -> bool:
        return bool(self._entries.get(str(external_id)))

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def snapshot(self) -> dict[str, list[LngLat]]:
        return {key: list(value) for key, value in self._entries.items()}

    def set_many(self, entries: Mapping[str, list[LngLat]]) -> None:
        """Stage entries in memory; nothing is written until ``flush``."""
        for external_id, coordinates in entries.items():
            self._entries[str(external_id)] = list(coordinates)
            self._dirty.add(str(external_id))

    @property
    def has_changes(self) -> bool:
        return bool(self._dirty)

    async def flush(self) -> bool:
        """Persist the cache if anything changed. Returns whether it wrote."""
        if not self._dirty:
            return False
        await self._write_all(self._entries)
        self._dirty.clear()
        return True


class MemoryMapCache(MapCache):
    """Cache whose "persistent" side is a plain dict."""

    def __init__(self, initial: Mapping[str, list[LngLat]] | None = None) -> None:
        super().__init__()
        self.persisted: dict[str, list[LngLat]] = dict(initial or {})
        self.flush_count = 0

    async def _read_all(self) -> dict[str, list[LngLat]]:
        return {key: list(value) for key, value in self.persisted.items()}

    async def _write_all(self, entries: dict[str, list[LngLat]]) -> None:
        self.persisted = {key: list(value) for key, value in entries.items()}
        self.flush_count += 1


class JsonFileMapCache(MapCache, LoggerMixin):
    """Cache stored as one JSON object, rewritten wholesale on flush."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    async def _read_all(self) -> dict[str, list[LngLat]]:
        if not self.path.exists():
            return {}
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                content = await f.read()
            data: Any = json.loads(content) if content.strip() else {}
        except (OSError, ValueError) as e:
            self.logger.warning(
                "Map cache unreadable, starting empty",
                path=str(self.path),
                error=str(e),
            )
            return {}

        if not isinstance(data, dict):
            self.logger.warning("Map cache is not a JSON object", path=str(self.path))
            return {}
        entries: dict[str, list[LngLat]] = {}
        for key, value in data.items():
            if isinstance(value, list) and all(is_lng_lat(p) for p in value):
                entries[str(key)] = value
            else:
                self.logger.warning(
                    "Dropping malformed map cache entry",
                    path=str(self.path),
                    external_id=str(key),
                )
        return entries

    async def _write_all(self, entries: dict[str, list[LngLat]]) -> None:
        await write_json_atomic(self.path, entries, prefix="map-cache_")
        self.logger.info("Map cache written", path=str(self.path), entries=len(entries))
