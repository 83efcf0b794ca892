from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from tabscope.domain.sorting import DEFAULT_SORT_PREFERENCE, SortPreference

SORT_PREFERENCE_KEY = "sort_preference"
COLLAPSED_WINDOWS_KEY = "collapsed_windows"


class PreferenceStore(Protocol):
    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


class JsonPreferenceStore:
    """Small key/value blobs kept in one JSON file.

    Reads and writes run in a worker thread and are serialized by a lock, so the
    event loop never blocks on disk.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Any:
        async with self._lock:
            payload = await asyncio.to_thread(self._read)
        return payload.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update, key, value)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
        if not isinstance(payload, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return payload

    def _update(self, key: str, value: Any) -> None:
        try:
            payload = self._read()
        except (OSError, ValueError):
            payload = {}
        payload[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
        os.replace(tmp, self.path)


async def load_sort_preference(store: PreferenceStore) -> SortPreference:
    try:
        raw = await store.get(SORT_PREFERENCE_KEY)
    except Exception as e:
        logger.warning("Failed to load sort preference: {}", e)
        return DEFAULT_SORT_PREFERENCE
    if not isinstance(raw, str):
        return DEFAULT_SORT_PREFERENCE
    return SortPreference.parse(raw) or DEFAULT_SORT_PREFERENCE


async def save_sort_preference(store: PreferenceStore, preference: SortPreference) -> None:
    try:
        await store.set(SORT_PREFERENCE_KEY, preference.format())
    except Exception as e:
        logger.warning("Failed to save sort preference: {}", e)
