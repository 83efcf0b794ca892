from __future__ import annotations

import asyncio
from typing import Mapping

from loguru import logger

from tabscope.storage.preferences import COLLAPSED_WINDOWS_KEY, PreferenceStore


class CollapseStateStore:
    """Per-window collapsed flag, persisted through a preference store.

    ``toggle`` changes the in-memory flag immediately; the durable write runs
    afterwards as a task on the running loop. ``flush`` waits for those writes.
    """

    def __init__(self, store: PreferenceStore) -> None:
        self._store = store
        self._states: dict[str, bool] = {}
        self._saves: set[asyncio.Task[None]] = set()
        self._save_lock = asyncio.Lock()

    async def load(self) -> None:
        try:
            raw = await self._store.get(COLLAPSED_WINDOWS_KEY)
        except Exception as e:
            logger.warning("Failed to load collapse state: {}", e)
            raw = None
        self._states = _coerce_states(raw)

    def is_collapsed(self, window_id: str) -> bool:
        return self._states.get(str(window_id), False)

    def toggle(self, window_id: str) -> bool:
        key = str(window_id)
        collapsed = not self._states.get(key, False)
        self._states[key] = collapsed
        task = asyncio.get_running_loop().create_task(self._save())
        self._saves.add(task)
        task.add_done_callback(self._saves.discard)
        return collapsed

    def snapshot(self) -> dict[str, bool]:
        return dict(self._states)

    async def flush(self) -> None:
        while True:
            pending = [task for task in self._saves if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    async def _save(self) -> None:
        async with self._save_lock:
            try:
                await self._store.set(COLLAPSED_WINDOWS_KEY, dict(self._states))
            except Exception as e:
                logger.warning("Failed to save collapse state: {}", e)


def _coerce_states(raw: object) -> dict[str, bool]:
    if not isinstance(raw, Mapping):
        return {}
    states: dict[str, bool] = {}
    for key, value in raw.items():
        if isinstance(value, bool):
            states[str(key)] = value
    return states
