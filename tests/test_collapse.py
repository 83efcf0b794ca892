from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from tabscope.domain.collapse import CollapseStateStore
from tabscope.storage.preferences import (
    COLLAPSED_WINDOWS_KEY,
    JsonPreferenceStore,
)


class FailingStore:
    async def get(self, key: str) -> Any:
        raise OSError("disk gone")

    async def set(self, key: str, value: Any) -> None:
        raise OSError("disk gone")


@pytest.mark.asyncio
async def test_default_is_not_collapsed(prefs: Any) -> None:
    store = CollapseStateStore(prefs)
    await store.load()
    assert store.is_collapsed("1") is False


@pytest.mark.asyncio
async def test_toggle_applies_immediately_and_persists_later(prefs: Any) -> None:
    store = CollapseStateStore(prefs)
    await store.load()

    assert store.toggle("1") is True
    assert store.is_collapsed("1") is True

    await store.flush()
    assert prefs.values[COLLAPSED_WINDOWS_KEY] == {"1": True}

    assert store.toggle("1") is False
    await store.flush()
    assert prefs.values[COLLAPSED_WINDOWS_KEY] == {"1": False}


@pytest.mark.asyncio
async def test_toggle_round_trips_through_json_file(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    store = CollapseStateStore(JsonPreferenceStore(path))
    await store.load()
    store.toggle("42")
    store.toggle("7")
    store.toggle("7")
    await store.flush()

    reloaded = CollapseStateStore(JsonPreferenceStore(path))
    await reloaded.load()
    assert reloaded.is_collapsed("42") is True
    assert reloaded.is_collapsed("7") is False


@pytest.mark.asyncio
async def test_load_ignores_malformed_blob(prefs: Any) -> None:
    prefs.values[COLLAPSED_WINDOWS_KEY] = {"1": "yes", "2": True}
    store = CollapseStateStore(prefs)
    await store.load()
    assert store.snapshot() == {"2": True}

    prefs.values[COLLAPSED_WINDOWS_KEY] = ["nope"]
    store = CollapseStateStore(prefs)
    await store.load()
    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_store_failures_are_not_fatal() -> None:
    store = CollapseStateStore(FailingStore())
    await store.load()
    assert store.is_collapsed("1") is False
    assert store.toggle("1") is True
    await store.flush()
    assert store.is_collapsed("1") is True
