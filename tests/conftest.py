from __future__ import annotations

from typing import Any

import pytest


class FakePreferenceStore:
    def __init__(self) -> None:
        self.values: dict[str, Any] = {}

    async def get(self, key: str) -> Any:
        return self.values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value


@pytest.fixture
def prefs() -> FakePreferenceStore:
    return FakePreferenceStore()
