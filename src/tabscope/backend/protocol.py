from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from tabscope.domain.models import Snapshot


@dataclass(frozen=True)
class BackendError(Exception):
    message: str

    def __str__(self) -> str:  # pragma: no cover
        return self.message


class TabEventKind(str, Enum):
    CREATED = "created"
    REMOVED = "removed"
    UPDATED = "updated"
    ACTIVATED = "activated"


@dataclass(frozen=True)
class TabEvent:
    kind: TabEventKind
    tab_id: Optional[str] = None


class Backend(Protocol):
    async def snapshot(self) -> Snapshot: ...

    async def activate_tab(self, window_id: str, tab_id: str) -> None:
        """Bring the window to the foreground, then make the tab active in it."""
        ...

    def events(self) -> AsyncIterator[TabEvent]: ...
