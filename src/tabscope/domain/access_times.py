from __future__ import annotations

import time
from typing import Callable, Optional


class AccessTimeTracker:
    """Last-activation time per tab, kept for the lifetime of the session.

    Writes overwrite: the most recent call wins even if it carries an older
    timestamp. Entries for closed tabs are kept.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._times: dict[str, float] = {}

    def record_access(self, tab_id: str, timestamp: Optional[float] = None) -> float:
        value = self._clock() if timestamp is None else timestamp
        self._times[tab_id] = value
        return value

    def get(self, tab_id: str) -> Optional[float]:
        return self._times.get(tab_id)

    def now(self) -> float:
        return self._clock()

    def __len__(self) -> int:
        return len(self._times)

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self._times
