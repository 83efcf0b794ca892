from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

# The browser's TAB_GROUP_ID_NONE.
NO_GROUP_ID = "-1"

UNTITLED = "Untitled"
UNNAMED_GROUP = "Unnamed Group"


class GroupColor(str, Enum):
    GREY = "grey"
    BLUE = "blue"
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    PINK = "pink"
    PURPLE = "purple"
    CYAN = "cyan"
    ORANGE = "orange"

    @classmethod
    def parse(cls, value: object) -> "GroupColor":
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.GREY


@dataclass(frozen=True)
class GroupRef:
    title: str
    color: GroupColor


@dataclass(frozen=True)
class TabRecord:
    tab_id: str
    title: str
    url: str
    icon_url: str
    active: bool
    pinned: bool
    window_id: str
    group: Optional[GroupRef] = None
    last_accessed: Optional[float] = None

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED


@dataclass(frozen=True)
class WindowRecord:
    window_id: str
    focused: bool
    tabs: Sequence[TabRecord]

    @property
    def tab_count(self) -> int:
        return len(self.tabs)

    @property
    def first_title(self) -> str:
        if not self.tabs:
            return UNTITLED
        return self.tabs[0].display_title

    @property
    def most_recent_access(self) -> float:
        times = [t.last_accessed for t in self.tabs if t.last_accessed]
        return max(times) if times else 0.0


@dataclass(frozen=True)
class TabSnapshot:
    tab_id: str
    title: str = ""
    url: str = ""
    fav_icon_url: str = ""
    active: bool = False
    pinned: bool = False
    group_id: str = NO_GROUP_ID


@dataclass(frozen=True)
class WindowSnapshot:
    window_id: str
    focused: bool
    tabs: Sequence[TabSnapshot]


@dataclass(frozen=True)
class Snapshot:
    @dataclass(frozen=True)
    class GroupSnapshot:
        group_id: str
        title: str = ""
        color: str = GroupColor.GREY.value

    windows: Sequence[WindowSnapshot]
    groups: Sequence["Snapshot.GroupSnapshot"] = ()
