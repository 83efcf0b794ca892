from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence, Union

from tabscope.domain.models import WindowRecord


class SortType(str, Enum):
    TAB_COUNT = "tab-count"
    FOCUSED = "focused"
    ALPHABETICAL = "alphabetical"
    LAST_ACCESSED = "last-accessed"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortPreference:
    sort_type: SortType = SortType.TAB_COUNT
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, text: str) -> Optional["SortPreference"]:
        """Parse ``"<type>-<direction>"``, splitting at the last dash."""
        head, sep, tail = text.strip().rpartition("-")
        if not sep:
            return None
        try:
            return cls(SortType(head), SortDirection(tail))
        except ValueError:
            return None

    def format(self) -> str:
        return f"{self.sort_type.value}-{self.direction.value}"

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC


DEFAULT_SORT_PREFERENCE = SortPreference()

SORT_LABELS: dict[SortPreference, str] = {
    SortPreference(SortType.TAB_COUNT, SortDirection.ASC): "Tab count (fewest first)",
    SortPreference(SortType.TAB_COUNT, SortDirection.DESC): "Tab count (most first)",
    SortPreference(SortType.FOCUSED, SortDirection.ASC): "Current window first",
    SortPreference(SortType.FOCUSED, SortDirection.DESC): "Current window last",
    SortPreference(SortType.ALPHABETICAL, SortDirection.ASC): "Alphabetical (A-Z)",
    SortPreference(SortType.ALPHABETICAL, SortDirection.DESC): "Alphabetical (Z-A)",
    SortPreference(SortType.LAST_ACCESSED, SortDirection.ASC): "Least recently used",
    SortPreference(SortType.LAST_ACCESSED, SortDirection.DESC): "Most recently used",
}


def _unfocused(window: WindowRecord) -> int:
    return 0 if window.focused else 1


def _tab_count_key(desc: bool) -> Callable[[WindowRecord], object]:
    sign = -1 if desc else 1
    return lambda w: (sign * w.tab_count, _unfocused(w))


def _focused_key(desc: bool) -> Callable[[WindowRecord], object]:
    if desc:
        return lambda w: (1 - _unfocused(w), w.tab_count)
    return lambda w: (_unfocused(w), w.tab_count)


def collation_key(text: str) -> tuple[str, str]:
    """Case- and accent-insensitive ordering key, so "Éclair" sorts with "e"."""
    folded = text.casefold()
    decomposed = unicodedata.normalize("NFKD", folded)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base, folded)


def sort_windows(
    windows: Sequence[WindowRecord], preference: Union[SortPreference, str, None]
) -> list[WindowRecord]:
    """Return the windows reordered by ``preference``; the input is not modified.

    All orderings are stable. An unrecognized preference keeps the input order.
    """
    if isinstance(preference, str):
        preference = SortPreference.parse(preference)
    if preference is None:
        return list(windows)

    desc = preference.descending
    kind = preference.sort_type
    if kind is SortType.TAB_COUNT:
        return sorted(windows, key=_tab_count_key(desc))
    if kind is SortType.FOCUSED:
        return sorted(windows, key=_focused_key(desc))
    if kind is SortType.ALPHABETICAL:
        return sorted(windows, key=lambda w: collation_key(w.first_title), reverse=desc)
    if kind is SortType.LAST_ACCESSED:
        # asc puts the least recently used window first.
        return sorted(windows, key=lambda w: w.most_recent_access, reverse=desc)
    return list(windows)
