from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Sequence

from tabscope.domain.models import TabRecord, WindowRecord


@dataclass(frozen=True)
class FilterResult:
    windows: list[WindowRecord]
    total_tabs: int
    window_count: int


def _normalize(query: str) -> str:
    return query.strip().lower()


def tab_matches(tab: TabRecord, q: str) -> bool:
    return q in tab.title.lower() or q in tab.url.lower()


def filter_windows(windows: Sequence[WindowRecord], query: str) -> FilterResult:
    """Keep the tabs whose title or address contains ``query``, ignoring case.

    Windows left without a matching tab are dropped from the result.
    """
    q = _normalize(query)
    out: list[WindowRecord] = []
    for window in windows:
        if not q:
            tabs = list(window.tabs)
        else:
            tabs = [tab for tab in window.tabs if tab_matches(tab, q)]
        if not tabs:
            continue
        out.append(replace(window, tabs=tabs))

    return FilterResult(
        windows=out,
        total_tabs=sum(len(w.tabs) for w in out),
        window_count=len(out),
    )
