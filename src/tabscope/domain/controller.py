from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from loguru import logger

from tabscope.backend.protocol import Backend
from tabscope.domain.access_times import AccessTimeTracker
from tabscope.domain.aggregator import aggregate
from tabscope.domain.collapse import CollapseStateStore
from tabscope.domain.formatting import NO_TABS_FOUND, NO_TABS_MATCH
from tabscope.domain.models import TabRecord, WindowRecord
from tabscope.domain.search import FilterResult, filter_windows
from tabscope.domain.sorting import DEFAULT_SORT_PREFERENCE, SortPreference, sort_windows


@dataclass(frozen=True)
class ViewRow:
    window: WindowRecord
    tab: Optional[TabRecord] = None

    @property
    def is_header(self) -> bool:
        return self.tab is None

    @property
    def key(self) -> tuple[str, Optional[str]]:
        return (self.window.window_id, self.tab.tab_id if self.tab else None)


@dataclass
class TabsState:
    windows: list[WindowRecord] = field(default_factory=list)
    view: FilterResult = field(default_factory=lambda: FilterResult([], 0, 0))
    rows: list[ViewRow] = field(default_factory=list)
    query: str = ""
    sort_preference: SortPreference = DEFAULT_SORT_PREFERENCE
    selected_index: int = 0
    status: str = ""

    def clamp_selection(self) -> None:
        if not self.rows:
            self.selected_index = 0
            return
        self.selected_index = max(0, min(self.selected_index, len(self.rows) - 1))


class TabsController:
    def __init__(
        self,
        backend: Backend,
        access_times: AccessTimeTracker,
        collapse: CollapseStateStore,
        *,
        sort_preference: SortPreference = DEFAULT_SORT_PREFERENCE,
    ) -> None:
        self.backend = backend
        self.access_times = access_times
        self.collapse = collapse
        self.state = TabsState(sort_preference=sort_preference)

    async def refresh(self) -> None:
        """Run one full pass: query the provider, sort, then filter."""
        windows = await aggregate(self.backend, self.access_times)
        self.state.windows = sort_windows(windows, self.state.sort_preference)
        self._apply_filter()
        logger.debug(
            "View refreshed",
            windows=len(self.state.windows),
            visible_tabs=self.state.view.total_tabs,
        )

    def set_query(self, query: str) -> None:
        self.state.query = query

    def set_sort_preference(self, preference: SortPreference) -> None:
        self.state.sort_preference = preference

    def visible_windows(self) -> Sequence[WindowRecord]:
        return self.state.view.windows

    def list_rows(self) -> Sequence[ViewRow]:
        return self.state.rows

    def selected_row(self) -> Optional[ViewRow]:
        if not self.state.rows:
            return None
        self.state.clamp_selection()
        return self.state.rows[self.state.selected_index]

    def selected_tab(self) -> Optional[TabRecord]:
        row = self.selected_row()
        return row.tab if row is not None else None

    def select_index(self, index: int) -> None:
        self.state.selected_index = index
        self.state.clamp_selection()

    def toggle_collapsed(self, window_id: str) -> bool:
        collapsed = self.collapse.toggle(window_id)
        self._rebuild_rows()
        return collapsed

    async def activate_selected(self) -> Optional[str]:
        tab = self.selected_tab()
        if tab is None:
            self.state.status = "No tab selected"
            return None
        if not await self.activate_tab(tab):
            return None
        return tab.display_title

    async def activate_tab(self, tab: TabRecord) -> bool:
        try:
            await self.backend.activate_tab(tab.window_id, tab.tab_id)
        except Exception as e:
            logger.opt(exception=e).warning(
                "Failed to switch to tab {}", tab.tab_id, window_id=tab.window_id
            )
            self.state.status = f"Failed to switch tab: {e}"
            return False
        self.access_times.record_access(tab.tab_id)
        self.state.status = ""
        return True

    def _apply_filter(self) -> None:
        self.state.view = filter_windows(self.state.windows, self.state.query)
        if not self.state.windows:
            self.state.status = NO_TABS_FOUND
        elif not self.state.view.windows:
            self.state.status = NO_TABS_MATCH
        elif self.state.status in (NO_TABS_FOUND, NO_TABS_MATCH):
            self.state.status = ""
        self._rebuild_rows()

    def _rebuild_rows(self) -> None:
        previous = self.selected_row()
        rows: list[ViewRow] = []
        for window in self.state.view.windows:
            rows.append(ViewRow(window=window))
            if self.collapse.is_collapsed(window.window_id):
                continue
            rows.extend(ViewRow(window=window, tab=tab) for tab in window.tabs)
        self.state.rows = rows
        self._restore_selection(previous)

    def _restore_selection(self, previous: Optional[ViewRow]) -> None:
        checks: list[Callable[[ViewRow], bool]] = []
        if previous is not None:
            window_id = previous.window.window_id
            checks += [
                lambda row: row.key == previous.key,
                lambda row: not row.is_header and row.window.window_id == window_id,
                lambda row: row.window.window_id == window_id,
            ]
        checks += [
            lambda row: row.tab is not None and row.tab.active and row.window.focused,
            lambda row: not row.is_header,
        ]
        for check in checks:
            for i, row in enumerate(self.state.rows):
                if check(row):
                    self.state.selected_index = i
                    return
        self.state.clamp_selection()
