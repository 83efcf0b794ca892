from __future__ import annotations

import contextlib
import time
from typing import Any, Optional

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.coordinate import Coordinate
from textual.widgets import DataTable, Footer, Header, Input, Select, Static

from tabscope.backend.protocol import Backend
from tabscope.domain.access_times import AccessTimeTracker
from tabscope.domain.collapse import CollapseStateStore
from tabscope.domain.controller import TabsController, ViewRow
from tabscope.domain.formatting import (
    format_time_ago,
    group_color_hex,
    tab_count_label,
    window_label,
)
from tabscope.domain.scheduler import DEFAULT_DEBOUNCE_DELAY, LiveUpdateScheduler
from tabscope.domain.sorting import DEFAULT_SORT_PREFERENCE, SORT_LABELS, SortPreference
from tabscope.storage.preferences import (
    PreferenceStore,
    load_sort_preference,
    save_sort_preference,
)

SORT_OPTIONS = [(label, preference.format()) for preference, label in SORT_LABELS.items()]


class TabscopeApp(App[None]):
    TITLE = "tabscope"
    BINDINGS = [Binding("ctrl+q", "quit", "Quit", show=False, priority=True)]
    CSS = """
    Screen { layout: vertical; }
    #body { height: 1fr; }
    #search_row { height: auto; }
    #search_label { color: $text-muted; height: 3; content-align: left middle; }
    #search { width: 1fr; height: 3; }
    #sort { width: 32; }
    #status { height: auto; }
    Input { border: round $surface; }
    Input:focus { border: round $accent; }
    """

    def __init__(
        self,
        *,
        backend: Backend,
        preferences: PreferenceStore,
        debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
        access_times: Optional[AccessTimeTracker] = None,
    ) -> None:
        super().__init__()
        self.preferences = preferences
        self.access_times = access_times or AccessTimeTracker()
        self.collapse = CollapseStateStore(preferences)
        self.controller = TabsController(
            backend=backend, access_times=self.access_times, collapse=self.collapse
        )
        self.scheduler = LiveUpdateScheduler(
            self._recompute, self.access_times, delay=debounce_delay
        )
        self._subscriptions = contextlib.AsyncExitStack()
        self._last_ctrl_q_at: Optional[float] = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Vertical(id="body"):
            with Horizontal(id="search_row"):
                yield Static("Search:", id="search_label")
                yield Input(placeholder="Filter by title or address.", id="search")
                yield Select(
                    SORT_OPTIONS,
                    value=DEFAULT_SORT_PREFERENCE.format(),
                    allow_blank=False,
                    id="sort",
                )
            yield DataTable(id="table")
            yield Static("", id="status")
        yield Footer()

    async def on_mount(self) -> None:
        table = self._table()
        table.cursor_type = "row"
        table.add_columns("", "Title", "Address", "Group", "Last used")

        await self.collapse.load()
        preference = await load_sort_preference(self.preferences)
        self.controller.set_sort_preference(preference)
        self.query_one("#sort", Select).value = preference.format()

        await self.controller.refresh()
        self._render_view()
        await self._subscriptions.enter_async_context(
            self.scheduler.listen(self.controller.backend.events)
        )
        self.query_one("#search", Input).focus()

    async def on_unmount(self) -> None:
        await self._subscriptions.aclose()
        await self.scheduler.aclose()
        await self.collapse.flush()

    async def _recompute(self) -> None:
        await self.controller.refresh()
        self._render_view()

    def _render_view(self) -> None:
        table = self._table()
        table.clear(columns=False)

        now = time.time()
        rows = list(self.controller.list_rows())
        for row in rows:
            table.add_row(*self._cells(row, now))

        if rows:
            self.controller.state.clamp_selection()
            table.cursor_coordinate = Coordinate(self.controller.state.selected_index, 0)
        self._render_status()

    def _cells(self, row: ViewRow, now: float) -> tuple[Any, ...]:
        window = row.window
        if row.tab is None:
            marker = "▶" if self.collapse.is_collapsed(window.window_id) else "▼"
            label = Text(f"{window_label(window)} · {tab_count_label(window.tab_count)}", style="bold")
            return (marker, label, "", "", "")

        tab = row.tab
        badges = ("●" if tab.active else "") + ("📌" if tab.pinned else "")
        group: Any = ""
        if tab.group is not None:
            group = Text(tab.group.title, style=group_color_hex(tab.group.color))
        last_used = format_time_ago(tab.last_accessed, now) if tab.last_accessed else ""
        # Page titles and addresses are untrusted; str cells would be parsed as markup.
        return (badges, Text(tab.title), Text(tab.url), group, last_used)

    def _table(self) -> DataTable[Any]:
        return self.query_one("#table", DataTable)

    def _set_status(self, message: str) -> None:
        self.controller.state.status = message
        self._render_status()

    def _render_status(self) -> None:
        view = self.controller.state.view
        windows = "window" if view.window_count == 1 else "windows"
        count_part = f"{tab_count_label(view.total_tabs)} in {view.window_count} {windows}"
        status = self.controller.state.status.strip()
        status_part = f" | {status}" if status else ""
        hint = "  Enter: switch  Ctrl+T: collapse  Esc: clear  Ctrl+Q: quit"
        self.query_one("#status", Static).update(f"{count_part}{status_part}{hint}")

    async def action_quit(self) -> None:
        # Double-press Ctrl+Q to quit (to avoid accidental exits).
        now = time.monotonic()
        if self._last_ctrl_q_at is not None and (now - self._last_ctrl_q_at) <= 0.75:
            self.exit()
            return
        self._last_ctrl_q_at = now
        self._set_status("Press Ctrl+Q again to quit")

    async def on_key(self, event: events.Key) -> None:
        if event.key != "ctrl+q":
            self._last_ctrl_q_at = None

        if event.key == "escape":
            self.query_one("#search", Input).value = ""
            event.stop()
            return

        if event.key in ("up", "down"):
            delta = -1 if event.key == "up" else 1
            self.controller.select_index(self.controller.state.selected_index + delta)
            self._render_view()
            event.stop()
            return

        if event.key == "ctrl+t":
            self._toggle_selected_window()
            event.stop()
            return

    async def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id != "search":
            return
        self.controller.set_query(event.value)
        self.scheduler.query_changed()

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "search":
            return
        await self._open_selected()

    async def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "sort" or not isinstance(event.value, str):
            return
        preference = SortPreference.parse(event.value)
        if preference is None or preference == self.controller.state.sort_preference:
            return
        self.controller.set_sort_preference(preference)
        self.scheduler.sort_changed()
        await save_sort_preference(self.preferences, preference)

    async def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self.controller.select_index(self._table().cursor_row)
        self._render_status()

    async def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self.controller.select_index(event.cursor_row)
        await self._open_selected()

    async def _open_selected(self) -> None:
        row = self.controller.selected_row()
        if row is not None and row.is_header:
            self._toggle_selected_window()
            return
        title = await self.controller.activate_selected()
        if title is not None:
            self._set_status(f"Switched to {title}")
        else:
            self._render_status()

    def _toggle_selected_window(self) -> None:
        row = self.controller.selected_row()
        if row is None:
            return
        self.controller.toggle_collapsed(row.window.window_id)
        self._render_view()
