from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import urlsplit

from loguru import logger

from tabscope.backend.protocol import Backend
from tabscope.domain.access_times import AccessTimeTracker
from tabscope.domain.models import (
    NO_GROUP_ID,
    UNNAMED_GROUP,
    UNTITLED,
    GroupColor,
    GroupRef,
    Snapshot,
    TabRecord,
    TabSnapshot,
    WindowRecord,
)

FAVICON_SERVICE_URL = "https://www.google.com/s2/favicons?domain={domain}&sz=16"

DEFAULT_FAVICON = (
    'data:image/svg+xml,<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16">'
    '<rect width="16" height="16" fill="%23ddd"/></svg>'
)


def resolve_icon_url(fav_icon_url: str, url: str) -> str:
    if fav_icon_url and fav_icon_url.startswith(("http://", "https://")):
        return fav_icon_url
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return DEFAULT_FAVICON
    if not parts.scheme:
        return DEFAULT_FAVICON
    if parts.scheme in ("http", "https") and not hostname:
        return DEFAULT_FAVICON
    return FAVICON_SERVICE_URL.format(domain=hostname or "")


def _group_table(snapshot: Snapshot) -> dict[str, GroupRef]:
    table: dict[str, GroupRef] = {}
    for group in snapshot.groups:
        table[group.group_id] = GroupRef(
            title=group.title or UNNAMED_GROUP,
            color=GroupColor.parse(group.color),
        )
    return table


def _tab_record(
    tab: TabSnapshot,
    *,
    window_id: str,
    groups: Mapping[str, GroupRef],
    access_times: AccessTimeTracker,
    now: float,
) -> TabRecord:
    group: Optional[GroupRef] = None
    if tab.group_id != NO_GROUP_ID:
        group = groups.get(tab.group_id)

    last_accessed = access_times.get(tab.tab_id)
    if last_accessed is None and tab.active:
        last_accessed = now

    return TabRecord(
        tab_id=tab.tab_id,
        title=tab.title or UNTITLED,
        url=tab.url or "",
        icon_url=resolve_icon_url(tab.fav_icon_url, tab.url),
        active=tab.active,
        pinned=tab.pinned,
        window_id=window_id,
        group=group,
        last_accessed=last_accessed,
    )


def windows_from_snapshot(
    snapshot: Snapshot, access_times: AccessTimeTracker, *, now: Optional[float] = None
) -> list[WindowRecord]:
    stamp = access_times.now() if now is None else now
    groups = _group_table(snapshot)
    windows: list[WindowRecord] = []
    for window in snapshot.windows:
        tabs = [
            _tab_record(
                tab,
                window_id=window.window_id,
                groups=groups,
                access_times=access_times,
                now=stamp,
            )
            for tab in window.tabs
        ]
        windows.append(WindowRecord(window_id=window.window_id, focused=window.focused, tabs=tabs))
    return windows


async def aggregate(
    backend: Backend, access_times: AccessTimeTracker, *, now: Optional[float] = None
) -> list[WindowRecord]:
    """Query the provider and build one window record per browser window.

    A failing provider yields an empty list; callers show that as "no tabs".
    """
    try:
        snapshot = await backend.snapshot()
    except Exception as e:
        logger.opt(exception=e).warning("Snapshot query failed: {}", e)
        return []
    return windows_from_snapshot(snapshot, access_times, now=now)
