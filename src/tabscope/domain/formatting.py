from __future__ import annotations

import time
from typing import Optional

from tabscope.domain.models import GroupColor, WindowRecord

NO_TABS_FOUND = "No tabs found"
NO_TABS_MATCH = "No tabs match your search"

GROUP_COLOR_HEX: dict[GroupColor, str] = {
    GroupColor.GREY: "#5f6368",
    GroupColor.BLUE: "#1a73e8",
    GroupColor.RED: "#d93025",
    GroupColor.YELLOW: "#f9ab00",
    GroupColor.GREEN: "#1e8e3e",
    GroupColor.PINK: "#e91e63",
    GroupColor.PURPLE: "#9c27b0",
    GroupColor.CYAN: "#00bcd4",
    GroupColor.ORANGE: "#ff6d00",
}


def group_color_hex(color: GroupColor) -> str:
    return GROUP_COLOR_HEX.get(color, GROUP_COLOR_HEX[GroupColor.GREY])


def format_time_ago(timestamp: Optional[float], now: Optional[float] = None) -> str:
    if not timestamp:
        return "Unknown"
    current = time.time() if now is None else now
    seconds = max(0, int(current - timestamp))
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24
    if seconds < 60:
        return f"{seconds}s ago"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    return f"{days}d ago"


def tab_count_label(count: int) -> str:
    return f"{count} tab{'' if count == 1 else 's'}"


def window_label(window: WindowRecord) -> str:
    return "Window (Current)" if window.focused else "Window"
