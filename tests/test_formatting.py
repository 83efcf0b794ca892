from __future__ import annotations

import pytest

from tabscope.domain.formatting import (
    format_time_ago,
    group_color_hex,
    tab_count_label,
    window_label,
)
from tabscope.domain.models import GroupColor, WindowRecord


@pytest.mark.parametrize(
    ("age", "expected"),
    [
        (0, "0s ago"),
        (59, "59s ago"),
        (60, "1m ago"),
        (3599, "59m ago"),
        (3600, "1h ago"),
        (86399, "23h ago"),
        (86400 * 3, "3d ago"),
    ],
)
def test_format_time_ago(age: int, expected: str) -> None:
    now = 1_000_000.0
    assert format_time_ago(now - age, now) == expected


def test_format_time_ago_unknown() -> None:
    assert format_time_ago(None) == "Unknown"
    assert format_time_ago(0) == "Unknown"


def test_group_color_hex() -> None:
    assert group_color_hex(GroupColor.BLUE) == "#1a73e8"
    assert group_color_hex(GroupColor.GREY) == "#5f6368"


def test_labels() -> None:
    assert tab_count_label(1) == "1 tab"
    assert tab_count_label(0) == "0 tabs"
    assert window_label(WindowRecord(window_id="1", focused=True, tabs=[])) == "Window (Current)"
    assert window_label(WindowRecord(window_id="2", focused=False, tabs=[])) == "Window"
