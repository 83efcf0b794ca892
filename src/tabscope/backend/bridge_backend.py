from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import httpx
from loguru import logger

from tabscope.backend.protocol import BackendError, TabEvent, TabEventKind
from tabscope.domain.models import NO_GROUP_ID, Snapshot, TabSnapshot, WindowSnapshot

DEFAULT_BRIDGE_URL = "http://127.0.0.1:4625"

_EVENT_KINDS = {
    "created": TabEventKind.CREATED,
    "oncreated": TabEventKind.CREATED,
    "removed": TabEventKind.REMOVED,
    "onremoved": TabEventKind.REMOVED,
    "updated": TabEventKind.UPDATED,
    "onupdated": TabEventKind.UPDATED,
    "activated": TabEventKind.ACTIVATED,
    "onactivated": TabEventKind.ACTIVATED,
}


@dataclass
class BridgeBackend:
    """Talks to the local HTTP bridge that relays the browser's tab API.

    Endpoints: ``GET /windows`` (windows with their tabs), ``GET /tab-groups``,
    ``POST /windows/{id}/focus``, ``POST /tabs/{id}/activate`` and
    ``GET /events`` (one JSON object per line).
    """

    base_url: str = DEFAULT_BRIDGE_URL
    timeout: float = 5.0
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)
    _client: Optional[httpx.AsyncClient] = field(default=None, init=False, repr=False)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def snapshot(self) -> Snapshot:
        windows = await self._get_json("/windows")
        groups = await self._get_json("/tab-groups")
        return snapshot_from_payload(windows, groups)

    async def activate_tab(self, window_id: str, tab_id: str) -> None:
        await self._post(f"/windows/{window_id}/focus")
        await self._post(f"/tabs/{tab_id}/activate")

    def events(self) -> AsyncIterator[TabEvent]:
        return self._events()

    async def _get_json(self, path: str) -> Any:
        try:
            response = await self.client.get(path)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise BackendError(
                f"Tab bridge request failed ({path}): {e}. Is the bridge running at {self.base_url}?"
            ) from e
        except ValueError as e:
            raise BackendError(f"Tab bridge returned invalid JSON for {path}") from e

    async def _post(self, path: str) -> None:
        try:
            response = await self.client.post(path)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendError(f"Tab bridge request failed ({path}): {e}") from e

    async def _events(self) -> AsyncIterator[TabEvent]:
        try:
            async with self.client.stream("GET", "/events", timeout=None) as response:
                response.raise_for_status()
                logger.info("Subscribed to tab events at {}", self.base_url)
                async for line in response.aiter_lines():
                    event = parse_event(line)
                    if event is not None:
                        yield event
        except httpx.HTTPError as e:
            raise BackendError(f"Tab event stream failed: {e}") from e
        finally:
            logger.info("Unsubscribed from tab events")


def parse_event(line: str) -> Optional[TabEvent]:
    text = line.strip()
    if not text:
        return None
    try:
        payload = json.loads(text)
    except ValueError:
        logger.debug("Ignoring malformed event line: {!r}", text)
        return None
    if not isinstance(payload, dict):
        return None
    raw_kind = str(payload.get("type", "")).strip().lower()
    kind = _EVENT_KINDS.get(raw_kind)
    if kind is None:
        return None
    tab_id = _string_id(payload.get("tabId", payload.get("tab_id")))
    return TabEvent(kind=kind, tab_id=tab_id or None)


def snapshot_from_payload(windows: Any, groups: Any) -> Snapshot:
    window_snaps: list[WindowSnapshot] = []
    for window in _as_list(windows):
        tabs = [_tab_snapshot(tab) for tab in _as_list(window.get("tabs"))]
        window_snaps.append(
            WindowSnapshot(
                window_id=_string_id(window.get("id")),
                focused=bool(window.get("focused", False)),
                tabs=tabs,
            )
        )

    group_snaps = [
        Snapshot.GroupSnapshot(
            group_id=_string_id(group.get("id")),
            title=_to_text(group.get("title")),
            color=_to_text(group.get("color")),
        )
        for group in _as_list(groups)
    ]
    return Snapshot(windows=window_snaps, groups=group_snaps)


def _tab_snapshot(tab: dict[str, Any]) -> TabSnapshot:
    group_id = tab.get("groupId")
    return TabSnapshot(
        tab_id=_string_id(tab.get("id")),
        title=_to_text(tab.get("title")),
        url=_to_text(tab.get("url")),
        fav_icon_url=_to_text(tab.get("favIconUrl")),
        active=bool(tab.get("active", False)),
        pinned=bool(tab.get("pinned", False)),
        group_id=NO_GROUP_ID if group_id is None else _string_id(group_id),
    )


def _as_list(value: Any) -> Iterable[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _string_id(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)
