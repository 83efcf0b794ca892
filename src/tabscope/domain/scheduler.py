from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Optional

from loguru import logger

from tabscope.backend.protocol import TabEvent, TabEventKind
from tabscope.domain.access_times import AccessTimeTracker

DEFAULT_DEBOUNCE_DELAY = 0.3
DEFAULT_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 30.0


class Debouncer:
    """Trailing debounce around an async callback.

    ``arm`` restarts the quiet period. When it elapses the callback runs; if a
    previous run is still in flight the new run is folded into a single
    follow-up run instead of starting a second one.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self.delay = delay
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._rerun = False
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self) -> None:
        if self._closed:
            return
        self.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def cancel(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()

    async def aclose(self) -> None:
        """Drop the pending timer and let an in-flight run finish."""
        self._closed = True
        self.cancel()
        task = self._task
        if task is not None and not task.done():
            await task

    def _fire(self) -> None:
        self._handle = None
        if self.running:
            self._rerun = True
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            self._rerun = False
            try:
                await self._callback()
            except Exception as e:
                logger.opt(exception=e).error("Scheduled refresh failed: {}", e)
            if not self._rerun or self._closed:
                return


class LiveUpdateScheduler:
    """Turns tab notifications and user input into debounced view refreshes."""

    def __init__(
        self,
        refresh: Callable[[], Awaitable[None]],
        access_times: AccessTimeTracker,
        *,
        delay: float = DEFAULT_DEBOUNCE_DELAY,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retry_delay: float = MAX_RETRY_DELAY,
    ) -> None:
        self.access_times = access_times
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self.debouncer = Debouncer(delay, refresh)

    def notify(self, event: TabEvent) -> None:
        if event.kind is TabEventKind.ACTIVATED and event.tab_id:
            self.access_times.record_access(event.tab_id)
        self.debouncer.arm()

    def query_changed(self) -> None:
        self.debouncer.arm()

    def sort_changed(self) -> None:
        self.debouncer.arm()

    @contextlib.asynccontextmanager
    async def listen(
        self, subscribe: Callable[[], AsyncIterator[TabEvent]]
    ) -> AsyncIterator[None]:
        """Consume notifications from ``subscribe()`` until the block exits.

        A stream that fails or ends is reopened after a growing delay. On exit
        the current stream is closed and the pending refresh is dropped.
        """
        task = asyncio.get_running_loop().create_task(self._consume(subscribe))
        try:
            yield
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            self.debouncer.cancel()

    async def aclose(self) -> None:
        await self.debouncer.aclose()

    async def _consume(self, subscribe: Callable[[], AsyncIterator[TabEvent]]) -> None:
        delay = self.retry_delay
        resubscribed = False
        while True:
            events = subscribe()
            try:
                if resubscribed:
                    # Changes made while disconnected were missed.
                    self.debouncer.arm()
                async for event in events:
                    delay = self.retry_delay
                    logger.debug("Tab event {}", event.kind.value, tab_id=event.tab_id)
                    self.notify(event)
                logger.info("Tab notification stream ended, resubscribing in {}s", delay)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.opt(exception=e).warning(
                    "Tab notification stream failed, resubscribing in {}s: {}", delay, e
                )
            finally:
                aclose = getattr(events, "aclose", None)
                if aclose is not None:
                    await aclose()
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_retry_delay)
            resubscribed = True
