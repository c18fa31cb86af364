"""Watch a page host and re-extract its context when the URL changes.

The monitor is driven by two triggers: a repeating poll and a debounced
scroll handler. Both only run the URL check; a context is extracted and
delivered only when the URL differs from the last one seen.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, Optional, Protocol

from .context import extract_page_context
from .schemas import PageContext
from .snapshot import PageHost, PageSnapshot

logger = logging.getLogger(__name__)

POLL_INTERVAL_MS = int(os.getenv("PAGE_CONTEXT_POLL_INTERVAL_MS", "5000") or 0) or 5000
SCROLL_DEBOUNCE_MS = int(os.getenv("PAGE_CONTEXT_SCROLL_DEBOUNCE_MS", "1000") or 0) or 1000

ContextCallback = Callable[[PageContext], Any]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with ``call_later``; an asyncio event loop qualifies."""

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TimerHandle: ...


class PageContextMonitor:
    """Acquire/release pair around a poll timer and a scroll listener.

    A monitor is inactive until ``start`` and inactive again, for good, after
    ``stop``. ``stop`` may be called any number of times.
    """

    def __init__(
        self,
        host: PageHost,
        callback: ContextCallback,
        scheduler: Scheduler,
        interval_ms: int = POLL_INTERVAL_MS,
        debounce_ms: int = SCROLL_DEBOUNCE_MS,
        extractor: Callable[[PageSnapshot], PageContext] = extract_page_context,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if debounce_ms <= 0:
            raise ValueError("debounce_ms must be positive")
        self._host = host
        self._callback = callback
        self._scheduler = scheduler
        self._interval = interval_ms / 1000
        self._debounce = debounce_ms / 1000
        self._extractor = extractor
        self._last_url: Optional[str] = None
        self._poll_handle: Optional[TimerHandle] = None
        self._scroll_handle: Optional[TimerHandle] = None
        self._started = False
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_url(self) -> Optional[str]:
        return self._last_url

    def start(self) -> Callable[[], None]:
        if self._started:
            raise RuntimeError("PageContextMonitor cannot be started twice")
        self._started = True
        self._active = True
        self._last_url = self._host.current_url()
        self._host.add_scroll_listener(self._on_scroll)
        self._poll_handle = self._scheduler.call_later(self._interval, self._on_poll)
        logger.info(
            "Monitoring page context for %s (poll %.1fs, scroll debounce %.1fs)",
            self._last_url,
            self._interval,
            self._debounce,
        )
        return self.stop

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        self._host.remove_scroll_listener(self._on_scroll)
        for handle in (self._poll_handle, self._scroll_handle):
            if handle is not None:
                handle.cancel()
        self._poll_handle = None
        self._scroll_handle = None
        logger.info("Stopped monitoring page context for %s", self._last_url)

    def check(self) -> Optional[PageContext]:
        """Deliver a fresh context if the URL changed since the last check."""

        if not self._active:
            return None
        current_url = self._host.current_url()
        if current_url == self._last_url:
            return None

        logger.debug("URL changed from %s to %s", self._last_url, current_url)
        self._last_url = current_url
        try:
            context = self._extractor(self._host.snapshot())
        except Exception:
            logger.exception("Page context extraction failed for %s", current_url)
            return None
        try:
            self._callback(context)
        except Exception:
            logger.exception("Page context callback failed for %s", current_url)
        return context

    def _on_poll(self) -> None:
        self._poll_handle = None
        if not self._active:
            return
        try:
            self.check()
        finally:
            if self._active:
                self._poll_handle = self._scheduler.call_later(self._interval, self._on_poll)

    def _on_scroll(self) -> None:
        if not self._active:
            return
        if self._scroll_handle is not None:
            self._scroll_handle.cancel()
        self._scroll_handle = self._scheduler.call_later(self._debounce, self._on_scroll_settled)

    def _on_scroll_settled(self) -> None:
        self._scroll_handle = None
        self.check()

    def __enter__(self) -> "PageContextMonitor":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def monitor_page_context(
    host: PageHost,
    callback: ContextCallback,
    interval_ms: int = POLL_INTERVAL_MS,
    *,
    scheduler: Scheduler | None = None,
    debounce_ms: int = SCROLL_DEBOUNCE_MS,
) -> Callable[[], None]:
    """Start monitoring ``host`` and return the cleanup function.

    Without an explicit scheduler the running asyncio loop is used, so the
    call must happen inside a coroutine in that case.
    """

    monitor = PageContextMonitor(
        host,
        callback,
        scheduler or asyncio.get_running_loop(),
        interval_ms=interval_ms,
        debounce_ms=debounce_ms,
    )
    return monitor.start()
