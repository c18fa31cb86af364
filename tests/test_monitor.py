import asyncio
import logging

import pytest

from recovery_assist.context import extract_page_context
from recovery_assist.monitor import PageContextMonitor, monitor_page_context
from recovery_assist.snapshot import InMemoryPageHost


class FakeHandle:
    def __init__(self, scheduler: "FakeScheduler", when: float, callback) -> None:
        self.scheduler = scheduler
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers only fire when ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.handles: list[FakeHandle] = []

    def call_later(self, delay: float, callback) -> FakeHandle:
        handle = FakeHandle(self, self.now + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.now = handle.when
            handle.fired = True
            handle.callback()
        self.now = target


@pytest.fixture
def host():
    return InMemoryPageHost("https://recovery.test/", "<title>Home</title>", viewport_height=800)


@pytest.fixture
def scheduler():
    return FakeScheduler()


def test_tick_with_unchanged_url_does_not_call_back(host, scheduler):
    received = []
    monitor_page_context(host, received.append, 5000, scheduler=scheduler)

    scheduler.advance(5.0)
    scheduler.advance(5.0)

    assert received == []


def test_tick_with_changed_url_calls_back_once(host, scheduler):
    received = []
    monitor_page_context(host, received.append, 5000, scheduler=scheduler)

    host.navigate("https://recovery.test/pasadena/permits", "<title>Pasadena permits</title>")
    scheduler.advance(5.0)
    scheduler.advance(5.0)

    assert len(received) == 1
    assert received[0].url == "https://recovery.test/pasadena/permits"
    assert received[0].location.jurisdiction == "Pasadena County"


def test_scroll_triggers_debounced_check(host, scheduler):
    received = []
    monitor_page_context(host, received.append, 5000, scheduler=scheduler, debounce_ms=1000)

    host.navigate("https://recovery.test/altadena")
    host.scroll_to(100)
    scheduler.advance(0.5)
    host.scroll_to(200)
    scheduler.advance(0.95)
    assert received == []

    scheduler.advance(0.1)
    assert [ctx.url for ctx in received] == ["https://recovery.test/altadena"]


def test_scroll_alone_does_not_extract(host, scheduler):
    received = []
    monitor_page_context(host, received.append, 5000, scheduler=scheduler)

    host.scroll_to(300)
    scheduler.advance(1.0)

    assert received == []


def test_cleanup_is_idempotent_and_total(host, scheduler):
    received = []
    cleanup = monitor_page_context(host, received.append, 5000, scheduler=scheduler)
    host.scroll_to(50)
    assert host.listener_count == 1

    cleanup()
    cleanup()

    assert host.listener_count == 0
    assert all(h.cancelled for h in scheduler.handles)

    host.navigate("https://recovery.test/glendale")
    host.scroll_to(400)
    scheduler.advance(30.0)
    assert received == []


def test_stopped_monitor_cannot_restart(host, scheduler):
    monitor = PageContextMonitor(host, lambda ctx: None, scheduler)
    monitor.start()
    monitor.stop()
    assert monitor.active is False
    with pytest.raises(RuntimeError):
        monitor.start()


def test_context_manager_releases_on_exit(host, scheduler):
    with PageContextMonitor(host, lambda ctx: None, scheduler) as monitor:
        assert monitor.active is True
        assert host.listener_count == 1
    assert monitor.active is False
    assert host.listener_count == 0


def test_callback_errors_do_not_stop_polling(host, scheduler):
    calls = []

    def flaky(ctx):
        calls.append(ctx.url)
        raise ValueError("boom")

    monitor_page_context(host, flaky, 1000, scheduler=scheduler)
    host.navigate("https://recovery.test/burbank")
    scheduler.advance(1.0)
    host.navigate("https://recovery.test/glendale")
    scheduler.advance(1.0)

    assert calls == ["https://recovery.test/burbank", "https://recovery.test/glendale"]


def test_extraction_errors_do_not_stop_polling(host, scheduler, caplog):
    attempts = []

    def failing_once(snapshot):
        attempts.append(snapshot.get_url())
        if len(attempts) == 1:
            raise OSError("page went away")
        return extract_page_context(snapshot)

    received = []
    monitor = PageContextMonitor(host, received.append, scheduler, interval_ms=1000, extractor=failing_once)
    monitor.start()

    host.navigate("https://recovery.test/burbank")
    with caplog.at_level(logging.ERROR, logger="recovery_assist.monitor"):
        scheduler.advance(1.0)
    assert received == []
    assert "Page context extraction failed for https://recovery.test/burbank" in caplog.text

    host.navigate("https://recovery.test/glendale")
    scheduler.advance(10.0)

    assert [ctx.url for ctx in received] == ["https://recovery.test/glendale"]
    assert monitor.active is True
    assert len(scheduler.pending) == 1


def test_invalid_interval_rejected(host, scheduler):
    with pytest.raises(ValueError):
        PageContextMonitor(host, lambda ctx: None, scheduler, interval_ms=0)


def test_runs_on_asyncio_loop(host):
    received = []

    async def scenario():
        cleanup = monitor_page_context(host, received.append, 10, debounce_ms=10)
        host.navigate("https://recovery.test/eaton")
        await asyncio.sleep(0.05)
        cleanup()

    asyncio.run(scenario())
    assert [ctx.url for ctx in received] == ["https://recovery.test/eaton"]
