"""
測試 FileMonitor 的防抖與過濾

1) 連續多次事件 → 只保留最後一個 timer，平息後觸發一次
2) timer 到期時仍有新事件 → 不觸發
3) .obsidian / .git / 隱藏檔 / 資料夾事件不觸發
"""

import threading
import time
import pytest
from watchdog.events import DirModifiedEvent, FileModifiedEvent, FileOpenedEvent

from core.file_monitor import FileMonitor


class FakeTimer:
    timers = []

    def __init__(self, delay, func):
        self.delay = delay
        self.func = func
        self.cancelled = False
        self.daemon = False

    def cancel(self):
        self.cancelled = True

    def start(self):
        FakeTimer.timers.append(self)

    def fire(self):
        if not self.cancelled:
            self.func()


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock(monkeypatch):
    FakeTimer.timers.clear()
    monkeypatch.setattr(threading, "Timer", FakeTimer)
    c = Clock()
    monkeypatch.setattr(time, "time", c)
    yield c
    FakeTimer.timers.clear()


@pytest.fixture
def monitor(tmp_path, clock):
    calls = []
    m = FileMonitor(str(tmp_path), callback=lambda: calls.append(1), delay=10)
    m.calls = calls
    m.handler = m._make_handler()
    return m


def live_timers():
    return [t for t in FakeTimer.timers if not t.cancelled]


class TestDebounce:

    def test_burst_collapses_to_one_callback(self, monitor, clock):
        for _ in range(3):
            monitor._schedule()
            clock.now += 1

        assert len(FakeTimer.timers) == 3
        assert len(live_timers()) == 1

        clock.now += 10
        live_timers()[0].fire()
        assert monitor.calls == [1]

    def test_not_fired_while_events_keep_arriving(self, monitor, clock):
        monitor._schedule()
        clock.now += 5
        FakeTimer.timers[0].fire()
        assert monitor.calls == []

    def test_callback_error_does_not_escape(self, tmp_path, clock):
        def broken():
            raise RuntimeError("boom")

        m = FileMonitor(str(tmp_path), callback=broken, delay=1)
        m._schedule()
        clock.now += 2
        FakeTimer.timers[0].fire()


class TestFiltering:

    def test_file_event_schedules(self, monitor, tmp_path):
        monitor.handler.on_any_event(FileModifiedEvent(str(tmp_path / "notes" / "a.md")))
        assert len(FakeTimer.timers) == 1

    @pytest.mark.parametrize("rel", [
        ".obsidian/workspace.json",
        ".git/index",
        ".trash/old.md",
        "notes/.hidden.md",
        "~$draft.md",
    ])
    def test_ignored_paths(self, monitor, tmp_path, rel):
        monitor.handler.on_any_event(FileModifiedEvent(str(tmp_path / rel)))
        assert FakeTimer.timers == []

    def test_directory_and_open_events_ignored(self, monitor, tmp_path):
        monitor.handler.on_any_event(DirModifiedEvent(str(tmp_path / "notes")))
        monitor.handler.on_any_event(FileOpenedEvent(str(tmp_path / "a.md")))
        assert FakeTimer.timers == []

    def test_path_outside_watch_root_ignored(self, monitor, tmp_path):
        assert monitor._is_ignored(str(tmp_path.parent / "elsewhere.md")) is True
        assert monitor._is_ignored(str(tmp_path / "blog" / "post.md")) is False


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
