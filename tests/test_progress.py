"""
測試 ProgressReporter

1. start 重設計數並通知觀察者
2. increment 超過宣告總數時飽和，不拋錯
3. finish(linger) 先通知完成，timer 觸發後才清除
4. 失敗路徑以零完成度通知
5. 多執行緒同時 increment 計數正確
"""

import threading
import pytest

from core.progress import ProgressReporter


class FakeTimer:
    timers: list = []

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


@pytest.fixture(autouse=True)
def patch_timer(monkeypatch):
    FakeTimer.timers.clear()
    monkeypatch.setattr(threading, "Timer", FakeTimer)
    yield
    FakeTimer.timers.clear()


@pytest.fixture
def reporter():
    r = ProgressReporter()
    r.events = []
    r.subscribe(r.events.append)
    return r


class TestProgressReporter:

    def test_start_resets_and_activates(self, reporter):
        reporter.start(publish_total=3, delete_total=1)
        reporter.increment_publish()
        reporter.start(publish_total=2, delete_total=0)

        snap = reporter.snapshot()
        assert snap.active is True
        assert snap.publish_total == 2
        assert snap.publish_done == 0
        assert reporter.events[-1].publish_total == 2

    def test_increments(self, reporter):
        reporter.start(publish_total=2, delete_total=2)
        reporter.increment_publish()
        reporter.increment_delete()
        reporter.increment_delete()

        snap = reporter.snapshot()
        assert (snap.publish_done, snap.delete_done) == (1, 2)

    def test_increment_beyond_total_saturates(self, reporter):
        reporter.start(publish_total=1, delete_total=0)
        for _ in range(5):
            reporter.increment_publish()
            reporter.increment_delete()

        snap = reporter.snapshot()
        assert snap.publish_done == 1
        assert snap.delete_done == 0

    def test_finish_with_linger_clears_after_timer(self, reporter):
        reporter.start(publish_total=1)
        reporter.increment_publish()
        reporter.finish(linger=1.5)

        snap = reporter.snapshot()
        assert snap.finished is True
        assert snap.active is True
        assert snap.publish_done == 1
        assert len(FakeTimer.timers) == 1
        assert FakeTimer.timers[0].delay == 1.5

        FakeTimer.timers.pop(0).fire()
        snap = reporter.snapshot()
        assert snap.active is False
        assert snap.publish_total == 0
        assert reporter.events[-1].active is False

    def test_finish_without_linger_clears_immediately(self, reporter):
        reporter.start(publish_total=1)
        reporter.finish()

        assert FakeTimer.timers == []
        assert reporter.active is False

    def test_failed_finish_reports_zero_completion(self, reporter):
        reporter.start(publish_total=3, delete_total=1)
        reporter.increment_publish()
        reporter.increment_delete()
        reporter.finish(linger=1.0, success=False)

        finished = [e for e in reporter.events if e.finished]
        assert finished
        assert finished[0].publish_done == 0
        assert finished[0].delete_done == 0

    def test_restart_cancels_pending_clear(self, reporter):
        reporter.start(publish_total=1)
        reporter.finish(linger=1.0)
        timer = FakeTimer.timers[0]

        reporter.start(publish_total=4)
        assert timer.cancelled is True
        assert reporter.snapshot().publish_total == 4

    def test_unsubscribe(self, reporter):
        reporter.unsubscribe(reporter.events.append)
        reporter.start(publish_total=1)
        assert reporter.events == []

    def test_concurrent_increments(self):
        reporter = ProgressReporter()
        reporter.start(publish_total=200)

        def work():
            for _ in range(50):
                reporter.increment_publish()

        threads = [threading.Thread(target=work) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert reporter.snapshot().publish_done == 200


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
