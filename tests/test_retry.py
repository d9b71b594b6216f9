"""
測試 retry 裝飾器
"""

import time
import pytest

from utils.retry import retry


class Transient(Exception):
    def __init__(self, retryable=True):
        super().__init__("transient")
        self.retryable = retryable


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr(time, "sleep", lambda s: calls.append(s))
    return calls


class TestRetry:

    def test_success_first_try(self, sleeps):
        calls = []

        @retry(max_attempts=3)
        def op():
            calls.append(1)
            return "ok"

        assert op() == "ok"
        assert len(calls) == 1
        assert sleeps == []

    def test_retries_then_succeeds_with_backoff(self, sleeps):
        attempts = []

        @retry(max_attempts=3, delay=1.0, backoff=2.0, exceptions=(Transient,))
        def op():
            attempts.append(1)
            if len(attempts) < 3:
                raise Transient()
            return "ok"

        assert op() == "ok"
        assert len(attempts) == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self, sleeps):
        attempts = []

        @retry(max_attempts=2, delay=0.5, exceptions=(Transient,))
        def op():
            attempts.append(1)
            raise Transient()

        with pytest.raises(Transient):
            op()
        assert len(attempts) == 2
        assert sleeps == [0.5]

    def test_should_retry_false_raises_immediately(self, sleeps):
        attempts = []

        @retry(max_attempts=5, exceptions=(Transient,), should_retry=lambda e: e.retryable)
        def op():
            attempts.append(1)
            raise Transient(retryable=False)

        with pytest.raises(Transient):
            op()
        assert len(attempts) == 1
        assert sleeps == []

    def test_unlisted_exception_not_retried(self, sleeps):
        attempts = []

        @retry(max_attempts=3, exceptions=(Transient,))
        def op():
            attempts.append(1)
            raise KeyError("x")

        with pytest.raises(KeyError):
            op()
        assert len(attempts) == 1

    def test_logs_each_retry(self, sleeps):
        records = []

        class Logger:
            def warning(self, icon, msg):
                records.append(msg)

        @retry(max_attempts=2, exceptions=(Transient,), logger=Logger())
        def op():
            raise Transient()

        with pytest.raises(Transient):
            op()
        assert len(records) == 1
        assert "op" in records[0]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
