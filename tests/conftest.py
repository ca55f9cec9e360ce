import random
from datetime import datetime, timedelta, timezone

import pytest

from neuralmetrics.domain.models import Metric

FIXED_NOW = datetime(2024, 3, 13, 15, 30, tzinfo=timezone.utc)  # a Wednesday


class FakeHandle:
    def __init__(self, index: int):
        self.index = index
        self.closed = False
        self.open_cb = None
        self.message_cb = None
        self.error_cb = None


class FakeTransport:
    """In-memory StreamTransport; tests drive the callbacks by hand."""

    def __init__(self, fail_open: bool = False):
        self.fail_open = fail_open
        self.handles: list[FakeHandle] = []

    @property
    def current(self) -> FakeHandle:
        return self.handles[-1]

    @property
    def open_handles(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.closed]

    def open(self) -> FakeHandle:
        if self.fail_open:
            raise OSError("cannot open")
        handle = FakeHandle(len(self.handles))
        self.handles.append(handle)
        return handle

    def on_open(self, handle, callback):
        handle.open_cb = callback

    def on_message(self, handle, callback):
        handle.message_cb = callback

    def on_error(self, handle, callback):
        handle.error_cb = callback

    def close(self, handle):
        handle.closed = True


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records scheduled reconnects instead of waiting for them."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def delays_ms(self) -> list[float]:
        return [round(t.delay * 1000) for t in self.timers]

    def fire_last(self):
        timer = self.timers[-1]
        assert not timer.cancelled
        timer.callback()


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def make_metric():
    counter = iter(range(10_000))

    def _make(revenue=100.0, users=10, engagement=50.0, at=None) -> Metric:
        n = next(counter)
        return Metric(
            id=f"m-{n}",
            timestamp=at or FIXED_NOW + timedelta(hours=n),
            revenue=revenue,
            active_users=users,
            engagement_rate=engagement,
        )

    return _make
