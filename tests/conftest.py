"""Shared fixtures: a controllable clock and a manually fired reset scheduler."""

from datetime import datetime, timedelta

import pytest

from alert_aggregator import AlertAggregator
from utils import BERLIN_TZ


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or BERLIN_TZ.localize(datetime(2025, 6, 1, 12, 0, 0))

    def __call__(self):
        return self.now

    def advance(self, seconds=1.0):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class ManualScheduler:
    """Records scheduled resets instead of arming a timer; fire() runs the callback."""

    def __init__(self):
        self.callback = None
        self.delay = None
        self.schedule_count = 0
        self.cancelled = False

    @property
    def pending(self):
        return self.callback is not None

    def schedule(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.schedule_count += 1

    def cancel(self):
        self.callback = None
        self.cancelled = True

    def fire(self):
        callback, self.callback = self.callback, None
        callback()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def aggregator(clock, scheduler):
    return AlertAggregator(clock=clock, scheduler=scheduler)


@pytest.fixture
def pre_update_aggregator(clock, scheduler):
    """Aggregator that evaluates the consolidated feed before applying the axis update."""
    return AlertAggregator(clock=clock, scheduler=scheduler, recompute_after_update=False)
