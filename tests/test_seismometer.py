"""Tests for seismometer.Seismometer."""

import threading
from datetime import timedelta

import pytest

from errors import InvalidThresholdError
from models import AccelerationSample
from seismometer import Seismometer


def _reading(x=0.0, y=0.0, z=0.0):
    return AccelerationSample(x=x, y=y, z=z)


def test_quiet_reading_raises_nothing(aggregator):
    meter = Seismometer(aggregator)
    assert meter.process_reading(_reading(0.2, -0.3, 0.98)) == []
    assert aggregator.events == []


def test_reading_records_each_alerting_axis(aggregator):
    meter = Seismometer(aggregator)
    raised = meter.process_reading(_reading(x=1.5, y=0.1, z=-1.3))

    assert [e.axis for e in raised] == ["X", "Z"]
    assert set(aggregator.open_groups) == {"X", "Z"}
    assert meter.alerting == {"X": True, "Y": False, "Z": True}


def test_axis_back_to_normal_closes_group(aggregator, clock):
    meter = Seismometer(aggregator)
    meter.process_reading(_reading(x=1.5))
    clock.advance()
    meter.process_reading(_reading(x=1.7))
    clock.advance()
    meter.process_reading(_reading(x=0.2))

    groups = aggregator.groups_for_axis("X")
    assert len(groups) == 1
    assert groups[0].peak_value == 1.7
    assert aggregator.open_group("X") is None
    assert meter.alerting["X"] is False


def test_auto_close_disabled_keeps_group_open(aggregator):
    meter = Seismometer(aggregator, auto_close=False)
    meter.process_reading(_reading(x=1.5))
    meter.process_reading(_reading(x=0.2))

    assert aggregator.alert_groups == []
    assert aggregator.open_group("X") is not None


def test_threshold_applied_to_samples(aggregator):
    meter = Seismometer(aggregator, threshold=0.5)
    raised = meter.process_reading(_reading(y=0.6))

    assert raised[0].threshold == 0.5


@pytest.mark.parametrize("requested, expected", [(0.1, 0.1), (0.73, 0.7), (1.25, 1.2), (2.0, 2.0)])
def test_threshold_snaps_to_step(aggregator, requested, expected):
    meter = Seismometer(aggregator)
    assert meter.set_threshold(requested) == pytest.approx(expected)
    assert meter.threshold == pytest.approx(expected)


@pytest.mark.parametrize("requested", [0.0, 0.05, 2.5, -1.0])
def test_threshold_out_of_range_rejected(aggregator, requested):
    meter = Seismometer(aggregator)
    with pytest.raises(InvalidThresholdError):
        meter.set_threshold(requested)
    assert meter.threshold == 1.0


def test_status_reports_latest_reading(aggregator):
    meter = Seismometer(aggregator)
    meter.process_reading(_reading(x=0.3, y=-1.4, z=0.9))

    status = meter.status()
    assert status.threshold == 1.0
    assert status.accelerations == {"X": 0.3, "Y": -1.4, "Z": 0.9}
    assert status.alerting == {"X": False, "Y": True, "Z": False}


def test_reading_timestamp_does_not_stamp_events(aggregator, clock):
    meter = Seismometer(aggregator)
    sample = AccelerationSample(timestamp=clock.now - timedelta(hours=1), x=1.5, y=0.0, z=0.0)

    raised = meter.process_reading(sample)

    assert raised[0].timestamp == clock.now


# ---------------------------------------------------------------------------
# Observers reading seismometer state
# ---------------------------------------------------------------------------


def _run_with_timeout(target, timeout=2.0):
    worker = threading.Thread(target=target, daemon=True)
    worker.start()
    worker.join(timeout)
    return not worker.is_alive()


def test_observer_can_read_seismometer_status(aggregator):
    meter = Seismometer(aggregator)
    seen = []
    aggregator.subscribe(lambda agg: seen.append(meter.status().accelerations["X"]))

    def readings():
        meter.process_reading(_reading(x=1.5))
        meter.process_reading(_reading(x=0.2))

    assert _run_with_timeout(readings)
    assert seen == [1.5, 0.2]
    assert len(aggregator.alert_groups) == 1


def test_reset_observer_can_read_seismometer_status_during_reading(aggregator, scheduler):
    meter = Seismometer(aggregator)
    in_reset = threading.Event()
    reading_done = threading.Event()

    def read_during_reset():
        meter.process_reading(_reading(y=1.5))
        reading_done.set()

    def on_change(agg):
        if agg.status().event_count == 0 and not in_reset.is_set():
            in_reset.set()
            # Another thread processes a reading while this observer runs
            threading.Thread(target=read_during_reset, daemon=True).start()
            reading_done.wait(2.0)
        meter.status()

    aggregator.subscribe(on_change)

    assert _run_with_timeout(scheduler.fire)
    assert reading_done.is_set()
    assert aggregator.open_group("Y") is not None
