"""
Seismometer: feeds tri-axial readings into the alert aggregator
"""

import threading
from typing import Dict, List

from models import AccelerationSample, AlertEvent, SeismometerStatus
from alert_aggregator import AlertAggregator
from errors import InvalidThresholdError
from config import (
    AXES,
    DEFAULT_THRESHOLD,
    THRESHOLD_MIN,
    THRESHOLD_MAX,
    THRESHOLD_STEP,
    AUTO_CLOSE_GROUPS
)


class Seismometer:
    """
    Splits each accelerometer reading into per-axis samples for the aggregator.
    Owns the user-adjustable threshold and, with auto_close on, finalizes an
    axis group as soon as that axis reads back within threshold.
    """

    def __init__(
        self,
        aggregator: AlertAggregator,
        threshold: float = DEFAULT_THRESHOLD,
        auto_close: bool = AUTO_CLOSE_GROUPS
    ):
        self.aggregator = aggregator
        self.auto_close = auto_close
        self._lock = threading.Lock()
        self._reading_lock = threading.Lock()  # One reading at a time
        self.threshold: float = DEFAULT_THRESHOLD
        self.set_threshold(threshold)

        self.accelerations: Dict[str, float] = {axis: 0.0 for axis in AXES}
        self.alerting: Dict[str, bool] = {axis: False for axis in AXES}

    def set_threshold(self, threshold: float) -> float:
        """
        Set the alert threshold (g), snapped to the slider grid.
        Raises InvalidThresholdError outside [THRESHOLD_MIN, THRESHOLD_MAX].
        """
        if not THRESHOLD_MIN <= threshold <= THRESHOLD_MAX:
            raise InvalidThresholdError(threshold, THRESHOLD_MIN, THRESHOLD_MAX)

        steps = round(threshold / THRESHOLD_STEP)
        with self._lock:
            self.threshold = round(steps * THRESHOLD_STEP, 2)
            return self.threshold

    def process_reading(self, sample: AccelerationSample) -> List[AlertEvent]:
        """Record one reading on every axis and return the alert events it raised."""
        raised = []

        # self._lock is never held while calling into the aggregator
        with self._reading_lock:
            for axis, acceleration in sample.axis_values().items():
                with self._lock:
                    self.accelerations[axis] = acceleration
                    threshold = self.threshold

                event = self.aggregator.record_sample(axis, acceleration, threshold)

                with self._lock:
                    was_alerting = self.alerting[axis]
                    self.alerting[axis] = event is not None

                if event is not None:
                    raised.append(event)
                elif was_alerting and self.auto_close:
                    # Axis back to normal
                    self.aggregator.close_group(axis)

        return raised

    def status(self) -> SeismometerStatus:
        with self._lock:
            return SeismometerStatus(
                threshold=self.threshold,
                accelerations=dict(self.accelerations),
                alerting=dict(self.alerting)
            )
