"""
Alert aggregation logic: raw alert events, per-axis alert groups and the
consolidated "strongest axis" feed, purged on a fixed reset window.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from models import AlertEvent, AlertGroup, ConsolidatedAlert, AlertSnapshot, AggregatorStatus
from errors import InvalidAxisError
from utils import now_berlin
from config import (
    AXES,
    HISTORY_RESET_HOURS,
    CLEAR_CONSOLIDATED_ON_RESET,
    RECOMPUTE_AFTER_UPDATE,
    VALIDATE_AXES,
    RECENT_GROUPS_LIMIT
)


Observer = Callable[["AlertAggregator"], None]


class ResetScheduler:
    """
    Cancellable one-shot deferred action.
    Runs the callback on a daemon timer thread; scheduling again replaces
    whatever was pending.
    """

    def __init__(self):
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None and self._timer.is_alive()

    def schedule(self, delay: float, callback: Callable[[], None]):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(max(delay, 0.0), callback)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class AlertAggregator:
    """
    Turns over-threshold axis samples into alert events, groups and
    consolidated alerts.

    Only samples with |acceleration| > threshold reach any collection. Each
    axis has at most one open group; it grows with every further alerting
    sample and moves to the closed list only through close_group(). All
    mutation and reads are serialized on one re-entrant lock, which the reset
    timer thread shares. Observers are called after the lock is released.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = now_berlin,
        scheduler: Optional[ResetScheduler] = None,
        reset_interval: timedelta = timedelta(hours=HISTORY_RESET_HOURS),
        clear_consolidated_on_reset: bool = CLEAR_CONSOLIDATED_ON_RESET,
        recompute_after_update: bool = RECOMPUTE_AFTER_UPDATE,
        validate_axes: bool = VALIDATE_AXES,
        axes: Iterable[str] = AXES
    ):
        self.clock = clock
        self.scheduler = scheduler if scheduler is not None else ResetScheduler()
        self.reset_interval = reset_interval
        self.clear_consolidated_on_reset = clear_consolidated_on_reset
        self.recompute_after_update = recompute_after_update
        self.validate_axes = validate_axes
        self.axes = tuple(axes)

        self._lock = threading.RLock()
        self._events: List[AlertEvent] = []
        self._alert_groups: List[AlertGroup] = []
        self._open_groups: Dict[str, AlertGroup] = {}
        self._consolidated_alerts: List[ConsolidatedAlert] = []
        self._observers: List[Observer] = []
        self._shut_down = False

        self._last_reset_time: datetime = self.clock()
        self._schedule_reset()

    # ==================== RECORDING ====================

    def record_sample(self, axis: str, acceleration: float, threshold: float) -> Optional[AlertEvent]:
        """
        Record one axis sample.
        Returns the raised AlertEvent, or None when the sample is within threshold.
        """
        if self.validate_axes and axis not in self.axes:
            raise InvalidAxisError(axis, self.axes)

        magnitude = abs(acceleration)
        if magnitude <= threshold:
            return None

        with self._lock:
            now = self.clock()
            event = AlertEvent(
                timestamp=now,
                axis=axis,
                acceleration=acceleration,
                threshold=threshold
            )
            self._events.append(event)
            self._update_alert_group(axis, magnitude, threshold, now)
        self._notify()
        return event

    def _update_alert_group(self, axis: str, magnitude: float, threshold: float, now: datetime):
        existing = self._open_groups.get(axis)

        if existing is None:
            self._open_groups[axis] = AlertGroup(
                axis=axis,
                start_time=now,
                end_time=now,
                peak_value=magnitude,
                peak_time=now,
                threshold=threshold
            )
            if self.recompute_after_update:
                self._update_consolidated_alerts()
            return

        updated = AlertGroup(
            axis=axis,
            start_time=existing.start_time,
            end_time=now,
            peak_value=max(existing.peak_value, magnitude),
            peak_time=now if magnitude > existing.peak_value else existing.peak_time,
            threshold=threshold
        )

        if self.recompute_after_update:
            self._open_groups[axis] = updated
            self._update_consolidated_alerts()
        else:
            # Feed sees this axis at its pre-update peak
            self._update_consolidated_alerts()
            self._open_groups[axis] = updated

    def _strength_key(self, group: AlertGroup):
        # Highest peak, then earliest peak, then axis priority
        if group.axis in self.axes:
            rank = (self.axes.index(group.axis), "")
        else:
            rank = (len(self.axes), group.axis)
        return (-group.peak_value, group.peak_time, rank)

    def _update_consolidated_alerts(self):
        if not self._open_groups:
            return

        strongest = min(self._open_groups.values(), key=self._strength_key)
        alert = ConsolidatedAlert(
            timestamp=strongest.end_time,
            strongest_axis=strongest.axis,
            strongest_value=strongest.peak_value,
            threshold=strongest.threshold,
            duration=strongest.duration
        )

        if any(existing.timestamp == alert.timestamp for existing in self._consolidated_alerts):
            return

        self._consolidated_alerts.append(alert)
        self._consolidated_alerts.sort(key=lambda a: a.timestamp, reverse=True)

    def close_group(self, axis: str) -> Optional[AlertGroup]:
        """Finalize the open group for an axis. No-op when nothing is open."""
        with self._lock:
            group = self._open_groups.pop(axis, None)
            if group is None:
                return None
            self._alert_groups.append(group)
        self._notify()
        return group

    # ==================== RESET ====================

    def _schedule_reset(self):
        self.scheduler.schedule(self.reset_interval.total_seconds(), self._on_reset_timer)

    def _on_reset_timer(self):
        with self._lock:
            if self._shut_down:
                return
            self._purge_history()
        self._notify()

    def reset_history(self):
        """Purge events and groups and start a new reset window"""
        with self._lock:
            self._purge_history()
        self._notify()

    def _purge_history(self):
        # Caller holds self._lock
        self._events.clear()
        self._alert_groups.clear()
        self._open_groups.clear()
        if self.clear_consolidated_on_reset:
            self._consolidated_alerts.clear()
        self._last_reset_time = self.clock()

        if not self._shut_down:
            self._schedule_reset()

        print(f"Alert history reset at {self._last_reset_time.isoformat()}")

    def shutdown(self):
        """Cancel the pending reset. Safe to call more than once."""
        with self._lock:
            self._shut_down = True
            self.scheduler.cancel()

    @property
    def last_reset_time(self) -> datetime:
        with self._lock:
            return self._last_reset_time

    @property
    def next_reset_time(self) -> datetime:
        with self._lock:
            return self._last_reset_time + self.reset_interval

    # ==================== OBSERVERS ====================

    def subscribe(self, callback: Observer) -> Callable[[], None]:
        """
        Register a callback invoked with the aggregator after every change.
        Returns a function that removes the callback again.
        """
        with self._lock:
            self._observers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._observers:
                    self._observers.remove(callback)

        return unsubscribe

    def _notify(self):
        # Runs outside self._lock so observers may call into other locked objects
        with self._lock:
            observers = list(self._observers)
        for callback in observers:
            try:
                callback(self)
            except Exception as e:
                print(f"Error in alert observer: {e}")

    # ==================== QUERIES ====================

    @property
    def events(self) -> List[AlertEvent]:
        with self._lock:
            return list(self._events)

    @property
    def alert_groups(self) -> List[AlertGroup]:
        with self._lock:
            return list(self._alert_groups)

    @property
    def open_groups(self) -> Dict[str, AlertGroup]:
        with self._lock:
            return dict(self._open_groups)

    @property
    def consolidated_alerts(self) -> List[ConsolidatedAlert]:
        with self._lock:
            return list(self._consolidated_alerts)

    def open_group(self, axis: str) -> Optional[AlertGroup]:
        with self._lock:
            return self._open_groups.get(axis)

    def events_for_axis(self, axis: str) -> List[AlertEvent]:
        with self._lock:
            return [e for e in self._events if e.axis == axis]

    def groups_for_axis(self, axis: str) -> List[AlertGroup]:
        with self._lock:
            return [g for g in self._alert_groups if g.axis == axis]

    def recent_groups(self, limit: int = RECENT_GROUPS_LIMIT) -> List[AlertGroup]:
        """Closed groups, most recently ended first"""
        if limit <= 0:
            return []
        with self._lock:
            ordered = sorted(self._alert_groups, key=lambda g: g.end_time, reverse=True)
        return ordered[:limit]

    def snapshot(self) -> AlertSnapshot:
        with self._lock:
            return AlertSnapshot(
                events=list(self._events),
                alert_groups=list(self._alert_groups),
                open_groups=dict(self._open_groups),
                consolidated_alerts=list(self._consolidated_alerts),
                last_reset_time=self._last_reset_time,
                next_reset_time=self._last_reset_time + self.reset_interval
            )

    def status(self) -> AggregatorStatus:
        with self._lock:
            return AggregatorStatus(
                event_count=len(self._events),
                closed_group_count=len(self._alert_groups),
                open_group_count=len(self._open_groups),
                consolidated_count=len(self._consolidated_alerts),
                last_reset_time=self._last_reset_time,
                next_reset_time=self._last_reset_time + self.reset_interval
            )
