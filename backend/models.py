"""
Data models for the Seismometer Alert Backend
"""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4
from pydantic import BaseModel, ConfigDict, Field, computed_field
from enum import Enum

from utils import format_duration


class Axis(str, Enum):
    """Accelerometer measurement axes"""
    X = "X"
    Y = "Y"
    Z = "Z"


class AccelerationSample(BaseModel):
    """
    Raw tri-axial reading from the accelerometer (g).
    timestamp is informational only: alert events are stamped with the
    aggregator clock when the reading is processed.
    """
    timestamp: Optional[datetime] = None
    x: float
    y: float
    z: float

    def axis_values(self) -> Dict[str, float]:
        return {Axis.X.value: self.x, Axis.Y.value: self.y, Axis.Z.value: self.z}


class AxisSample(BaseModel):
    """Single-axis sample submitted directly to the aggregator"""
    axis: str
    acceleration: float
    threshold: Optional[float] = None  # Falls back to the seismometer threshold


class ThresholdUpdate(BaseModel):
    """Request body for changing the alert threshold"""
    threshold: float


class AlertEvent(BaseModel):
    """One over-threshold sample. Two events are equal only if they share an id."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    timestamp: datetime
    axis: str
    acceleration: float  # Signed
    threshold: float  # Threshold in effect when the event was raised

    def __eq__(self, other):
        if not isinstance(other, AlertEvent):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


class AlertGroup(BaseModel):
    """
    Contiguous alerting episode on a single axis.
    The id is derived from axis and start time, so it stays stable while
    the group is replaced on every update.
    """
    model_config = ConfigDict(frozen=True)

    axis: str
    start_time: datetime
    end_time: datetime
    peak_value: float  # Max |acceleration| seen in the episode
    peak_time: datetime
    threshold: float  # Threshold at the most recent update

    @computed_field
    @property
    def id(self) -> str:
        return f"{self.axis}_{self.start_time.timestamp()}"

    @computed_field
    @property
    def duration(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @computed_field
    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration)


class ConsolidatedAlert(BaseModel):
    """Strongest currently-alerting axis at one point in time"""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    timestamp: datetime
    strongest_axis: str
    strongest_value: float
    threshold: float
    duration: float  # Seconds

    @computed_field
    @property
    def formatted_duration(self) -> str:
        return format_duration(self.duration)


class AlertSnapshot(BaseModel):
    """Read-only copy of everything the aggregator publishes"""
    events: List[AlertEvent]
    alert_groups: List[AlertGroup]
    open_groups: Dict[str, AlertGroup]
    consolidated_alerts: List[ConsolidatedAlert]
    last_reset_time: datetime
    next_reset_time: datetime


class AggregatorStatus(BaseModel):
    """Collection sizes and reset times"""
    event_count: int
    closed_group_count: int
    open_group_count: int
    consolidated_count: int
    last_reset_time: datetime
    next_reset_time: datetime


class SeismometerStatus(BaseModel):
    """Current sampler state for real-time display"""
    threshold: float
    accelerations: Dict[str, float]
    alerting: Dict[str, bool]
