"""
FastAPI Backend for the Seismometer Alert Tracker
Main application with REST API endpoints
"""

from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, List, Optional
from contextlib import asynccontextmanager
import time

from config import API_HOST, API_PORT, RECENT_GROUPS_LIMIT
from models import (
    AccelerationSample, AxisSample, ThresholdUpdate, AlertEvent, AlertGroup,
    ConsolidatedAlert, AlertSnapshot, AggregatorStatus, SeismometerStatus
)
from alert_aggregator import AlertAggregator
from seismometer import Seismometer
from errors import InvalidAxisError, InvalidThresholdError
from serial_reader import get_serial_reader, SerialReader


# Global instances
alert_aggregator = AlertAggregator()
seismometer = Seismometer(alert_aggregator)
serial_reader: Optional[SerialReader] = None


def get_aggregator() -> AlertAggregator:
    """Shared alert aggregator"""
    return alert_aggregator


def get_seismometer() -> Seismometer:
    """Shared seismometer"""
    return seismometer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    global serial_reader

    # Startup
    print("Starting Seismometer Alert Backend...")

    serial_reader = get_serial_reader()
    serial_reader.set_callback(seismometer.process_reading)

    serial_reader.start_reading()
    if not serial_reader.is_running:
        print("WARNING: No accelerometer on the serial port. Accepting readings over HTTP only.")

    yield

    # Shutdown
    print("Shutting down...")
    if serial_reader:
        serial_reader.stop_reading()
    alert_aggregator.shutdown()


# Create FastAPI app
app = FastAPI(
    title="Seismometer Alert API",
    description="Backend API for grouping and summarizing accelerometer threshold alerts",
    version="1.0.0",
    lifespan=lifespan
)

# Enable CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== API ENDPOINTS ====================

@app.get("/")
def root():
    """Root endpoint - API status"""
    return {
        "status": "running",
        "name": "Seismometer Alert API",
        "version": "1.0.0",
        "serial_connected": serial_reader.is_running if serial_reader else False
    }


# ---------- Ingestion ----------

@app.post("/api/readings", response_model=List[AlertEvent])
def post_reading(
    sample: AccelerationSample,
    meter: Seismometer = Depends(get_seismometer)
):
    """
    Submit one tri-axial reading.
    Returns the alert events it raised (empty when every axis is within threshold).
    """
    return meter.process_reading(sample)


@app.post("/api/samples", response_model=Optional[AlertEvent])
def post_axis_sample(
    sample: AxisSample,
    aggregator: AlertAggregator = Depends(get_aggregator),
    meter: Seismometer = Depends(get_seismometer)
):
    """Record a single-axis sample directly; threshold defaults to the current setting."""
    threshold = sample.threshold if sample.threshold is not None else meter.threshold
    try:
        return aggregator.record_sample(sample.axis, sample.acceleration, threshold)
    except InvalidAxisError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/api/groups/{axis}/close", response_model=Optional[AlertGroup])
def close_alert_group(axis: str, aggregator: AlertAggregator = Depends(get_aggregator)):
    """Finalize the open alert group for an axis"""
    return aggregator.close_group(axis)


# ---------- Queries ----------

@app.get("/api/events", response_model=List[AlertEvent])
def get_alert_events(
    axis: Optional[str] = None,
    aggregator: AlertAggregator = Depends(get_aggregator)
):
    """Raw alert events in arrival order, optionally for one axis"""
    if axis:
        return aggregator.events_for_axis(axis)
    return aggregator.events


@app.get("/api/groups", response_model=List[AlertGroup])
def get_alert_groups(
    axis: Optional[str] = None,
    aggregator: AlertAggregator = Depends(get_aggregator)
):
    """Closed alert groups, optionally for one axis"""
    if axis:
        return aggregator.groups_for_axis(axis)
    return aggregator.alert_groups


@app.get("/api/groups/recent", response_model=List[AlertGroup])
def get_recent_alert_groups(
    limit: int = RECENT_GROUPS_LIMIT,
    aggregator: AlertAggregator = Depends(get_aggregator)
):
    """Most recently ended closed groups"""
    return aggregator.recent_groups(limit)


@app.get("/api/groups/open", response_model=Dict[str, AlertGroup])
def get_open_alert_groups(aggregator: AlertAggregator = Depends(get_aggregator)):
    """Groups still accumulating, keyed by axis"""
    return aggregator.open_groups


@app.get("/api/consolidated", response_model=List[ConsolidatedAlert])
def get_consolidated_alerts(
    limit: Optional[int] = None,
    aggregator: AlertAggregator = Depends(get_aggregator)
):
    """Consolidated strongest-axis alerts, newest first"""
    alerts = aggregator.consolidated_alerts
    if limit is not None:
        return alerts[:max(limit, 0)]
    return alerts


@app.get("/api/snapshot", response_model=AlertSnapshot)
def get_snapshot(aggregator: AlertAggregator = Depends(get_aggregator)):
    """Everything the aggregator publishes, in one consistent copy"""
    return aggregator.snapshot()


@app.get("/api/status", response_model=AggregatorStatus)
def get_status(aggregator: AlertAggregator = Depends(get_aggregator)):
    """Collection sizes and reset schedule"""
    return aggregator.status()


# ---------- Settings ----------

@app.get("/api/threshold", response_model=SeismometerStatus)
def get_threshold(meter: Seismometer = Depends(get_seismometer)):
    """Current threshold and latest per-axis readings"""
    return meter.status()


@app.put("/api/threshold", response_model=SeismometerStatus)
def set_threshold(update: ThresholdUpdate, meter: Seismometer = Depends(get_seismometer)):
    """Change the alert threshold (g)"""
    try:
        meter.set_threshold(update.threshold)
    except InvalidThresholdError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return meter.status()


@app.post("/api/reset")
def reset_history(aggregator: AlertAggregator = Depends(get_aggregator)):
    """Purge alert history now and restart the reset window"""
    aggregator.reset_history()
    return {
        "message": "Alert history reset successfully",
        "last_reset_time": aggregator.last_reset_time,
        "next_reset_time": aggregator.next_reset_time
    }


# ---------- Serial ----------

@app.get("/api/serial/status")
def get_serial_status():
    """Accelerometer connection and stream status"""
    if serial_reader is None:
        return {"connected": False, "error": "Serial reader not initialized"}

    latest = serial_reader.get_recent_readings(1)
    return {
        "connected": serial_reader.is_connected,
        "streaming": serial_reader.is_running,
        "port": serial_reader.port,
        "baud_rate": serial_reader.baud_rate,
        "readings_received": serial_reader.readings_received,
        "latest_reading": latest[0] if latest else None
    }


@app.post("/api/serial/reconnect")
def reconnect_serial():
    """Re-open the accelerometer port and restart the stream"""
    if serial_reader:
        serial_reader.stop_reading()
        time.sleep(1)

        if serial_reader.connect():
            serial_reader.start_reading()
            return {"success": True, "message": "Reconnected successfully"}
        else:
            return {"success": False, "message": "Failed to reconnect"}

    return {"success": False, "message": "Serial reader not initialized"}


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    print("=" * 50)
    print("Seismometer Alert Tracker - Backend Server")
    print("=" * 50)

    uvicorn.run(
        "main:app",
        host=API_HOST,
        port=API_PORT,
        reload=True
    )
