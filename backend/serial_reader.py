"""
Serial port reader for live accelerometer data
"""

import serial
import threading
import time
from datetime import datetime
from typing import Optional, Callable, List

from config import SERIAL_PORT, BAUD_RATE, SERIAL_SETTLE_SECONDS, MAX_RECENT_READINGS
from models import AccelerationSample
from utils import to_berlin


ReadingCallback = Callable[[AccelerationSample], None]


class SerialReader:
    """
    Streams x,y,z accelerometer lines from the sensor board.
    A daemon thread polls the port and hands every parsed reading to the
    registered callback (normally Seismometer.process_reading).
    """

    def __init__(self, port: str = SERIAL_PORT, baud_rate: int = BAUD_RATE):
        self.port = port
        self.baud_rate = baud_rate
        self.serial_connection: Optional[serial.Serial] = None
        self.is_running = False
        self.read_thread: Optional[threading.Thread] = None

        self.on_reading_callback: Optional[ReadingCallback] = None
        self.readings_received: int = 0

        # Rolling window of the latest parsed readings
        self.recent_readings: List[AccelerationSample] = []
        self.max_recent_readings = MAX_RECENT_READINGS

    @property
    def is_connected(self) -> bool:
        return self.serial_connection is not None and self.serial_connection.is_open

    def connect(self) -> bool:
        """Open the port. Returns False (and logs) when the board is unavailable."""
        try:
            self.serial_connection = serial.Serial(port=self.port, baudrate=self.baud_rate, timeout=1)
        except serial.SerialException as e:
            print(f"Accelerometer not available on {self.port}: {e}")
            return False

        print(f"Accelerometer connected on {self.port} ({self.baud_rate} baud)")

        # Board reboots when the port opens; drop its boot banner
        time.sleep(SERIAL_SETTLE_SECONDS)
        self.serial_connection.reset_input_buffer()
        return True

    def disconnect(self):
        if self.is_connected:
            self.serial_connection.close()
            print(f"Accelerometer on {self.port} disconnected")

    def parse_csv_line(self, line: str) -> Optional[AccelerationSample]:
        """
        Parse one line from the board: "x,y,z" or "timestamp,x,y,z", values in g.
        Example: 2025-12-31 14:30:15,0.012,-0.981,1.204
        Anything else (banners, comments, separators, garbage) yields None.
        """
        line = line.strip()
        if not line or line.startswith("#") or set(line) == {"-"}:
            return None

        fields = line.split(",")
        if len(fields) not in (3, 4):
            return None

        try:
            timestamp = None
            if len(fields) == 4:
                timestamp = to_berlin(datetime.strptime(fields.pop(0).strip(), "%Y-%m-%d %H:%M:%S"))
            x, y, z = (float(value) for value in fields)
        except ValueError:
            return None

        return AccelerationSample(timestamp=timestamp, x=x, y=y, z=z)

    def handle_line(self, line: str) -> Optional[AccelerationSample]:
        """Parse a raw line, buffer it and forward it to the callback."""
        reading = self.parse_csv_line(line)
        if reading is None:
            return None

        self.readings_received += 1
        self.recent_readings.append(reading)
        if len(self.recent_readings) > self.max_recent_readings:
            del self.recent_readings[0]

        if self.on_reading_callback:
            self.on_reading_callback(reading)
        return reading

    def _read_loop(self):
        print("Accelerometer stream started")

        while self.is_running:
            try:
                if self.is_connected and self.serial_connection.in_waiting > 0:
                    raw = self.serial_connection.readline()
                    self.handle_line(raw.decode('utf-8', errors='ignore'))
                else:
                    time.sleep(0.02)
            except Exception as e:
                # Keep streaming; one bad line or callback failure must not stop the thread
                print(f"Error handling accelerometer data: {e}")
                time.sleep(0.5)

        print("Accelerometer stream stopped")

    def start_reading(self):
        """Connect if needed and start the background stream"""
        if self.is_running:
            return

        if not self.is_connected and not self.connect():
            print("Cannot start accelerometer stream without a connection")
            return

        self.is_running = True
        self.read_thread = threading.Thread(target=self._read_loop, daemon=True)
        self.read_thread.start()

    def stop_reading(self):
        """Stop the background stream and release the port"""
        self.is_running = False
        if self.read_thread:
            self.read_thread.join(timeout=2)
            self.read_thread = None
        self.disconnect()

    def get_recent_readings(self, count: int = 50) -> List[AccelerationSample]:
        return self.recent_readings[-count:]

    def set_callback(self, callback: ReadingCallback):
        self.on_reading_callback = callback


# Process-wide reader shared by the API
_serial_reader: Optional[SerialReader] = None


def get_serial_reader() -> SerialReader:
    global _serial_reader
    if _serial_reader is None:
        _serial_reader = SerialReader()
    return _serial_reader
