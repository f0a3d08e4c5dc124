"""
Configuration settings for the Seismometer Alert Backend
"""

# Serial port configuration
SERIAL_PORT = "COM9"
BAUD_RATE = 115200
SERIAL_SETTLE_SECONDS = 2  # Board resets when the port opens

# Measurement axes, in tie-break priority order
AXES = ("X", "Y", "Z")

# Alert threshold (g) - user adjustable within range
DEFAULT_THRESHOLD = 1.0
THRESHOLD_MIN = 0.1
THRESHOLD_MAX = 2.0
THRESHOLD_STEP = 0.1

# History reset window
HISTORY_RESET_HOURS = 6

# Alert engine behaviour
CLEAR_CONSOLIDATED_ON_RESET = False  # False = consolidated feed survives the periodic reset
RECOMPUTE_AFTER_UPDATE = True  # False = evaluate the feed before the axis update is applied
VALIDATE_AXES = False  # True = reject axes outside AXES
AUTO_CLOSE_GROUPS = True  # Close an axis group when its reading returns within threshold

# Query defaults
RECENT_GROUPS_LIMIT = 10
MAX_RECENT_READINGS = 100

# API settings
API_HOST = "0.0.0.0"
API_PORT = 8000
