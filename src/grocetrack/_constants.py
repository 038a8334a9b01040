"""Internal constants shared across the library."""

EARTH_RADIUS_KM = 6371.0

DEFAULT_TICK_INTERVAL_S = 1.0
DEFAULT_LOOP_DURATION = 60

# ------------------------------------------------------------------
# Simulated rider geometry (degrees)
# ------------------------------------------------------------------

PICKUP_START_OFFSET_DEG = 0.005
SYNTHETIC_DESTINATION_OFFSET_DEG = 0.01

# ------------------------------------------------------------------
# Device location filtering
# ------------------------------------------------------------------

WATCH_ACCURACY_THRESHOLD = 100.0
MIN_MOVE_DEG = 0.00005

DEMO_STATUS_INTERVAL_TICKS = 15
DEMO_ACCOUNT_MARKER = "demo"

LATITUDE_RANGE: tuple[float, float] = (-90.0, 90.0)
LONGITUDE_RANGE: tuple[float, float] = (-180.0, 180.0)
