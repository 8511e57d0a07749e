# trajectory_replay/constants.py
"""
Constants for the trajectory replay library.
Includes playback defaults, clamping limits, input format details and the
names of the events emitted by the playback engines.
"""

# Time conversion
NANOSECONDS_PER_SECOND = 1_000_000_000

# Trajectory (JSON) playback defaults
DEFAULT_FRAME_DURATION_S = 0.1  # 100 ms between frames at 1x
DEFAULT_PLAYBACK_SPEED = 1.0
MIN_PLAYBACK_SPEED = 0.1  # No upper bound in trajectory mode
DEFAULT_LOOP_TRAJECTORIES = True

# Event log (CSV) replay defaults
MAX_REPLAY_SPEED = 10.0
DEFAULT_TIMEOUT_THRESHOLD_S = 5.0  # Larger gaps between points are not waited out
DEFAULT_FIXED_TIME_STEP_S = 0.1  # Used when real timestamps are disabled
DEFAULT_USE_REAL_TIMESTAMPS = True
DEFAULT_LOOP_REPLAY = False
SPEED_STEP_FACTOR = 1.5

# Trail tracking
DEFAULT_HISTORY_POINTS = 30

# JSON frame object keys
KEY_TRAJECTORY_ID = "t_id"
KEY_TIMESTAMP = "t"
KEY_X = "x"
KEY_Y = "y"
KEY_PREDICTED_X = "p_x"
KEY_PREDICTED_Y = "p_y"

FRAME_KEYS = (
    KEY_TRAJECTORY_ID,
    KEY_TIMESTAMP,
    KEY_X,
    KEY_Y,
    KEY_PREDICTED_X,
    KEY_PREDICTED_Y,
)

# JSON whitespace class (RFC 8259)
JSON_WHITESPACE = " \t\n\r"
JSON_NUMBER_CHARS = "0123456789.eE+-"

# CSV event log layout:
# idPrefix, id, x, y, velocityScalar, orientation, timestamp, workstation,
# trajectoryId, start, goal
CSV_EXPECTED_FIELD_COUNT = 11
CSV_FIELD_ID_PREFIX = 0
CSV_FIELD_ID = 1
CSV_FIELD_X = 2
CSV_FIELD_Y = 3
CSV_FIELD_VELOCITY = 4
CSV_FIELD_ORIENTATION = 5
CSV_FIELD_TIMESTAMP = 6
CSV_FIELD_WORKSTATION = 7
CSV_FIELD_TRAJECTORY_ID = 8
CSV_FIELD_START = 9
CSV_FIELD_GOAL = 10

# Apparent timestamp unit, judged from the delta between the first two rows
TIMESTAMP_UNIT_MICROSECONDS = "microseconds"
TIMESTAMP_UNIT_MILLISECONDS = "milliseconds"
TIMESTAMP_UNIT_SECONDS_OR_CUSTOM = "seconds_or_custom"
TIMESTAMP_UNIT_UNKNOWN = "unknown"  # Fewer than two points

TIMESTAMP_DELTA_MICROSECONDS = 1_000_000
TIMESTAMP_DELTA_MILLISECONDS = 1_000

# Event names (trajectory mode)
EVENT_FRAME_CHANGED = "frame_changed"
EVENT_TRAJECTORY_CHANGED = "trajectory_changed"
EVENT_PROGRESS = "progress"

# Event names (event log mode)
EVENT_DATA_POINT_UPDATED = "data_point_updated"
EVENT_REPLAY_STARTED = "replay_started"
EVENT_REPLAY_PAUSED = "replay_paused"
EVENT_REPLAY_COMPLETED = "replay_completed"

TRAJECTORY_EVENTS = (
    EVENT_FRAME_CHANGED,
    EVENT_TRAJECTORY_CHANGED,
    EVENT_PROGRESS,
)

REPLAY_EVENTS = (
    EVENT_DATA_POINT_UPDATED,
    EVENT_REPLAY_STARTED,
    EVENT_REPLAY_PAUSED,
    EVENT_REPLAY_COMPLETED,
)
