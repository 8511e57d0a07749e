"""
Trajectory Replay Library
=========================

This library loads recorded movement data and replays it over time. It
includes a parser for trajectory JSON files (per-trajectory frames with
predicted positions), a parser for flat CSV event logs, and two playback
engines that publish frames or data points to subscribers.
"""

# Import the constants module and alias it as 'const' for patterned access
from . import constants as const

from .data_structures import (
    TrajectoryFrame,
    ReplayDataPoint,
    SkippedLine,
    CsvParseResult,
)
from .events import EventEmitter
from .json_parser import TrajectoryJSONParser, parse_trajectories
from .csv_parser import parse_replay_csv, parse_line, classify_timestamp_unit
from .trajectory_store import TrajectoryStore, compare_trajectory_ids, sort_trajectory_ids
from .trajectory_player import TrajectoryPlayer
from .replay_engine import ReplayEngine
from .trail import TrajectoryTrail
from .loader import load_trajectory_file, load_replay_csv_file, read_source_text

from .exceptions import (
    TrajectoryReplayError,
    TrajectoryParseError,
    TrajectoryNotFoundError,
    TrajectorySourceError,
    LineFormatError,
    PlaybackError,
)

__version__ = "0.1.0"

__all__ = [
    "const",

    # Data records
    "TrajectoryFrame",
    "ReplayDataPoint",
    "SkippedLine",
    "CsvParseResult",

    # Parsing and loading
    "TrajectoryJSONParser",
    "parse_trajectories",
    "parse_replay_csv",
    "parse_line",
    "classify_timestamp_unit",
    "load_trajectory_file",
    "load_replay_csv_file",
    "read_source_text",

    # Storage and playback
    "EventEmitter",
    "TrajectoryStore",
    "compare_trajectory_ids",
    "sort_trajectory_ids",
    "TrajectoryPlayer",
    "ReplayEngine",
    "TrajectoryTrail",

    # Exceptions
    "TrajectoryReplayError",
    "TrajectoryParseError",
    "TrajectoryNotFoundError",
    "TrajectorySourceError",
    "LineFormatError",
    "PlaybackError",
]
