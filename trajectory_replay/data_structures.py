"""
Data structures for the trajectory replay system.

This module defines the records produced by the JSON and CSV parsers and
consumed by the playback engines and their subscribers.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from . import constants as const


@dataclass(frozen=True)
class TrajectoryFrame:
    """Single per-trajectory record with current and predicted positions"""
    trajectory_id: int = 0
    timestamp: int = 0
    x: float = 0.0
    y: float = 0.0
    predicted_x: Tuple[float, ...] = ()
    predicted_y: Tuple[float, ...] = ()

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def predicted_points(self) -> List[Tuple[float, float]]:
        """Predicted (x, y) pairs, paired up to the shorter of the two sequences."""
        return list(zip(self.predicted_x, self.predicted_y))


@dataclass(frozen=True)
class ReplayDataPoint:
    """Single row of the flat CSV event log"""
    id_prefix: str
    id: str
    position: Tuple[float, float]
    velocity_scalar: float
    orientation: float
    timestamp: int  # nanoseconds
    workstation: int
    trajectory_id: str
    start: float
    goal: float


@dataclass(frozen=True)
class SkippedLine:
    """Diagnostic for a CSV line that was not turned into a data point"""
    line_number: int
    reason: str
    raw: str


@dataclass
class CsvParseResult:
    """Outcome of parsing a CSV event log"""
    points: List[ReplayDataPoint] = field(default_factory=list)
    skipped_lines: List[SkippedLine] = field(default_factory=list)
    timestamp_unit: str = const.TIMESTAMP_UNIT_UNKNOWN
    first_timestamp_delta: Optional[int] = None

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_lines)
