# trajectory_replay/trail.py
"""
Recent-position history and prediction polyline for a TrajectoryPlayer.
"""
from collections import deque
from typing import Deque, List, Optional, Tuple

import logging

from . import constants as const
from .data_structures import TrajectoryFrame

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class TrajectoryTrail:
    """
    Keeps the last `max_history_points` frame positions of the current
    trajectory and the predicted path from the latest frame.

    The history is cleared whenever the player switches trajectory.
    """

    def __init__(self, max_history_points: int = const.DEFAULT_HISTORY_POINTS):
        if max_history_points < 1:
            raise ValueError(f"max_history_points must be at least 1, got {max_history_points}")
        self._history: Deque[Point] = deque(maxlen=max_history_points)
        self._current_frame: Optional[TrajectoryFrame] = None
        self._player = None

    @property
    def max_history_points(self) -> int:
        return self._history.maxlen

    @property
    def history(self) -> List[Point]:
        """Positions oldest first."""
        return list(self._history)

    @property
    def current_frame(self) -> Optional[TrajectoryFrame]:
        return self._current_frame

    @property
    def prediction_line(self) -> List[Point]:
        """
        The current position followed by the predicted points, or an empty
        list when the current frame carries no prediction.
        """
        if self._current_frame is None:
            return []
        predicted = self._current_frame.predicted_points()
        if not predicted:
            return []
        return [self._current_frame.position] + predicted

    def attach(self, player) -> None:
        """Subscribes to a TrajectoryPlayer's frame and trajectory events."""
        if self._player is not None:
            self.detach()
        player.add_listener(const.EVENT_FRAME_CHANGED, self.on_frame_changed)
        player.add_listener(const.EVENT_TRAJECTORY_CHANGED, self.on_trajectory_changed)
        self._player = player

    def detach(self) -> None:
        if self._player is None:
            return
        self._player.remove_listener(const.EVENT_FRAME_CHANGED, self.on_frame_changed)
        self._player.remove_listener(const.EVENT_TRAJECTORY_CHANGED, self.on_trajectory_changed)
        self._player = None

    def clear(self) -> None:
        self._history.clear()
        self._current_frame = None

    def on_frame_changed(self, frame: TrajectoryFrame) -> None:
        self._current_frame = frame
        self._history.append(frame.position)

    def on_trajectory_changed(self, trajectory_id: str) -> None:
        logger.debug(f"Trail cleared for trajectory {trajectory_id}")
        self.clear()
