# trajectory_replay/trajectory_player.py
"""
Frame-stepping playback of trajectory JSON data.

The player is driven by an external clock: the host calls `tick()` at its
own rate and the player advances at most one frame per call, once the
scaled frame interval has elapsed.
"""
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

import logging

from . import constants as const
from .data_structures import TrajectoryFrame
from .events import EventEmitter, Listener
from .exceptions import PlaybackError, TrajectoryNotFoundError
from .loader import read_source_text
from .trajectory_store import TrajectoryStore

logger = logging.getLogger(__name__)


class TrajectoryPlayer:
    """
    Plays the frames of one trajectory at a time, optionally cycling
    through all loaded trajectories in ID order.

    Events (see `constants.TRAJECTORY_EVENTS`):
        frame_changed(frame), trajectory_changed(trajectory_id),
        progress(trajectory_id, frame_number, total_frames)
    """

    def __init__(
        self,
        speed: float = const.DEFAULT_PLAYBACK_SPEED,
        loop: bool = const.DEFAULT_LOOP_TRAJECTORIES,
        base_frame_duration: float = const.DEFAULT_FRAME_DURATION_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            speed: Playback speed multiplier, clamped to MIN_PLAYBACK_SPEED.
            loop: Continue with the next trajectory after the last frame.
            base_frame_duration: Seconds per frame at speed 1.0.
            clock: Monotonic time source in seconds, used when `tick()` is
                   called without an explicit time.
        """
        if base_frame_duration <= 0:
            raise PlaybackError(
                f"base_frame_duration must be positive, got {base_frame_duration}"
            )

        self._store = TrajectoryStore()
        self._events = EventEmitter(const.TRAJECTORY_EVENTS)
        self._clock = clock

        self._speed = max(const.MIN_PLAYBACK_SPEED, speed)
        self._loop = loop
        self._base_frame_duration = base_frame_duration

        self._source_path: Optional[Path] = None
        self._current_id: Optional[str] = None
        self._frames: List[TrajectoryFrame] = []
        self._frame_index = 0
        self._is_playing = False
        self._last_advance = 0.0

    # ------------------------------------------------------------ listeners

    def add_listener(self, event_name: str, listener: Listener) -> None:
        self._events.add_listener(event_name, listener)

    def remove_listener(self, event_name: str, listener: Listener) -> None:
        self._events.remove_listener(event_name, listener)

    # ----------------------------------------------------------- properties

    @property
    def store(self) -> TrajectoryStore:
        return self._store

    @property
    def source_path(self) -> Optional[Path]:
        return self._source_path

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def loop(self) -> bool:
        return self._loop

    @loop.setter
    def loop(self, value: bool) -> None:
        self._loop = bool(value)

    @property
    def base_frame_duration(self) -> float:
        return self._base_frame_duration

    @property
    def frame_interval(self) -> float:
        """Seconds between frame advances at the current speed."""
        return self._base_frame_duration / self._speed

    @property
    def current_trajectory_id(self) -> Optional[str]:
        return self._current_id

    @property
    def current_frame_index(self) -> int:
        return self._frame_index

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def current_frame(self) -> Optional[TrajectoryFrame]:
        if not self._frames:
            return None
        return self._frames[self._frame_index]

    def trajectory_ids(self) -> List[str]:
        return self._store.trajectory_ids()

    # -------------------------------------------------------------- loading

    def load_text(self, text: str, source: Optional[str] = None) -> None:
        """
        Replaces the loaded trajectories with those parsed from `text`.

        The first trajectory in ID order becomes current. The play state is
        kept unless nothing playable was loaded.

        Raises:
            TrajectoryParseError: if the text is malformed; the previous data
                stays loaded.
        """
        self._store.load(text, source=source)
        ids = self._store.trajectory_ids()
        if ids:
            self.set_trajectory(ids[0])
        else:
            logger.warning("Loaded trajectory data contains no trajectories")
            self._current_id = None
            self._frames = []
            self._frame_index = 0
        if self._store.total_frames == 0 and self._is_playing:
            logger.warning("Loaded trajectory data has no frames, playback stopped")
            self._is_playing = False

    def set_source_path(self, path: Union[str, Path]) -> None:
        """
        Loads trajectories from a JSON file.

        Raises:
            TrajectorySourceError: if the file is missing or unreadable.
            TrajectoryParseError: if the file content is malformed.
        """
        text = read_source_text(path)
        self.load_text(text, source=str(path))
        self._source_path = Path(path)
        logger.info(f"Loaded {len(self._store)} trajectories from {path}")

    def reload(self) -> bool:
        """
        Re-reads the current source file. Returns False if no source path
        has been set.

        Raises:
            TrajectorySourceError: if the file is missing or unreadable.
            TrajectoryParseError: if the file content is malformed.
        """
        if self._source_path is None:
            logger.warning("No source path set, nothing to reload")
            return False
        self.set_source_path(self._source_path)
        return True

    # ------------------------------------------------------------- controls

    def play(self) -> bool:
        """Starts playback. Returns False if nothing is loaded."""
        if self._store.total_frames == 0:
            logger.warning("No trajectory data loaded, cannot start playback")
            return False
        self._is_playing = True
        self._last_advance = self._clock()
        logger.info(f"Playback started on trajectory {self._current_id}")
        return True

    def pause(self) -> None:
        if self._is_playing:
            logger.info(f"Playback paused at frame {self._frame_index}")
        self._is_playing = False

    def toggle(self) -> bool:
        """Flips between playing and paused; returns the new playing state."""
        if self._is_playing:
            self.pause()
        else:
            self.play()
        return self._is_playing

    def set_speed(self, multiplier: float) -> None:
        self._speed = max(const.MIN_PLAYBACK_SPEED, multiplier)
        logger.debug(f"Playback speed set to {self._speed:.2f}x")

    def set_trajectory(self, trajectory_id: str) -> bool:
        """
        Selects a trajectory and rewinds to its first frame.

        Emits trajectory_changed, then frame_changed and progress for the
        first frame when the trajectory has frames. Returns False and leaves
        the state unchanged if the ID is unknown.
        """
        try:
            frames = self._store.select(trajectory_id)
        except TrajectoryNotFoundError as e:
            logger.error(str(e))
            return False

        self._current_id = trajectory_id
        self._frames = frames
        self._frame_index = 0

        self._events.emit(const.EVENT_TRAJECTORY_CHANGED, trajectory_id)
        if frames:
            self._events.emit(const.EVENT_FRAME_CHANGED, frames[0])
            self._events.emit(const.EVENT_PROGRESS, trajectory_id, 1, len(frames))
        else:
            logger.warning(f"Trajectory {trajectory_id} has no frames")
        return True

    def next_trajectory(self) -> bool:
        if self._current_id is None:
            logger.warning("No trajectory selected")
            return False
        return self.set_trajectory(self._store.next_id(self._current_id))

    def previous_trajectory(self) -> bool:
        if self._current_id is None:
            logger.warning("No trajectory selected")
            return False
        return self.set_trajectory(self._store.previous_id(self._current_id))

    # ------------------------------------------------------------- stepping

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Advances one frame if playing and the frame interval has elapsed.

        Args:
            now: Current time in seconds; read from the clock when omitted.

        Returns:
            True if a frame advance happened.
        """
        if not self._is_playing:
            return False
        if now is None:
            now = self._clock()
        if now - self._last_advance < self.frame_interval:
            return False
        self._last_advance = now
        self._advance_frame()
        return True

    def _advance_frame(self) -> None:
        if self._store.total_frames == 0:
            logger.warning("No trajectory data loaded, playback stopped")
            self._is_playing = False
            return
        next_index = self._frame_index + 1
        if next_index >= len(self._frames):
            if self._loop:
                next_id = self._store.next_id(self._current_id)
                logger.debug(f"Trajectory {self._current_id} finished, switching to {next_id}")
                self.set_trajectory(next_id)
            else:
                self._is_playing = False
                self._frame_index = max(0, len(self._frames) - 1)
                logger.info(f"Playback finished at end of trajectory {self._current_id}")
            return

        self._frame_index = next_index
        frame = self._frames[next_index]
        self._events.emit(const.EVENT_FRAME_CHANGED, frame)
        self._events.emit(
            const.EVENT_PROGRESS, self._current_id, next_index + 1, len(self._frames)
        )
