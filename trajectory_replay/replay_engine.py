# trajectory_replay/replay_engine.py
"""
Timestamp-paced replay of CSV event logs.

A replay run is one asyncio task. It emits the point at the current index,
then sleeps for the scaled timestamp delta (or a fixed step) before each
following point. Pausing cancels the task; the run also checks the playing
flag after every wake-up, so a cancelled run has no further side effects.
"""
import asyncio
import math
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, Union

import logging

from . import constants as const
from .csv_parser import parse_replay_csv
from .data_structures import CsvParseResult, ReplayDataPoint
from .events import EventEmitter, Listener
from .exceptions import PlaybackError
from .loader import read_source_text

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class ReplayEngine:
    """
    Replays ReplayDataPoints in file order with their recorded timing.

    Events (see `constants.REPLAY_EVENTS`):
        data_point_updated(point), replay_started(), replay_paused(),
        replay_completed()

    `start()` and `resume()` must be called from within a running event
    loop.
    """

    def __init__(
        self,
        speed: float = const.DEFAULT_PLAYBACK_SPEED,
        loop: bool = const.DEFAULT_LOOP_REPLAY,
        timeout_threshold: float = const.DEFAULT_TIMEOUT_THRESHOLD_S,
        fixed_time_step: float = const.DEFAULT_FIXED_TIME_STEP_S,
        use_real_timestamps: bool = const.DEFAULT_USE_REAL_TIMESTAMPS,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """
        Args:
            speed: Replay speed multiplier, clamped to [0.1, 10.0].
            loop: Start over from the first point after the last one.
            timeout_threshold: Gaps longer than this many seconds (unscaled)
                               are skipped without waiting.
            fixed_time_step: Seconds between points when real timestamps are
                             not used.
            use_real_timestamps: Pace by timestamp deltas instead of the
                                 fixed step.
            sleep: Coroutine function used for waits.
        """
        if timeout_threshold < 0:
            raise PlaybackError(f"timeout_threshold must not be negative, got {timeout_threshold}")
        if fixed_time_step < 0:
            raise PlaybackError(f"fixed_time_step must not be negative, got {fixed_time_step}")

        self._events = EventEmitter(const.REPLAY_EVENTS)
        self._sleep = sleep

        self._speed = self._clamp_speed(speed)
        self._loop = loop
        self._timeout_threshold = timeout_threshold
        self._fixed_time_step = fixed_time_step
        self._use_real_timestamps = use_real_timestamps

        self._points: List[ReplayDataPoint] = []
        self._index = 0
        self._current_point: Optional[ReplayDataPoint] = None
        self._is_playing = False
        self._task: Optional[asyncio.Task] = None
        self._generation = 0
        self._last_parse_result: Optional[CsvParseResult] = None

    @staticmethod
    def _clamp_speed(speed: float) -> float:
        return min(max(speed, const.MIN_PLAYBACK_SPEED), const.MAX_REPLAY_SPEED)

    # ------------------------------------------------------------ listeners

    def add_listener(self, event_name: str, listener: Listener) -> None:
        self._events.add_listener(event_name, listener)

    def remove_listener(self, event_name: str, listener: Listener) -> None:
        self._events.remove_listener(event_name, listener)

    # -------------------------------------------------------------- loading

    def load_points(self, points: Iterable[ReplayDataPoint]) -> None:
        """Replaces the replay data. A running replay is stopped first."""
        if self._is_playing:
            self.stop()
        self._points = list(points)
        self._index = 0
        self._current_point = self._points[0] if self._points else None
        logger.info(f"Replay data set with {len(self._points)} points")

    def load_text(self, text: str) -> CsvParseResult:
        result = parse_replay_csv(text)
        self._last_parse_result = result
        self.load_points(result.points)
        return result

    def load_file(self, path: Union[str, Path]) -> CsvParseResult:
        """
        Loads a CSV event log file.

        Raises:
            TrajectorySourceError: if the file is missing or unreadable.
        """
        return self.load_text(read_source_text(path))

    # ----------------------------------------------------------- properties

    @property
    def points(self) -> List[ReplayDataPoint]:
        return list(self._points)

    @property
    def last_parse_result(self) -> Optional[CsvParseResult]:
        return self._last_parse_result

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

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
    def timeout_threshold(self) -> float:
        return self._timeout_threshold

    @property
    def fixed_time_step(self) -> float:
        return self._fixed_time_step

    @property
    def use_real_timestamps(self) -> bool:
        return self._use_real_timestamps

    @property
    def total_points(self) -> int:
        return len(self._points)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def progress(self) -> float:
        """Fraction of the data replayed, 0.0 when nothing is loaded."""
        if not self._points:
            return 0.0
        return self._index / len(self._points)

    @property
    def current_point(self) -> Optional[ReplayDataPoint]:
        return self._current_point

    @property
    def current_position(self) -> Tuple[float, float]:
        return self._current_point.position if self._current_point else (0.0, 0.0)

    @property
    def current_velocity(self) -> float:
        return self._current_point.velocity_scalar if self._current_point else 0.0

    @property
    def current_orientation(self) -> float:
        return self._current_point.orientation if self._current_point else 0.0

    @property
    def current_trajectory_id(self) -> str:
        return self._current_point.trajectory_id if self._current_point else ""

    # ------------------------------------------------------------- controls

    def start(self) -> bool:
        """
        Starts a replay run from the current index.

        A replay that is already playing is stopped first, so the new run
        begins at the first point. Returns False if there is no data.
        """
        if not self._points:
            logger.warning("No data to replay")
            return False
        if self._is_playing:
            self.stop()

        self._is_playing = True
        logger.info(f"Replay started at point {self._index} of {len(self._points)}")
        self._events.emit(const.EVENT_REPLAY_STARTED)
        self._launch()
        return True

    def pause(self) -> None:
        was_playing = self._is_playing
        self._is_playing = False
        self._cancel_task()
        if was_playing:
            logger.info(f"Replay paused at point {self._index}")
            self._events.emit(const.EVENT_REPLAY_PAUSED)

    def resume(self) -> bool:
        """Continues a paused replay from the current index."""
        if self._is_playing or self._index >= len(self._points):
            return False
        self._is_playing = True
        logger.info(f"Replay resumed at point {self._index}")
        self._events.emit(const.EVENT_REPLAY_STARTED)
        self._launch()
        return True

    def stop(self) -> None:
        self.pause()
        self._index = 0

    def seek_normalized(self, fraction: float) -> None:
        """
        Jumps to the point at `fraction` of the data and publishes it
        immediately, whether or not the replay is playing.
        """
        if not self._points:
            logger.warning("No data to seek in")
            return
        if math.isnan(fraction):
            logger.warning("Ignoring seek to NaN position")
            return
        fraction = min(max(fraction, 0.0), 1.0)
        index = int(math.floor(fraction * len(self._points)))
        self._index = min(max(index, 0), len(self._points) - 1)
        logger.debug(f"Seeked to point {self._index} ({fraction:.2f})")
        self._publish_current()

    def set_speed(self, multiplier: float) -> None:
        self._speed = self._clamp_speed(multiplier)
        logger.info(f"Replay speed set to {self._speed:.2f}x")

    def increase_speed(self) -> None:
        self.set_speed(self._speed * const.SPEED_STEP_FACTOR)

    def decrease_speed(self) -> None:
        self.set_speed(self._speed / const.SPEED_STEP_FACTOR)

    def toggle_timestamp_mode(self) -> bool:
        """Switches between real timestamps and the fixed step; returns the new mode."""
        self._use_real_timestamps = not self._use_real_timestamps
        mode = "real timestamps" if self._use_real_timestamps else "fixed time step"
        logger.info(f"Replay timing mode: {mode}")
        return self._use_real_timestamps

    def compute_wait(self, current: ReplayDataPoint, following: ReplayDataPoint) -> float:
        """Seconds to wait between two consecutive points at the current speed."""
        if not self._use_real_timestamps:
            return self._fixed_time_step / self._speed

        delta_s = (following.timestamp - current.timestamp) / const.NANOSECONDS_PER_SECOND
        if delta_s > self._timeout_threshold:
            logger.info(
                f"Time gap of {delta_s:.2f}s exceeds threshold "
                f"({self._timeout_threshold}s), skipping to next point"
            )
            return 0.0
        return delta_s / self._speed

    async def wait_for_completion(self) -> None:
        """
        Waits until no replay run is active, including looped restarts.

        A paused or stopped run ends the wait normally. Cancelling the
        caller propagates and leaves the replay task running.
        """
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    async def shutdown(self) -> None:
        """Pauses and waits for the replay task to finish cancelling."""
        task = self._task
        self.pause()
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Replay task cancelled")

    # ------------------------------------------------------------ internals

    def _launch(self) -> None:
        self._generation += 1
        self._task = asyncio.create_task(self._run(self._generation))

    def _cancel_task(self) -> None:
        self._generation += 1
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _is_active_run(self, generation: int) -> bool:
        return self._is_playing and self._generation == generation

    def _publish_current(self) -> None:
        self._current_point = self._points[self._index]
        self._events.emit(const.EVENT_DATA_POINT_UPDATED, self._current_point)

    async def _run(self, generation: int) -> None:
        # Listeners may pause or restart the replay from inside this task, so
        # every step re-checks that this run is still the active one.
        while True:
            self._publish_current()

            while self._index < len(self._points) - 1:
                if not self._is_active_run(generation):
                    return
                wait = self.compute_wait(self._points[self._index], self._points[self._index + 1])
                if wait > 0:
                    await self._sleep(wait)
                if not self._is_active_run(generation):
                    return
                self._index += 1
                self._publish_current()

            if not self._is_active_run(generation):
                return
            self._is_playing = False
            logger.info("Replay completed")
            self._events.emit(const.EVENT_REPLAY_COMPLETED)

            if not self._loop or self._generation != generation:
                return
            self._index = 0
            self._is_playing = True
            logger.info("Looping replay from the first point")
            self._events.emit(const.EVENT_REPLAY_STARTED)
            await asyncio.sleep(0)
            if not self._is_active_run(generation):
                return
