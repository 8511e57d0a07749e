# replay_player/host.py
"""
Asyncio host that owns one playback engine and drives it to completion.

In trajectories mode the host calls `TrajectoryPlayer.tick()` at the
configured tick rate. In events mode the ReplayEngine paces itself and the
host only waits for its replay task.
"""
import asyncio
from typing import Any, Dict, Optional, Tuple, Union

import logging

from trajectory_replay import (
    ReplayEngine,
    TrajectoryNotFoundError,
    TrajectoryPlayer,
    TrajectorySourceError,
    TrajectoryTrail,
    const,
)
from trajectory_replay.data_structures import ReplayDataPoint

from .interface.config_manager import MODE_EVENTS, MODE_TRAJECTORIES, PlayerConfig

logger = logging.getLogger(__name__)


class PlaybackHost:
    """
    Builds the engine described by a PlayerConfig, loads its source and
    runs playback until it ends or the host is cancelled.
    """

    def __init__(self, config: PlayerConfig):
        if config.mode not in (MODE_TRAJECTORIES, MODE_EVENTS):
            raise ValueError(f"Unknown playback mode '{config.mode}'")
        if config.tick_rate <= 0:
            raise ValueError(f"tick_rate must be positive, got {config.tick_rate}")

        self.config = config
        self.dashboard = None
        self.trail: Optional[TrajectoryTrail] = None
        self.engine: Union[TrajectoryPlayer, ReplayEngine]

        # Followed position/orientation in events mode
        self.follower_position: Optional[Tuple[float, float]] = None
        self.follower_orientation: Optional[float] = None

        if config.mode == MODE_TRAJECTORIES:
            self.engine = TrajectoryPlayer(
                speed=config.speed,
                loop=config.loop,
                base_frame_duration=config.frame_duration,
            )
            self.trail = TrajectoryTrail(max_history_points=config.history_points)
            self.trail.attach(self.engine)
        else:
            self.engine = ReplayEngine(
                speed=config.speed,
                loop=config.loop,
                timeout_threshold=config.timeout_threshold,
                fixed_time_step=config.fixed_time_step,
                use_real_timestamps=config.use_real_timestamps,
            )
            self.engine.add_listener(const.EVENT_DATA_POINT_UPDATED, self._follow_data_point)

    @property
    def mode(self) -> str:
        return self.config.mode

    def attach_dashboard(self, dashboard) -> None:
        """Routes engine events into a dashboard's event log."""
        self.dashboard = dashboard
        dashboard.subscribe(self.engine)

    def load(self) -> Dict[str, Any]:
        """
        Loads the configured source file into the engine.

        Returns:
            A short summary of what was loaded.

        Raises:
            TrajectorySourceError: if the source path is missing or unreadable.
            TrajectoryParseError: if a trajectory JSON source is malformed.
            TrajectoryNotFoundError: if the requested trajectory does not exist.
        """
        path = self.config.source_path
        if not path:
            raise TrajectorySourceError("No source path configured")
        if self.mode == MODE_TRAJECTORIES:
            self.engine.set_source_path(path)
            if self.config.trajectory_id is not None:
                if not self.engine.set_trajectory(self.config.trajectory_id):
                    raise TrajectoryNotFoundError(self.config.trajectory_id)
            return {
                "trajectories": len(self.engine.store),
                "frames": self.engine.store.total_frames,
                "current": self.engine.current_trajectory_id,
            }

        result = self.engine.load_file(path)
        return {
            "points": len(result.points),
            "skipped": result.skipped_count,
            "timestamp_unit": result.timestamp_unit,
        }

    async def run(self, keep_alive: bool = False) -> None:
        """
        Plays the loaded data.

        Args:
            keep_alive: Keep running after playback ends or pauses so it can
                        be restarted interactively; the host then runs until
                        cancelled. Otherwise returns when non-looping
                        playback ends.
        """
        if self.mode == MODE_TRAJECTORIES:
            await self._run_trajectories(keep_alive)
        else:
            await self._run_events(keep_alive)

    async def _run_trajectories(self, keep_alive: bool) -> None:
        player: TrajectoryPlayer = self.engine
        if self.config.play_on_start:
            if not player.play() and not keep_alive:
                return
        elif not keep_alive:
            logger.info("Play on start disabled, showing first frame only")
            return

        tick_interval = 1.0 / self.config.tick_rate
        logger.info(f"Tick loop running at {self.config.tick_rate:.1f} Hz")
        while keep_alive or player.is_playing:
            player.tick()
            await asyncio.sleep(tick_interval)
        logger.info("Trajectory playback finished")

    async def _run_events(self, keep_alive: bool) -> None:
        engine: ReplayEngine = self.engine
        if self.config.play_on_start:
            if engine.start():
                await engine.wait_for_completion()
                logger.info("Event replay finished")
        elif not keep_alive:
            logger.info("Play on start disabled, replay not started")
            return

        idle_interval = 1.0 / self.config.tick_rate
        while keep_alive:
            # Replays restarted from the keyboard run on their own task
            await asyncio.sleep(idle_interval)

    async def shutdown(self) -> None:
        if isinstance(self.engine, ReplayEngine):
            await self.engine.shutdown()
        else:
            self.engine.pause()
        if self.trail is not None:
            self.trail.detach()

    def apply_config_change(self, change_info: Dict[str, Any]) -> None:
        """ConfigurationManager update callback that applies live changes."""
        parameter = change_info["parameter"]
        value = change_info["new_value"]

        if parameter == "speed":
            self.engine.set_speed(value)
        elif parameter == "loop":
            self.engine.loop = value
        elif parameter == "use_real_timestamps" and isinstance(self.engine, ReplayEngine):
            if self.engine.use_real_timestamps != value:
                self.engine.toggle_timestamp_mode()
        elif parameter == "refresh_rate" and self.dashboard is not None:
            self.dashboard.set_refresh_rate(value)
        else:
            logger.info(f"Parameter {parameter} takes effect on next start")
            return
        logger.info(f"Applied live configuration update: {parameter} = {value}")

    def _follow_data_point(self, point: ReplayDataPoint) -> None:
        self.follower_position = point.position
        self.follower_orientation = point.orientation
        logger.debug(
            f"Follower at ({point.position[0]:.2f}, {point.position[1]:.2f}), "
            f"orientation {point.orientation:.1f}"
        )
