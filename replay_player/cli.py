"""
Command-Line Interface for the trajectory replay player.
Uses 'click' for CLI argument parsing and command structure.
"""
import asyncio
import click
import logging
import signal
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.table import Table

from trajectory_replay import (
    TrajectoryReplayError,
    __version__,
    const,
    load_replay_csv_file,
    load_trajectory_file,
    sort_trajectory_ids,
)

from .host import PlaybackHost
from .interface.config_manager import (
    MODE_EVENTS,
    MODE_TRAJECTORIES,
    VALID_LOG_LEVELS,
    ConfigurationManager,
    PlayerConfig,
)
from .interface.interactive_controls import InteractiveController
from .interface.rich_dashboard import RichDashboard

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("TrajectoryReplayCLI")


def _configure_logging(log_level: str) -> None:
    numeric_log_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(numeric_log_level)
    logger.setLevel(numeric_log_level)


def _shared_options(func):
    """Options common to both playback commands."""
    options = [
        click.option("--speed", default=const.DEFAULT_PLAYBACK_SPEED, type=float,
                     help="Playback speed multiplier.", show_default=True),
        click.option("--play/--no-play", "play_on_start", default=True,
                     help="Start playback as soon as the data is loaded.", show_default=True),
        click.option("--dashboard", is_flag=True,
                     help="Enable Rich console dashboard for real-time monitoring "
                          "(keyboard controls on a terminal: 'h' for help, 'q' to quit)."),
        click.option("--refresh-rate", default=200, type=click.IntRange(50, 2000),
                     help="Dashboard refresh rate in milliseconds.", show_default=True),
        click.option("--no-color", is_flag=True,
                     help="Disable color output for compatibility."),
        click.option("--log-level", default="INFO",
                     type=click.Choice(list(VALID_LOG_LEVELS), case_sensitive=False),
                     help="Logging level.", show_default=True),
        click.option("--config-profile", type=str,
                     help="Load configuration from named profile."),
        click.option("--save-config", type=str,
                     help="Save current configuration as named profile."),
        click.option("--config-dir", type=str,
                     help="Directory for configuration files (default: ~/.trajectory_replay_config)."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_config(
    config_manager: ConfigurationManager,
    mode: str,
    path: str,
    config_profile: Optional[str],
    settings: Dict[str, Any],
) -> PlayerConfig:
    """Builds the run configuration from a profile or from CLI settings."""
    if config_profile:
        loaded_config = config_manager.load_config(config_profile)
        if loaded_config is None:
            raise click.ClickException(f"Failed to load configuration profile: {config_profile}")
        logger.info(f"Loaded configuration profile: {config_profile}")
        # Profile settings win; source and mode always come from the command line
        loaded_config.mode = mode
        loaded_config.source_path = path
        return loaded_config

    config = config_manager.create_default_config(mode, source_path=path)
    for key, value in settings.items():
        setattr(config, key, value)
    return config


async def _cancel_task(task: Optional[asyncio.Task], name: str) -> None:
    if task and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info(f"{name} task cancelled successfully.")


async def _run_host(host: PlaybackHost, config_manager: ConfigurationManager) -> None:
    config = host.config
    dashboard_task: Optional[asyncio.Task] = None
    interactive_task: Optional[asyncio.Task] = None

    main_task = asyncio.current_task()
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, main_task.cancel)
    except (NotImplementedError, RuntimeError, ValueError) as e:
        logger.debug(f"SIGTERM handler not installed: {e}")

    if config.dashboard:
        dashboard = RichDashboard(host, refresh_rate_ms=config.refresh_rate, no_color=config.no_color)
        host.attach_dashboard(dashboard)
        dashboard_task = asyncio.create_task(dashboard.run())
        logger.info(f"Rich dashboard started with {config.refresh_rate}ms refresh rate")

        if InteractiveController.is_supported():
            interactive_controller = InteractiveController(
                dashboard, host, config_manager, on_quit=main_task.cancel
            )
            dashboard.set_interactive_controller(interactive_controller)
            interactive_task = asyncio.create_task(interactive_controller.start())
            logger.info("Interactive controls enabled (press 'h' for help, 'q' to quit)")

    try:
        await host.run(keep_alive=interactive_task is not None)
    finally:
        await host.shutdown()
        await _cancel_task(interactive_task, "Interactive controller")
        await _cancel_task(dashboard_task, "Dashboard")


def _play(
    mode: str,
    path: str,
    settings: Dict[str, Any],
    config_profile: Optional[str],
    save_config: Optional[str],
    config_dir: Optional[str],
) -> None:
    _configure_logging(settings["log_level"])

    config_manager = ConfigurationManager(config_dir)
    config = _resolve_config(config_manager, mode, path, config_profile, settings)
    config_manager.current_config = config
    _configure_logging(config.log_level)

    host = PlaybackHost(config)
    config_manager.add_update_callback(host.apply_config_change)

    try:
        summary = host.load()
    except TrajectoryReplayError as e:
        logger.error(f"Failed to load {path}: {e}")
        raise click.ClickException(str(e))
    logger.info(f"Loaded {path}: {summary}")

    try:
        asyncio.run(_run_host(host, config_manager))
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received, stopping playback.")
    except asyncio.CancelledError:
        logger.info("Playback cancelled.")

    if save_config:
        if config_manager.save_config(config, save_config):
            logger.info(f"Configuration saved as profile: {save_config}")
        else:
            logger.error(f"Failed to save configuration profile: {save_config}")

    logger.info("Trajectory replay finished.")


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    Trajectory replay player.

    Replays recorded trajectory JSON files frame by frame, or CSV event logs
    with their recorded timing, optionally with a live console dashboard.
    """


@cli.command("trajectories")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--loop/--no-loop", default=const.DEFAULT_LOOP_TRAJECTORIES,
              help="Continue with the next trajectory after the last frame.", show_default=True)
@click.option("--frame-duration", default=const.DEFAULT_FRAME_DURATION_S,
              type=click.FloatRange(min=0, min_open=True),
              help="Seconds per frame at speed 1.0.", show_default=True)
@click.option("--trajectory", "trajectory_id", type=str,
              help="Trajectory ID to start with (default: first in ID order).")
@click.option("--tick-rate", default=60.0, type=click.FloatRange(min=0, min_open=True),
              help="Host tick rate in Hz.", show_default=True)
@click.option("--history-points", default=const.DEFAULT_HISTORY_POINTS, type=click.IntRange(min=1),
              help="Number of recent positions kept in the trail.", show_default=True)
@_shared_options
def trajectories_command(path, loop, frame_duration, trajectory_id, tick_rate, history_points,
                         speed, play_on_start, dashboard, refresh_rate, no_color, log_level,
                         config_profile, save_config, config_dir):
    """Play a trajectory JSON file frame by frame."""
    settings = {
        "speed": speed,
        "loop": loop,
        "frame_duration": frame_duration,
        "trajectory_id": trajectory_id,
        "tick_rate": tick_rate,
        "history_points": history_points,
        "play_on_start": play_on_start,
        "dashboard": dashboard,
        "refresh_rate": refresh_rate,
        "no_color": no_color,
        "log_level": log_level.upper(),
    }
    _play(MODE_TRAJECTORIES, path, settings, config_profile, save_config, config_dir)


@cli.command("events")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--loop/--no-loop", default=const.DEFAULT_LOOP_REPLAY,
              help="Start over after the last data point.", show_default=True)
@click.option("--fixed-step", default=const.DEFAULT_FIXED_TIME_STEP_S, type=click.FloatRange(min=0),
              help="Seconds between points when not using real timestamps.", show_default=True)
@click.option("--timeout-threshold", default=const.DEFAULT_TIMEOUT_THRESHOLD_S,
              type=click.FloatRange(min=0),
              help="Timestamp gaps longer than this many seconds are skipped.", show_default=True)
@click.option("--real-timestamps/--fixed-timestamps", default=const.DEFAULT_USE_REAL_TIMESTAMPS,
              help="Pace the replay by recorded timestamps or by the fixed step.", show_default=True)
@_shared_options
def events_command(path, loop, fixed_step, timeout_threshold, real_timestamps,
                   speed, play_on_start, dashboard, refresh_rate, no_color, log_level,
                   config_profile, save_config, config_dir):
    """Replay a CSV event log with its recorded timing."""
    settings = {
        "speed": speed,
        "loop": loop,
        "fixed_time_step": fixed_step,
        "timeout_threshold": timeout_threshold,
        "use_real_timestamps": real_timestamps,
        "play_on_start": play_on_start,
        "dashboard": dashboard,
        "refresh_rate": refresh_rate,
        "no_color": no_color,
        "log_level": log_level.upper(),
    }
    _play(MODE_EVENTS, path, settings, config_profile, save_config, config_dir)


@cli.command("inspect")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--format", "file_format", default="auto",
              type=click.Choice(["auto", "json", "csv"], case_sensitive=False),
              help="Input format; 'auto' decides by file extension.", show_default=True)
@click.option("--no-color", is_flag=True, help="Disable color output for compatibility.")
def inspect_command(path, file_format, no_color):
    """Parse a trajectory JSON or CSV event log and print a summary."""
    file_format = file_format.lower()
    if file_format == "auto":
        file_format = "csv" if Path(path).suffix.lower() == ".csv" else "json"

    console = Console(no_color=no_color, highlight=False)
    try:
        if file_format == "json":
            table = _trajectory_summary_table(path)
        else:
            table = _event_log_summary_table(path)
    except TrajectoryReplayError as e:
        raise click.ClickException(str(e))
    console.print(table)


def _trajectory_summary_table(path: str) -> Table:
    trajectories = load_trajectory_file(path)
    table = Table(title=f"Trajectories in {path}", header_style="bold magenta")
    table.add_column("Trajectory ID", style="cyan")
    table.add_column("Frames", justify="right")
    table.add_column("First timestamp", justify="right")
    table.add_column("Last timestamp", justify="right")
    table.add_column("Predictions", justify="right")

    for trajectory_id in sort_trajectory_ids(trajectories):
        frames = trajectories[trajectory_id]
        with_predictions = sum(1 for frame in frames if frame.predicted_points())
        table.add_row(
            trajectory_id,
            str(len(frames)),
            str(frames[0].timestamp) if frames else "-",
            str(frames[-1].timestamp) if frames else "-",
            str(with_predictions),
        )
    table.caption = f"{len(trajectories)} trajectories"
    return table


def _event_log_summary_table(path: str) -> Table:
    result = load_replay_csv_file(path)
    table = Table(title=f"Event log {path}", show_header=False)
    table.add_column("Key", style="bold")
    table.add_column("Value")

    table.add_row("Data points", str(len(result.points)))
    table.add_row("Skipped lines", str(result.skipped_count))
    table.add_row("Timestamp unit", result.timestamp_unit.replace("_", " "))
    if result.points:
        trajectory_ids = sorted({point.trajectory_id for point in result.points})
        table.add_row("Trajectories", str(len(trajectory_ids)))
        duration_s = (result.points[-1].timestamp - result.points[0].timestamp) / const.NANOSECONDS_PER_SECOND
        table.add_row("Duration", f"{duration_s:.3f}s")
    for skipped in result.skipped_lines[:10]:
        table.add_row(f"Line {skipped.line_number}", skipped.reason)
    return table


def main():
    cli()


if __name__ == "__main__":
    main()
