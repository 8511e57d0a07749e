"""
Rich console dashboard for the trajectory replay player.

Shows the playback state, the current frame or data point, the trail and
prediction summary, and a scrolling event log fed by engine events.
"""

import asyncio
import time
from typing import List, Optional, TYPE_CHECKING
from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.align import Align
from rich.columns import Columns

from trajectory_replay import ReplayEngine, TrajectoryPlayer, const

if TYPE_CHECKING:
    from ..host import PlaybackHost


@dataclass
class DashboardState:
    """Current state of the dashboard display"""
    start_time: float
    refresh_rate_ms: int
    paused: bool = False


class RichDashboard:
    """
    Rich console dashboard for real-time playback status.

    Features:
    - Playback status (mode, speed, position in the data)
    - Trail and prediction summary (trajectories mode)
    - Followed position and heading (events mode)
    - Scrolling event log
    """

    def __init__(
        self,
        host: "PlaybackHost",
        refresh_rate_ms: int = 200,
        no_color: bool = False,
        console: Optional[Console] = None,
    ):
        """
        Initialize the Rich dashboard.

        Args:
            host: The playback host whose engine is displayed
            refresh_rate_ms: Dashboard refresh rate in milliseconds
            no_color: Disable color output for compatibility
            console: Console to render with; one is created when omitted
        """
        self.host = host
        self.console = console or Console(force_terminal=not no_color, no_color=no_color)
        self.state = DashboardState(
            start_time=time.time(),
            refresh_rate_ms=refresh_rate_ms
        )

        # Event log (circular buffer)
        self.event_log: List[str] = []
        self.max_log_entries = 50

        self.interactive_controller = None

    def subscribe(self, engine) -> None:
        """Registers event-log listeners on a TrajectoryPlayer or ReplayEngine."""
        if isinstance(engine, TrajectoryPlayer):
            engine.add_listener(const.EVENT_TRAJECTORY_CHANGED, self._on_trajectory_changed)
        elif isinstance(engine, ReplayEngine):
            engine.add_listener(const.EVENT_REPLAY_STARTED, self._on_replay_started)
            engine.add_listener(const.EVENT_REPLAY_PAUSED, self._on_replay_paused)
            engine.add_listener(const.EVENT_REPLAY_COMPLETED, self._on_replay_completed)
            engine.add_listener(const.EVENT_DATA_POINT_UPDATED, self._on_data_point_updated)

    def _on_trajectory_changed(self, trajectory_id: str):
        self.add_event(f"Trajectory changed to {trajectory_id}")

    def _on_replay_started(self):
        self.add_event("Replay started")

    def _on_replay_paused(self):
        self.add_event("Replay paused")

    def _on_replay_completed(self):
        self.add_event("Replay completed")

    def _on_data_point_updated(self, point):
        x, y = point.position
        self.add_event(f"{point.id_prefix}{point.id} -> ({x:.2f}, {y:.2f}) heading {point.orientation:.1f}")

    def _create_header(self) -> Panel:
        """Create the dashboard header"""
        uptime = time.time() - self.state.start_time
        uptime_str = f"{int(uptime//3600):02d}:{int((uptime%3600)//60):02d}:{int(uptime%60):02d}"

        title_text = Text("Trajectory Replay Dashboard", style="bold blue")
        status_text = Text(f"Uptime: {uptime_str}", style="dim")
        if self.host.engine.is_playing:
            status_text.append(" | PLAYING", style="bold green")
        else:
            status_text.append(" | STOPPED", style="bold red")

        header_content = Columns([
            Align.left(title_text),
            Align.right(status_text)
        ])

        return Panel(header_content, title="Status", border_style="blue")

    def _create_playback_panel(self) -> Panel:
        """Create the playback status panel for the host's engine"""
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")

        engine = self.host.engine
        table.add_row("Mode:", self.host.mode)
        table.add_row("Speed:", f"{engine.speed:.2f}x")
        table.add_row("Loop:", "Yes" if engine.loop else "No")

        if isinstance(engine, TrajectoryPlayer):
            frame = engine.current_frame
            table.add_row("Trajectory:", str(engine.current_trajectory_id))
            table.add_row("Frame:", f"{engine.current_frame_index + 1}/{engine.frame_count}"
                          if engine.frame_count else "-")
            if frame is not None:
                table.add_row("Position:", f"({frame.x:.2f}, {frame.y:.2f})")
                table.add_row("Timestamp:", str(frame.timestamp))
        else:
            table.add_row("Point:", f"{engine.current_index + 1}/{engine.total_points}"
                          if engine.total_points else "-")
            table.add_row("Progress:", f"{engine.progress * 100:.1f}%")
            table.add_row("Timing:", "timestamps" if engine.use_real_timestamps else "fixed step")
            table.add_row("Trajectory:", engine.current_trajectory_id or "-")
            table.add_row("Velocity:", f"{engine.current_velocity:.2f}")

        return Panel(table, title="Playback", border_style="green")

    def _create_trail_panel(self) -> Panel:
        """Create the trail/prediction panel, or the follower panel in events mode"""
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Key", style="bold cyan")
        table.add_column("Value")

        trail = self.host.trail
        if trail is not None:
            history = trail.history
            prediction = trail.prediction_line
            table.add_row("History:", f"{len(history)}/{trail.max_history_points} points")
            if history:
                x, y = history[-1]
                table.add_row("Latest:", f"({x:.2f}, {y:.2f})")
            if prediction:
                x, y = prediction[-1]
                table.add_row("Predicted:", f"{len(prediction) - 1} points, ends ({x:.2f}, {y:.2f})")
            else:
                table.add_row("Predicted:", "none")
            return Panel(table, title="Trail", border_style="cyan")

        position = self.host.follower_position
        if position is None:
            return Panel(
                Align.center(Text("No position yet...", style="dim")),
                title="Follower",
                border_style="yellow"
            )
        table.add_row("Position:", f"({position[0]:.2f}, {position[1]:.2f})")
        table.add_row("Heading:", f"{self.host.follower_orientation:.1f}")
        return Panel(table, title="Follower", border_style="cyan")

    def _create_event_log_panel(self) -> Panel:
        """Create the scrolling event log panel, or the help panel when shown"""
        controller = self.interactive_controller
        if controller is not None and controller.show_help:
            help_text = Text(controller.get_help_text(), style="dim")
            return Panel(help_text, title="Help (press 'h' to hide)", border_style="yellow")

        log_text = Text()

        recent_entries = self.event_log[-20:]
        for entry in recent_entries:
            log_text.append(entry + "\n", style="dim")

        if not recent_entries:
            log_text.append("No events yet...", style="dim italic")

        return Panel(log_text, title="Event Log", border_style="white")

    def add_event(self, message: str):
        """Add an event to the log"""
        timestamp = time.strftime("%H:%M:%S")
        self.event_log.append(f"[{timestamp}] {message}")

        if len(self.event_log) > self.max_log_entries:
            self.event_log.pop(0)

    def render(self) -> str:
        """Render all panels to a string"""
        with self.console.capture() as capture:
            self.console.print(self._create_header())
            self.console.print(Columns([
                self._create_playback_panel(),
                self._create_trail_panel()
            ], equal=False, expand=True))
            self.console.print(self._create_event_log_panel())
        return capture.get()

    async def run(self):
        """Run the dashboard with simple ANSI positioning"""
        self.add_event("Dashboard started")

        print("\033[?25l", end="")  # Hide cursor
        print("\033[2J", end="")    # Clear screen

        try:
            while True:
                if not self.state.paused:
                    print("\033[H", end="")
                    print(self.render(), end="")
                await asyncio.sleep(self.state.refresh_rate_ms / 1000.0)
        finally:
            print("\033[?25h", end="")  # Restore cursor

    def set_interactive_controller(self, controller):
        """Set the interactive controller reference"""
        self.interactive_controller = controller

    def toggle_pause(self):
        """Toggle pause state"""
        self.state.paused = not self.state.paused
        status = "paused" if self.state.paused else "resumed"
        self.add_event(f"Dashboard {status}")

    def set_refresh_rate(self, rate_ms: int):
        """Set the dashboard refresh rate"""
        self.state.refresh_rate_ms = max(50, min(2000, rate_ms))
        self.add_event(f"Refresh rate set to {self.state.refresh_rate_ms}ms")
