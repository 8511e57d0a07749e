"""
Interactive controls for the Rich dashboard.

Handles keyboard input for the trajectory replay player: playback control,
trajectory navigation, seeking and live configuration changes.
"""

import asyncio
import inspect
import os
import select
import sys
import termios
import tty
from dataclasses import dataclass
from typing import Callable, Dict, Optional, TYPE_CHECKING

from trajectory_replay import ReplayEngine, TrajectoryReplayError, const

from .config_manager import MODE_EVENTS

if TYPE_CHECKING:
    from .rich_dashboard import RichDashboard
    from .config_manager import ConfigurationManager
    from ..host import PlaybackHost


@dataclass
class KeyBinding:
    """Represents a key binding and its associated action"""
    key: str
    description: str
    action: Callable
    category: str = "general"


class InteractiveController:
    """
    Handles keyboard input and interactive controls for the dashboard.

    Features:
    - Non-blocking keyboard input
    - Playback and navigation keys for the active mode
    - Live parameter changes routed through the ConfigurationManager
    - Help panel
    """

    def __init__(
        self,
        dashboard: "RichDashboard",
        host: "PlaybackHost",
        config_manager: "ConfigurationManager",
        on_quit: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize the interactive controller.

        Args:
            dashboard: The Rich dashboard instance
            host: The playback host whose engine is controlled
            config_manager: Configuration manager holding the running config
            on_quit: Called when the quit key is pressed
        """
        self.dashboard = dashboard
        self.host = host
        self.config_manager = config_manager
        self.on_quit = on_quit
        self.running = False
        self.show_help = False
        self.original_tty_settings = None

        self.key_bindings: Dict[str, KeyBinding] = {}
        self._setup_key_bindings()

    def _bind(self, key: str, description: str, action: Callable, category: str = "playback"):
        self.key_bindings[key] = KeyBinding(key=key, description=description, action=action, category=category)

    def _setup_key_bindings(self):
        """Configure all key bindings for the host's mode"""
        self._bind(" ", "Play/Pause playback", self._toggle_playback)
        self._bind("s", "Stop and rewind", self._stop_playback)
        self._bind("+", "Increase playback speed", self._increase_speed)
        self._bind("-", "Decrease playback speed", self._decrease_speed)
        self._bind("l", "Toggle looping", self._toggle_loop)
        self._bind("r", "Reload source file", self._reload_source)

        if self.host.mode == MODE_EVENTS:
            self._bind("t", "Toggle real timestamps / fixed step", self._toggle_timing)
            for digit in "0123456789":
                self._bind(digit, f"Seek to {digit}0%", self._seeker(int(digit) / 10.0), category="seek")
        else:
            self._bind("n", "Next trajectory", self._next_trajectory, category="navigation")
            self._bind("p", "Previous trajectory", self._previous_trajectory, category="navigation")

        self._bind("d", "Pause/Resume dashboard updates", self._toggle_dashboard_pause, category="dashboard")
        self._bind("]", "Increase refresh rate", self._increase_refresh_rate, category="dashboard")
        self._bind("[", "Decrease refresh rate", self._decrease_refresh_rate, category="dashboard")
        self._bind("h", "Show/Hide help", self._toggle_help, category="dashboard")
        self._bind("q", "Quit", self._quit, category="dashboard")

    # ----------------------------------------------------------- terminal

    def _setup_terminal(self):
        """Configure terminal for unbuffered key input"""
        fd = sys.stdin.fileno()
        self.original_tty_settings = termios.tcgetattr(fd)
        tty.setcbreak(fd)

    def _restore_terminal(self):
        """Restore original terminal settings"""
        if self.original_tty_settings is not None:
            termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self.original_tty_settings)
            self.original_tty_settings = None

    def _read_key(self) -> Optional[str]:
        """Get a key press without blocking"""
        fd = sys.stdin.fileno()
        readable, _, _ = select.select([fd], [], [], 0)
        if not readable:
            return None
        return os.read(fd, 1).decode(errors="ignore") or None

    # --------------------------------------------------- playback actions

    def _toggle_playback(self):
        engine = self.host.engine
        if isinstance(engine, ReplayEngine):
            if engine.is_playing:
                engine.pause()
            elif engine.total_points and engine.current_index >= engine.total_points - 1:
                engine.stop()
                engine.start()
            else:
                engine.resume()
        else:
            engine.toggle()

    def _stop_playback(self):
        engine = self.host.engine
        if isinstance(engine, ReplayEngine):
            engine.stop()
        else:
            engine.pause()
            if engine.current_trajectory_id is not None:
                engine.set_trajectory(engine.current_trajectory_id)
        self.dashboard.add_event("Playback stopped")

    def _seeker(self, fraction: float) -> Callable[[], None]:
        def seek():
            self.host.engine.seek_normalized(fraction)
        return seek

    def _next_trajectory(self):
        self.host.engine.next_trajectory()

    def _previous_trajectory(self):
        self.host.engine.previous_trajectory()

    def _reload_source(self):
        """Reload the source file"""
        engine = self.host.engine
        try:
            if isinstance(engine, ReplayEngine):
                result = engine.load_file(self.host.config.source_path)
                summary = f"{len(result.points)} points, {result.skipped_count} skipped"
            else:
                engine.reload()
                summary = f"{len(engine.store)} trajectories"
        except TrajectoryReplayError as e:
            self.dashboard.add_event(f"Reload failed: {e}")
            return
        self.dashboard.add_event(f"Reloaded {self.host.config.source_path}: {summary}")

    # ----------------------------------------------- live config actions

    async def _adjust_parameter(self, param_name: str, value):
        """Apply a live parameter change through the configuration manager"""
        success = await self.config_manager.update_config(param_name, value)
        if success:
            self.dashboard.add_event(f"Updated {param_name} = {value}")
        else:
            self.dashboard.add_event(f"Failed to update {param_name}")

    def _clamped_speed(self, speed: float) -> float:
        speed = max(const.MIN_PLAYBACK_SPEED, speed)
        if self.host.mode == MODE_EVENTS:
            speed = min(const.MAX_REPLAY_SPEED, speed)
        return round(speed, 3)

    async def _increase_speed(self):
        speed = self.host.engine.speed * const.SPEED_STEP_FACTOR
        await self._adjust_parameter("speed", self._clamped_speed(speed))

    async def _decrease_speed(self):
        speed = self.host.engine.speed / const.SPEED_STEP_FACTOR
        await self._adjust_parameter("speed", self._clamped_speed(speed))

    async def _toggle_loop(self):
        await self._adjust_parameter("loop", not self.host.engine.loop)

    async def _toggle_timing(self):
        await self._adjust_parameter("use_real_timestamps", not self.host.engine.use_real_timestamps)

    async def _increase_refresh_rate(self):
        """Increase dashboard refresh rate (make faster)"""
        new_rate = max(50, self.dashboard.state.refresh_rate_ms - 50)  # Minimum 50ms
        await self._adjust_parameter("refresh_rate", new_rate)

    async def _decrease_refresh_rate(self):
        """Decrease dashboard refresh rate (make slower)"""
        new_rate = min(2000, self.dashboard.state.refresh_rate_ms + 50)  # Maximum 2000ms
        await self._adjust_parameter("refresh_rate", new_rate)

    # -------------------------------------------------- dashboard actions

    def _toggle_dashboard_pause(self):
        self.dashboard.toggle_pause()

    def _toggle_help(self):
        self.show_help = not self.show_help
        self.dashboard.add_event(f"Help {'shown' if self.show_help else 'hidden'}")

    def _quit(self):
        self.dashboard.add_event("Quit requested")
        self.running = False
        if self.on_quit is not None:
            self.on_quit()

    def get_help_text(self) -> str:
        """Generate help text for display"""
        help_lines = ["Interactive Controls Help:", ""]
        categories = {
            "playback": "Playback",
            "navigation": "Trajectories",
            "seek": "Seeking",
            "dashboard": "Dashboard",
        }
        for category, title in categories.items():
            bindings = [b for b in self.key_bindings.values() if b.category == category]
            if not bindings:
                continue
            help_lines.append(f"{title}:")
            for binding in bindings:
                label = "space" if binding.key == " " else binding.key
                help_lines.append(f"  {label}: {binding.description}")
            help_lines.append("")
        return "\n".join(help_lines)

    # ------------------------------------------------------------ input

    async def handle_key(self, key: str) -> bool:
        """Runs the action bound to `key`; returns False for unbound keys."""
        binding = self.key_bindings.get(key)
        if binding is None:
            if key.isprintable():
                self.dashboard.add_event(f"Unknown key: '{key}'")
            return False
        try:
            result = binding.action()
            if inspect.isawaitable(result):
                await result
        except TrajectoryReplayError as e:
            self.dashboard.add_event(f"Error executing command: {e}")
        return True

    async def handle_input(self):
        """Main input handling loop"""
        while self.running:
            key = self._read_key()
            if key is None:
                await asyncio.sleep(0.01)  # Small delay to prevent busy waiting
                continue
            await self.handle_key(key)

    @staticmethod
    def is_supported() -> bool:
        """Keyboard controls need a terminal on stdin"""
        return sys.stdin.isatty()

    async def start(self):
        """Start the interactive controller"""
        self.running = True
        self._setup_terminal()
        self.dashboard.add_event("Interactive controls started (press 'h' for help)")
        try:
            await self.handle_input()
        finally:
            self._restore_terminal()

    def stop(self):
        """Stop the interactive controller"""
        self.running = False
