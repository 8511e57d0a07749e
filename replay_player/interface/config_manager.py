"""
Configuration Management System for the trajectory replay player.

This module provides:
- Configuration profiles (save/load different playback setups)
- Live parameter adjustment with validation
- Update callbacks so a running playback host can apply changes
"""

import json
import os
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict, field, fields
from datetime import datetime
import inspect

from trajectory_replay import const

logger = logging.getLogger(__name__)

MODE_TRAJECTORIES = "trajectories"
MODE_EVENTS = "events"
VALID_MODES = (MODE_TRAJECTORIES, MODE_EVENTS)
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class PlayerConfig:
    """Playback host configuration."""
    # Source
    source_path: Optional[str] = None
    mode: str = MODE_TRAJECTORIES
    trajectory_id: Optional[str] = None

    # Playback settings
    speed: float = const.DEFAULT_PLAYBACK_SPEED
    loop: bool = const.DEFAULT_LOOP_TRAJECTORIES
    frame_duration: float = const.DEFAULT_FRAME_DURATION_S
    timeout_threshold: float = const.DEFAULT_TIMEOUT_THRESHOLD_S
    fixed_time_step: float = const.DEFAULT_FIXED_TIME_STEP_S
    use_real_timestamps: bool = const.DEFAULT_USE_REAL_TIMESTAMPS
    play_on_start: bool = True
    tick_rate: float = 60.0

    # Interface settings
    dashboard: bool = False
    refresh_rate: int = 200
    no_color: bool = False
    log_level: str = "INFO"
    history_points: int = const.DEFAULT_HISTORY_POINTS

    # Metadata
    name: str = "default"
    description: str = "Default player configuration"
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    modified_at: str = field(default_factory=lambda: datetime.now().isoformat())


# Parameters that may be changed while playback is running: (type, min, max)
ADJUSTABLE_PARAMETERS: Dict[str, tuple] = {
    "speed": (float, const.MIN_PLAYBACK_SPEED, None),
    "loop": (bool, None, None),
    "frame_duration": (float, 0.001, None),
    "timeout_threshold": (float, 0.0, None),
    "fixed_time_step": (float, 0.0, None),
    "use_real_timestamps": (bool, None, None),
    "refresh_rate": (int, 50, 2000),
    "history_points": (int, 1, None),
}


class ConfigurationManager:
    """Manages player configuration with live updates and profiles."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Directory to store configuration files. Defaults to ~/.trajectory_replay_config
        """
        if config_dir is None:
            config_dir = os.path.expanduser("~/.trajectory_replay_config")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.profiles_dir = self.config_dir / "profiles"
        self.profiles_dir.mkdir(exist_ok=True)

        self.current_config: Optional[PlayerConfig] = None
        self.config_file = self.config_dir / "current_config.json"

        self._update_callbacks: List[callable] = []

        logger.info(f"Configuration manager initialized with config dir: {self.config_dir}")

    def add_update_callback(self, callback: callable):
        """Add callback to be called when configuration is updated live."""
        if callback not in self._update_callbacks:
            self._update_callbacks.append(callback)

    def remove_update_callback(self, callback: callable):
        """Remove update callback."""
        if callback in self._update_callbacks:
            self._update_callbacks.remove(callback)

    async def _notify_update_callbacks(self, config_change: Dict[str, Any]):
        """Notify all callbacks of configuration changes."""
        for callback in self._update_callbacks:
            try:
                if inspect.iscoroutinefunction(callback):
                    await callback(config_change)
                else:
                    callback(config_change)
            except Exception as e:
                logger.error(f"Error in config update callback: {e}")

    def _profile_file(self, config_name: str) -> Path:
        if config_name == "current":
            return self.config_file
        return self.profiles_dir / f"{config_name}.json"

    def create_default_config(self, mode: str = MODE_TRAJECTORIES,
                              source_path: Optional[str] = None) -> PlayerConfig:
        """Create a default configuration for the given playback mode."""
        if mode not in VALID_MODES:
            raise ValueError(f"Unknown mode '{mode}', expected one of {VALID_MODES}")
        loop = const.DEFAULT_LOOP_TRAJECTORIES if mode == MODE_TRAJECTORIES else const.DEFAULT_LOOP_REPLAY
        return PlayerConfig(source_path=source_path, mode=mode, loop=loop)

    def load_config(self, config_name: str = "current") -> Optional[PlayerConfig]:
        """Load configuration from file.

        Args:
            config_name: Name of configuration to load. "current" loads the current active config.

        Returns:
            PlayerConfig if found, None otherwise
        """
        config_file = self._profile_file(config_name)
        if not config_file.exists():
            logger.warning(f"Configuration file not found: {config_file}")
            return None

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = json.load(f)

            known = {f.name for f in fields(PlayerConfig)}
            unknown = set(config_data) - known
            if unknown:
                logger.warning(f"Ignoring unknown configuration keys in {config_name}: {sorted(unknown)}")
            config = PlayerConfig(**{k: v for k, v in config_data.items() if k in known})

            logger.info(f"Loaded configuration: {config_name}")
            return config

        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error loading configuration {config_name}: {e}")
            return None

    def save_config(self, config: PlayerConfig, config_name: str = "current") -> bool:
        """Save configuration to file.

        Args:
            config: Configuration to save
            config_name: Name to save configuration as. "current" saves as active config.

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self._profile_file(config_name)

        try:
            config.modified_at = datetime.now().isoformat()
            with open(config_file, 'w', encoding='utf-8') as f:
                json.dump(asdict(config), f, indent=2)

            logger.info(f"Saved configuration: {config_name}")
            return True

        except (OSError, TypeError) as e:
            logger.error(f"Error saving configuration {config_name}: {e}")
            return False

    def list_profiles(self) -> List[str]:
        """List all available configuration profiles."""
        return sorted(profile_file.stem for profile_file in self.profiles_dir.glob("*.json"))

    def delete_profile(self, profile_name: str) -> bool:
        """Delete a configuration profile.

        Returns:
            True if deleted successfully, False otherwise
        """
        if profile_name == "current":
            logger.error("Cannot delete current configuration")
            return False

        profile_file = self.profiles_dir / f"{profile_name}.json"
        if not profile_file.exists():
            logger.warning(f"Profile not found: {profile_name}")
            return False

        try:
            profile_file.unlink()
            logger.info(f"Deleted profile: {profile_name}")
            return True
        except OSError as e:
            logger.error(f"Error deleting profile {profile_name}: {e}")
            return False

    @staticmethod
    def _validate(parameter: str, value: Any) -> Any:
        """Coerces and range-checks a live parameter value; raises ValueError."""
        if parameter not in ADJUSTABLE_PARAMETERS:
            raise ValueError(f"Parameter '{parameter}' is not adjustable during runtime")
        kind, minimum, maximum = ADJUSTABLE_PARAMETERS[parameter]
        if kind is bool:
            if not isinstance(value, bool):
                raise ValueError(f"Parameter '{parameter}' expects true or false, got {value!r}")
            return value
        try:
            value = kind(value)
        except (TypeError, ValueError):
            raise ValueError(f"Parameter '{parameter}' expects {kind.__name__}, got {value!r}") from None
        if minimum is not None and value < minimum:
            raise ValueError(f"Parameter '{parameter}' must be >= {minimum}, got {value}")
        if maximum is not None and value > maximum:
            raise ValueError(f"Parameter '{parameter}' must be <= {maximum}, got {value}")
        return value

    async def update_config(self, parameter: str, value: Any) -> bool:
        """Update a configuration parameter live.

        The current configuration is saved and update callbacks receive a
        change record with the parameter, old and new values.

        Returns:
            True if updated successfully, False otherwise
        """
        if not self.current_config:
            logger.error("No current configuration loaded")
            return False

        try:
            new_value = self._validate(parameter, value)
        except ValueError as e:
            logger.error(str(e))
            return False

        old_value = getattr(self.current_config, parameter)
        setattr(self.current_config, parameter, new_value)
        self.save_config(self.current_config)

        change_info = {
            "parameter": parameter,
            "old_value": old_value,
            "new_value": new_value,
            "timestamp": datetime.now().isoformat()
        }
        await self._notify_update_callbacks(change_info)

        logger.info(f"Updated parameter {parameter} = {new_value}")
        return True

    def get_config_summary(self) -> Dict[str, Any]:
        """Get a summary of the current configuration."""
        if not self.current_config:
            return {"status": "No configuration loaded"}

        config = self.current_config
        return {
            "name": config.name,
            "description": config.description,
            "mode": config.mode,
            "source_path": config.source_path,
            "speed": config.speed,
            "loop": config.loop,
            "dashboard": config.dashboard,
        }
