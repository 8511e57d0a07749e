"""
Player interface modules: console dashboard, keyboard controls and configuration management.
"""

from .config_manager import ConfigurationManager, PlayerConfig
from .interactive_controls import InteractiveController
from .rich_dashboard import RichDashboard

__all__ = ["ConfigurationManager", "InteractiveController", "PlayerConfig", "RichDashboard"]
