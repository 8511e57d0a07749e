"""
Trajectory Replay Player Package.

This package contains the command-line host for the trajectory_replay
library: a playback host that drives the engines, a Rich console dashboard
and a profile-based configuration manager.
"""

from .host import PlaybackHost

__version__ = "0.1.0"

__all__ = [
    "PlaybackHost",
]
