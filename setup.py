"""
Setup script for the trajectory-replay package.

This script uses setuptools to package the trajectory_replay library (parsers
and playback engines for recorded trajectory data) together with the
replay_player command-line host. It defines metadata, dependencies, and the
entry point for the player's command-line interface.
"""
import os
import re
from setuptools import find_packages, setup


def get_version_from_init():
    """Reads the __version__ string from trajectory_replay/__init__.py."""
    init_py_path = os.path.join(
        os.path.dirname(os.path.abspath(__file__)), "trajectory_replay", "__init__.py"
    )
    try:
        with open(init_py_path, "r", encoding="utf-8") as f_version:
            version_file_content = f_version.read()
        version_match = re.search(
            r"^__version__\s*=\s*['\"]([^'\"]*)['\"]",
            version_file_content,
            re.M,
        )
        if version_match:
            return version_match.group(1)
        raise RuntimeError(
            f"Unable to find __version__ string in {init_py_path}."
        )
    except FileNotFoundError as exc:
        raise RuntimeError(
            f"{init_py_path} not found. Ensure you are in the correct "
            f"directory."
        ) from exc


setup(
    name="trajectory-replay",
    version=get_version_from_init(),
    description="Parsers and playback engines for recorded trajectory data.",
    long_description=(
        "Replays trajectory JSON files frame by frame and CSV event logs "
        "with their recorded timing, publishing frames to subscribers."
    ),
    packages=find_packages(
        where=".", include=["trajectory_replay", "trajectory_replay.*",
                            "replay_player", "replay_player.*"]
    ),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Scientific/Engineering :: Visualization",
    ],
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0",  # For the CLI (FloatRange min_open)
        "rich>=10.0.0",  # For the console dashboard and inspect tables
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "pytest-asyncio>=0.15",
            "pytest-mock>=3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "trajectory-replay=replay_player.main:main",
        ],
    },
    keywords="trajectory replay playback csv json asyncio",
)
