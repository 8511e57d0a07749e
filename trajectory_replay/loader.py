# trajectory_replay/loader.py
"""
File helpers for the two supported input formats.
"""
from pathlib import Path
from typing import Dict, List, Union

import logging

from .csv_parser import parse_replay_csv
from .data_structures import CsvParseResult, TrajectoryFrame
from .exceptions import TrajectorySourceError
from .json_parser import parse_trajectories

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_source_text(path: PathLike) -> str:
    """
    Reads a UTF-8 source file.

    Raises:
        TrajectorySourceError: if the file is missing or unreadable.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise TrajectorySourceError(f"File not found at path: {file_path}", path=str(file_path))
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise TrajectorySourceError(f"Could not read {file_path}: {e}", path=str(file_path)) from e


def load_trajectory_file(path: PathLike) -> Dict[str, List[TrajectoryFrame]]:
    """
    Loads and parses a trajectory JSON file.

    Raises:
        TrajectorySourceError: if the file cannot be read.
        TrajectoryParseError: if the JSON is malformed.
    """
    text = read_source_text(path)
    trajectories = parse_trajectories(text, source=str(path))
    logger.info(f"Loaded {len(trajectories)} trajectories from {path}")
    return trajectories


def load_replay_csv_file(path: PathLike) -> CsvParseResult:
    """
    Loads and parses a CSV event log file.

    Raises:
        TrajectorySourceError: if the file cannot be read.
    """
    text = read_source_text(path)
    return parse_replay_csv(text)
