# trajectory_replay/trajectory_store.py
"""
In-memory store of parsed trajectories keyed by trajectory ID.
"""
import re
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional

import logging

from .data_structures import TrajectoryFrame
from .exceptions import TrajectoryNotFoundError
from .json_parser import parse_trajectories

logger = logging.getLogger(__name__)

# Optional sign and ASCII digits only; no underscores or other Unicode digits
_INTEGER_ID = re.compile(r"\s*[+-]?[0-9]+\s*", re.ASCII)


def _as_int(value: str) -> Optional[int]:
    if not _INTEGER_ID.fullmatch(value):
        return None
    return int(value)


def compare_trajectory_ids(a: str, b: str) -> int:
    """
    Orders two IDs numerically when both are integers, else lexicographically.
    """
    a_int, b_int = _as_int(a), _as_int(b)
    if a_int is not None and b_int is not None:
        return (a_int > b_int) - (a_int < b_int)
    return (a > b) - (a < b)


def sort_trajectory_ids(ids: Iterable[str]) -> List[str]:
    return sorted(ids, key=cmp_to_key(compare_trajectory_ids))


class TrajectoryStore:
    """
    Holds the trajectories of one loaded document.

    The playback order is computed once per load. A load replaces the whole
    store; a failed load leaves it untouched.
    """

    def __init__(self):
        self._trajectories: Dict[str, List[TrajectoryFrame]] = {}
        self._sorted_ids: List[str] = []
        self._current_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self._trajectories)

    def __contains__(self, trajectory_id: object) -> bool:
        return trajectory_id in self._trajectories

    @property
    def current_id(self) -> Optional[str]:
        return self._current_id

    @property
    def current_trajectory(self) -> Optional[List[TrajectoryFrame]]:
        if self._current_id is None:
            return None
        return self._trajectories[self._current_id]

    @property
    def total_frames(self) -> int:
        return sum(len(frames) for frames in self._trajectories.values())

    def load(self, text: str, source: Optional[str] = None) -> None:
        """
        Parses `text` and replaces the stored trajectories.

        On success the first trajectory in playback order becomes current.

        Raises:
            TrajectoryParseError: if the text is malformed. The store keeps
                its previous contents.
        """
        trajectories = parse_trajectories(text, source=source)
        self.replace(trajectories)

    def replace(self, trajectories: Dict[str, List[TrajectoryFrame]]) -> None:
        """Replaces all state with already parsed trajectories."""
        self._trajectories = {key: list(frames) for key, frames in trajectories.items()}
        self._sorted_ids = sort_trajectory_ids(self._trajectories)
        self._current_id = self._sorted_ids[0] if self._sorted_ids else None
        logger.info(f"Successfully parsed {len(self._sorted_ids)} trajectories")

    def trajectory_ids(self) -> List[str]:
        """Trajectory IDs in playback order."""
        return list(self._sorted_ids)

    def get(self, trajectory_id: str) -> List[TrajectoryFrame]:
        """
        Returns the frames of a trajectory without changing the selection.

        Raises:
            TrajectoryNotFoundError: if the ID is unknown.
        """
        try:
            return self._trajectories[trajectory_id]
        except KeyError:
            raise TrajectoryNotFoundError(trajectory_id) from None

    def select(self, trajectory_id: str) -> List[TrajectoryFrame]:
        """
        Makes a trajectory current and returns its frames.

        Raises:
            TrajectoryNotFoundError: if the ID is unknown; the selection is
                left unchanged.
        """
        frames = self.get(trajectory_id)
        self._current_id = trajectory_id
        return frames

    def index_of(self, trajectory_id: str) -> int:
        """Position of an ID in playback order."""
        if trajectory_id not in self._trajectories:
            raise TrajectoryNotFoundError(trajectory_id)
        return self._sorted_ids.index(trajectory_id)

    def next_id(self, trajectory_id: str) -> str:
        """The ID after `trajectory_id` in playback order, wrapping to the first."""
        index = self.index_of(trajectory_id)
        return self._sorted_ids[(index + 1) % len(self._sorted_ids)]

    def previous_id(self, trajectory_id: str) -> str:
        """The ID before `trajectory_id` in playback order, wrapping to the last."""
        index = self.index_of(trajectory_id)
        return self._sorted_ids[(index - 1) % len(self._sorted_ids)]
