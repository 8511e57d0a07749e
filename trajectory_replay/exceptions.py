# trajectory_replay/exceptions.py
"""
Custom exceptions for the trajectory replay library.
"""


class TrajectoryReplayError(Exception):
    """Base exception class for all trajectory replay library errors."""
    def __init__(self, message, *args, source=None, line_number=None, **kwargs):
        super().__init__(message, *args)
        self.message = message
        self.source = source
        self.line_number = line_number

    def __str__(self):
        base_message = super().__str__()

        details = []
        if self.source is not None:
            details.append(f"Source: {self.source}")
        if self.line_number is not None:
            details.append(f"Line: {self.line_number}")

        if details:
            return f"{base_message} ({', '.join(details)})"
        return base_message


class TrajectoryParseError(TrajectoryReplayError):
    """Structural violation in trajectory JSON; aborts the whole load."""

    def __init__(self, message, position=None, expected=None, source=None):
        super().__init__(message, source=source)
        self.position = position
        self.expected = expected

    def __str__(self):
        parts = [self.message]
        if self.expected is not None:
            parts.append(f"expected {self.expected}")
        if self.position is not None:
            parts.append(f"at position {self.position}")
        if self.source is not None:
            parts.append(f"in {self.source}")
        return " - ".join(parts)


class TrajectoryNotFoundError(TrajectoryReplayError):
    """Raised when a trajectory ID is not present in the store."""

    def __init__(self, trajectory_id):
        super().__init__(f"Trajectory ID {trajectory_id} not found in data")
        self.trajectory_id = trajectory_id


class TrajectorySourceError(TrajectoryReplayError):
    """Source file is missing or could not be read."""

    def __init__(self, message, path=None):
        super().__init__(message, source=path)
        self.path = path


class LineFormatError(TrajectoryReplayError):
    """A single CSV line could not be converted into a data point."""

    def __init__(self, message, line_number=None, raw_value=None):
        super().__init__(message, line_number=line_number)
        self.raw_value = raw_value


class PlaybackError(TrajectoryReplayError):
    """Invalid playback engine configuration."""
