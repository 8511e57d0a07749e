# trajectory_replay/csv_parser.py
"""
Line-oriented parser for flat CSV event logs.

Each data line becomes a ReplayDataPoint. Malformed lines never abort the
parse: they are logged and reported back as SkippedLine diagnostics.
"""
from decimal import Decimal, InvalidOperation
from typing import List, Optional

import logging

from . import constants as const
from .data_structures import CsvParseResult, ReplayDataPoint, SkippedLine
from .exceptions import LineFormatError

logger = logging.getLogger(__name__)


def parse_float_field(value: str) -> Optional[float]:
    """
    Parses a float with locale-independent rules.

    Falls back to a decimal conversion for scientific notation that the
    plain float conversion rejects.

    Returns:
        The parsed value, or None if the token is not a number.
    """
    trimmed = value.strip()
    if trimmed and "_" not in trimmed:
        try:
            return float(trimmed)
        except ValueError:
            pass

    if "e" in trimmed or "E" in trimmed:
        try:
            return float(Decimal(trimmed))
        except (InvalidOperation, ValueError):
            return None
    return None


def parse_int_field(value: str) -> Optional[int]:
    """Parses a base-10 integer, returning None if the token is not one."""
    trimmed = value.strip()
    if not trimmed or "_" in trimmed:
        return None
    try:
        return int(trimmed)
    except ValueError:
        return None


def classify_timestamp_unit(delta: int) -> str:
    """Guesses the timestamp unit from the delta between two consecutive rows."""
    if delta > const.TIMESTAMP_DELTA_MICROSECONDS:
        return const.TIMESTAMP_UNIT_MICROSECONDS
    if delta > const.TIMESTAMP_DELTA_MILLISECONDS:
        return const.TIMESTAMP_UNIT_MILLISECONDS
    return const.TIMESTAMP_UNIT_SECONDS_OR_CUSTOM


def _require_float(values: List[str], field_index: int, label: str, line_number: int) -> float:
    parsed = parse_float_field(values[field_index])
    if parsed is None:
        raise LineFormatError(
            f"Failed to parse {label} '{values[field_index]}'",
            line_number=line_number,
            raw_value=values[field_index],
        )
    return parsed


def _require_int(values: List[str], field_index: int, label: str, line_number: int) -> int:
    parsed = parse_int_field(values[field_index])
    if parsed is None:
        raise LineFormatError(
            f"Failed to parse {label} '{values[field_index]}'",
            line_number=line_number,
            raw_value=values[field_index],
        )
    return parsed


def parse_line(line: str, line_number: int) -> ReplayDataPoint:
    """
    Converts one CSV data line into a ReplayDataPoint.

    Raises:
        LineFormatError: if the line has too few fields or a field does not parse.
    """
    values = line.split(",")
    if len(values) < const.CSV_EXPECTED_FIELD_COUNT:
        raise LineFormatError(
            f"Insufficient values (expected {const.CSV_EXPECTED_FIELD_COUNT}, got {len(values)})",
            line_number=line_number,
        )

    x = _require_float(values, const.CSV_FIELD_X, "X coordinate", line_number)
    y = _require_float(values, const.CSV_FIELD_Y, "Y coordinate", line_number)
    velocity = _require_float(values, const.CSV_FIELD_VELOCITY, "velocity", line_number)
    orientation = _require_float(values, const.CSV_FIELD_ORIENTATION, "orientation", line_number)
    timestamp = _require_int(values, const.CSV_FIELD_TIMESTAMP, "timestamp", line_number)
    workstation = _require_int(values, const.CSV_FIELD_WORKSTATION, "workstation", line_number)
    start = _require_float(values, const.CSV_FIELD_START, "start", line_number)
    goal = _require_float(values, const.CSV_FIELD_GOAL, "goal", line_number)

    return ReplayDataPoint(
        id_prefix=values[const.CSV_FIELD_ID_PREFIX].strip(),
        id=values[const.CSV_FIELD_ID].strip(),
        position=(x, y),
        velocity_scalar=velocity,
        orientation=orientation,
        timestamp=timestamp,
        workstation=workstation,
        trajectory_id=values[const.CSV_FIELD_TRAJECTORY_ID].strip(),
        start=start,
        goal=goal,
    )


def parse_replay_csv(text: str) -> CsvParseResult:
    """
    Parses a CSV event log.

    The first line is a header and is discarded unread. Line numbers in the
    diagnostics are 1-based file lines, so the first data line is line 2.

    Args:
        text: Complete CSV text.

    Returns:
        CsvParseResult with the parsed points in file order, the skipped
        lines and the apparent timestamp unit.
    """
    result = CsvParseResult()
    lines = text.splitlines()

    for line_number, line in enumerate(lines[1:], start=2):
        try:
            result.points.append(parse_line(line, line_number))
        except LineFormatError as e:
            logger.warning(f"Line {line_number}: {e.message}")
            result.skipped_lines.append(SkippedLine(line_number, e.message, line))
        except Exception as e:
            logger.error(f"Line {line_number}: Error parsing CSV line: '{line}'. Exception: {e}")
            result.skipped_lines.append(SkippedLine(line_number, f"Unexpected error: {e}", line))

    logger.info(f"Successfully loaded {len(result.points)} data points from CSV")
    if result.skipped_lines:
        logger.warning(f"Skipped {len(result.skipped_lines)} malformed CSV lines")

    if len(result.points) >= 2:
        delta = result.points[1].timestamp - result.points[0].timestamp
        result.first_timestamp_delta = delta
        result.timestamp_unit = classify_timestamp_unit(delta)
        logger.info(f"Time difference between first two entries: {delta} timestamp units")
        logger.info(f"Timestamps appear to be in {result.timestamp_unit.replace('_', ' ')}")

    return result
