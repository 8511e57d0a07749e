# trajectory_replay/json_parser.py
"""
Recursive-descent parser for trajectory JSON files.

Only the subset of JSON needed by the trajectory format is accepted: a
top-level object whose keys are trajectory IDs and whose values are arrays
of frame objects. Frame keys that are not part of the format are skipped
without being interpreted. Any structural violation aborts the whole parse
with a TrajectoryParseError carrying the character offset of the fault.
"""
from typing import Any, Dict, List, Optional, Tuple

import logging

from . import constants as const
from .data_structures import TrajectoryFrame
from .exceptions import TrajectoryParseError

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}
_LITERALS = ("true", "false", "null")


class TrajectoryJSONParser:
    """
    Parses trajectory JSON text into a mapping of trajectory ID to frames.

    A parser instance holds the cursor for one document; use
    `parse_trajectories` for one-shot parsing.
    """

    def __init__(self, text: str, source: Optional[str] = None):
        """
        Args:
            text: The complete JSON document.
            source: Optional name of the document (e.g. a file path), used
                    only in error messages.
        """
        self._text = text
        self._length = len(text)
        self._index = 0
        self._source = source

    # ------------------------------------------------------------------ errors

    def _error(self, message: str, expected: Optional[str] = None,
               position: Optional[int] = None) -> TrajectoryParseError:
        return TrajectoryParseError(
            message,
            position=self._index if position is None else position,
            expected=expected,
            source=self._source,
        )

    # ---------------------------------------------------------------- scanning

    def _skip_whitespace(self) -> None:
        while self._index < self._length and self._text[self._index] in const.JSON_WHITESPACE:
            self._index += 1

    def _peek(self, expected: str) -> str:
        """Returns the current character; end of input is a parse error."""
        if self._index >= self._length:
            raise self._error("Unexpected end of input", expected=expected)
        return self._text[self._index]

    def _expect(self, char: str, expected: str) -> None:
        if self._peek(expected) != char:
            raise self._error(
                f"Unexpected character {self._text[self._index]!r}",
                expected=expected,
            )
        self._index += 1

    # ------------------------------------------------------------- primitives

    def _parse_string(self) -> str:
        start = self._index
        self._expect('"', "'\"' at start of string")
        chars: List[str] = []
        while self._index < self._length:
            char = self._text[self._index]
            if char == "\\" and self._index + 1 < self._length:
                following = self._text[self._index + 1]
                # Only \" is unescaped; other pairs are kept verbatim.
                chars.append('"' if following == '"' else char + following)
                self._index += 2
            elif char == '"':
                self._index += 1
                return "".join(chars)
            else:
                chars.append(char)
                self._index += 1
        raise self._error("Unterminated string", expected="closing '\"'", position=start)

    def _parse_number_token(self) -> Tuple[str, int]:
        start = self._index
        if self._peek("number") == "-":
            self._index += 1
        while self._index < self._length and self._text[self._index] in const.JSON_NUMBER_CHARS:
            self._index += 1
        token = self._text[start:self._index]
        if token in ("", "-"):
            raise self._error("Invalid number", expected="number", position=start)
        return token, start

    def _parse_int(self) -> int:
        token, start = self._parse_number_token()
        try:
            return int(token)
        except ValueError:
            raise self._error(
                f"Invalid integer {token!r}", expected="integer", position=start
            ) from None

    def _parse_float(self) -> float:
        token, start = self._parse_number_token()
        try:
            return float(token)
        except ValueError:
            raise self._error(
                f"Invalid number {token!r}", expected="number", position=start
            ) from None

    def _parse_float_array(self) -> Tuple[float, ...]:
        self._expect("[", "'[' for float array")
        values: List[float] = []
        self._skip_whitespace()
        if self._peek("float value or ']'") == "]":
            self._index += 1
            return tuple(values)

        while True:
            self._skip_whitespace()
            values.append(self._parse_float())
            self._skip_whitespace()
            char = self._peek("',' or ']' after float value")
            if char == ",":
                self._index += 1
            elif char == "]":
                self._index += 1
                return tuple(values)
            else:
                raise self._error(
                    f"Unexpected character {char!r}",
                    expected="',' or ']' after float value",
                )

    # ---------------------------------------------------------------- skipping

    def _skip_value(self) -> None:
        """Skips one JSON value of any kind without interpreting it."""
        self._skip_whitespace()
        char = self._peek("value")

        if char == '"':
            self._parse_string()
        elif char in _CLOSERS:
            self._skip_container()
        elif char in "tfn":
            for literal in _LITERALS:
                if self._text.startswith(literal, self._index):
                    self._index += len(literal)
                    return
            raise self._error("Invalid literal", expected="true, false or null")
        elif char.isdigit() or char == "-":
            self._parse_number_token()
        else:
            raise self._error(f"Unexpected character {char!r}", expected="value")

    def _skip_container(self) -> None:
        """Skips a balanced object or array, stepping over quoted strings."""
        start = self._index
        stack = [self._text[self._index]]
        self._index += 1
        while stack:
            if self._index >= self._length:
                kind = "object" if stack[0] == "{" else "array"
                raise self._error(
                    f"Unterminated {kind}", expected=repr(_CLOSERS[stack[-1]]), position=start
                )
            char = self._text[self._index]
            if char == '"':
                self._parse_string()
                continue
            if char in _CLOSERS:
                stack.append(char)
            elif char in "}]":
                if char != _CLOSERS[stack[-1]]:
                    raise self._error(
                        f"Mismatched {char!r}", expected=repr(_CLOSERS[stack[-1]])
                    )
                stack.pop()
            self._index += 1

    # --------------------------------------------------------------- structure

    def _parse_frame_object(self) -> TrajectoryFrame:
        self._expect("{", "'{' for frame object")
        fields: Dict[str, Any] = {}
        self._skip_whitespace()
        if self._peek("property key or '}'") == "}":
            self._index += 1
            return TrajectoryFrame()

        while True:
            self._skip_whitespace()
            key = self._parse_string()
            self._skip_whitespace()
            self._expect(":", "':' after property key")
            self._skip_whitespace()

            if key == const.KEY_TRAJECTORY_ID:
                fields["trajectory_id"] = self._parse_int()
            elif key == const.KEY_TIMESTAMP:
                fields["timestamp"] = self._parse_int()
            elif key == const.KEY_X:
                fields["x"] = self._parse_float()
            elif key == const.KEY_Y:
                fields["y"] = self._parse_float()
            elif key == const.KEY_PREDICTED_X:
                fields["predicted_x"] = self._parse_float_array()
            elif key == const.KEY_PREDICTED_Y:
                fields["predicted_y"] = self._parse_float_array()
            else:
                logger.debug(f"Skipping unknown frame property '{key}' at position {self._index}")
                self._skip_value()

            self._skip_whitespace()
            char = self._peek("',' or '}' after property value")
            if char == ",":
                self._index += 1
            elif char == "}":
                self._index += 1
                return TrajectoryFrame(**fields)
            else:
                raise self._error(
                    f"Unexpected character {char!r}",
                    expected="',' or '}' after property value",
                )

    def _parse_frame_array(self) -> List[TrajectoryFrame]:
        self._expect("[", "'[' for frame array")
        frames: List[TrajectoryFrame] = []
        self._skip_whitespace()
        if self._peek("frame object or ']'") == "]":
            self._index += 1
            return frames

        while True:
            self._skip_whitespace()
            frames.append(self._parse_frame_object())
            self._skip_whitespace()
            char = self._peek("',' or ']' after frame")
            if char == ",":
                self._index += 1
            elif char == "]":
                self._index += 1
                return frames
            else:
                raise self._error(
                    f"Unexpected character {char!r}",
                    expected="',' or ']' after frame",
                )

    def parse(self) -> Dict[str, List[TrajectoryFrame]]:
        """
        Parses the whole document.

        Returns:
            Mapping of trajectory ID to its frames, in source order.

        Raises:
            TrajectoryParseError: on any structural violation. No partial
                result is returned.
        """
        self._index = 0
        self._skip_whitespace()
        if self._index >= self._length or self._text[self._index] != "{":
            raise self._error("Unsupported format", expected="'{' at start of JSON")
        self._index += 1

        trajectories: Dict[str, List[TrajectoryFrame]] = {}
        self._skip_whitespace()
        if self._peek("trajectory ID or '}'") == "}":
            self._index += 1
        else:
            while True:
                self._skip_whitespace()
                key = self._parse_string()
                self._skip_whitespace()
                self._expect(":", "':' after key")
                self._skip_whitespace()
                if key in trajectories:
                    logger.warning(f"Duplicate trajectory ID '{key}'; keeping the last occurrence.")
                trajectories[key] = self._parse_frame_array()
                self._skip_whitespace()
                char = self._peek("',' or '}' after value")
                if char == ",":
                    self._index += 1
                elif char == "}":
                    self._index += 1
                    break
                else:
                    raise self._error(
                        f"Unexpected character {char!r}", expected="',' or '}' after value"
                    )

        self._skip_whitespace()
        if self._index < self._length:
            raise self._error("Unexpected content after top-level object", expected="end of input")
        return trajectories


def parse_trajectories(text: str, source: Optional[str] = None) -> Dict[str, List[TrajectoryFrame]]:
    """
    Parses trajectory JSON text.

    Args:
        text: Complete JSON document.
        source: Optional document name for error messages.

    Returns:
        Mapping of trajectory ID to the ordered list of its frames.

    Raises:
        TrajectoryParseError: if the text is not a well-formed trajectory document.
    """
    return TrajectoryJSONParser(text, source=source).parse()
