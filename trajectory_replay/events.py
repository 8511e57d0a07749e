# trajectory_replay/events.py
"""
Synchronous observer registry used by the playback engines.
"""
from typing import Callable, Dict, Iterable, List

import logging

logger = logging.getLogger(__name__)

Listener = Callable[..., None]


class EventEmitter:
    """
    Holds an ordered set of listeners per event name.

    Listeners are invoked synchronously in registration order. A failing
    listener is logged and does not stop delivery to the others or affect
    the emitting engine.
    """

    def __init__(self, event_names: Iterable[str]):
        """
        Args:
            event_names: The events this emitter accepts. Registering for or
                         emitting any other name raises ValueError.
        """
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in event_names}

    @property
    def event_names(self) -> List[str]:
        return list(self._listeners)

    def _check_event(self, event_name: str) -> List[Listener]:
        if event_name not in self._listeners:
            raise ValueError(
                f"Unknown event '{event_name}'. Known events: {', '.join(self._listeners)}"
            )
        return self._listeners[event_name]

    def add_listener(self, event_name: str, listener: Listener) -> None:
        """Registers a listener; registering the same callable twice has no effect."""
        listeners = self._check_event(event_name)
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, event_name: str, listener: Listener) -> None:
        """Removes a listener if registered."""
        listeners = self._check_event(event_name)
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_name: str) -> int:
        return len(self._check_event(event_name))

    def clear(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()

    def emit(self, event_name: str, *args) -> None:
        """Calls every listener of `event_name` with `args`."""
        for listener in list(self._check_event(event_name)):
            try:
                listener(*args)
            except Exception as e:
                logger.error(f"Error in '{event_name}' listener {listener!r}: {e}", exc_info=True)
