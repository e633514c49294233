"""Modification counting and change listeners shared by the stateful components."""
import logging

logger = logging.getLogger(__name__)


class ChangeTracker:
    """Base for components whose mutations must be persisted.

    ``modification_count`` only ever grows; the store compares it against the
    count it last saved to decide whether a component is dirty.
    """

    def __init__(self):
        self.modification_count = 0
        self._listeners = []

    def add_listener(self, listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self) -> None:
        self.modification_count += 1
        for listener in list(self._listeners):
            listener(self)
