# store.py
import logging
from typing import Any, Callable, Dict, List

Listener = Callable[["Store", Dict[str, Any]], None]


class Store:
    """State holder that tells subscribers what changed.

    Subclasses mutate their public attributes only through ``_set`` so every
    change reaches the presentation layer as one notification.
    """

    def __init__(self):
        self._listeners: List[Listener] = []
        self.logger = logging.getLogger(type(self).__module__)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _set(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self, name, value)
        for listener in list(self._listeners):
            try:
                listener(self, changes)
            except Exception:
                # a broken view must not corrupt store state
                self.logger.exception("state listener %r failed", listener)
