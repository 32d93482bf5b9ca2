"""Refresh signal shared by capture and sync."""

from __future__ import annotations

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[int], None]


class RefreshSignal:
    """Monotonic counter; every bump tells subscribers to reload.

    The value carries no payload. Subscribers only compare it with the last
    value they saw, so a reload triggered twice is harmless.
    """

    def __init__(self) -> None:
        self._value = 0
        self._listeners: List[Listener] = []

    @property
    def value(self) -> int:
        return self._value

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def bump(self) -> int:
        self._value += 1
        for listener in list(self._listeners):
            try:
                listener(self._value)
            except Exception:
                logger.exception("Refresh listener failed for signal %s", self._value)
        return self._value
