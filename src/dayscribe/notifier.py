"""User-facing notifications."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, List, Optional

logger = logging.getLogger(__name__)

SUCCESS = "success"
INFO = "info"
ERROR = "error"


@dataclass
class Notification:
    level: str
    message: str
    error: Optional[BaseException] = None
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    def __init__(
        self,
        listener: Optional[Callable[[Notification], None]] = None,
        history: int = 50,
    ) -> None:
        self._listener = listener
        self._recent: Deque[Notification] = deque(maxlen=history)

    @property
    def recent(self) -> List[Notification]:
        return list(self._recent)

    @property
    def last(self) -> Optional[Notification]:
        return self._recent[-1] if self._recent else None

    def success(self, message: str) -> Notification:
        return self._emit(Notification(SUCCESS, message))

    def info(self, message: str) -> Notification:
        return self._emit(Notification(INFO, message))

    def error(self, message: str, error: Optional[BaseException] = None) -> Notification:
        return self._emit(Notification(ERROR, message, error=error))

    def _emit(self, note: Notification) -> Notification:
        if note.level == ERROR:
            if note.error is not None:
                logger.warning("%s (%s: %s)", note.message, type(note.error).__name__, note.error)
            else:
                logger.warning(note.message)
        else:
            logger.info(note.message)
        self._recent.append(note)
        if self._listener is not None:
            self._listener(note)
        return note
