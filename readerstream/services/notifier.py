"""Transient user-facing notices (the toast equivalent) with listener fan-out."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Deque

logger = logging.getLogger(__name__)


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    level: NoticeLevel
    title: str
    description: str = ""


NoticeListener = Callable[[Notice], None]


class Notifier:
    """Keeps the most recent notices and forwards each one to listeners."""

    def __init__(self, *, history: int = 50) -> None:
        self._notices: Deque[Notice] = deque(maxlen=history)
        self._listeners: list[NoticeListener] = []

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def listen(self, callback: NoticeListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def dispose() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return dispose

    def publish(self, level: NoticeLevel, title: str, description: str = "") -> Notice:
        notice = Notice(level=level, title=title, description=description)
        self._notices.append(notice)
        log = logger.warning if level is NoticeLevel.ERROR else logger.info
        log("%s: %s", title, description)
        for listener in list(self._listeners):
            try:
                listener(notice)
            except Exception:
                logger.exception("Notice listener failed")
        return notice

    def info(self, title: str, description: str = "") -> Notice:
        return self.publish(NoticeLevel.INFO, title, description)

    def success(self, title: str, description: str = "") -> Notice:
        return self.publish(NoticeLevel.SUCCESS, title, description)

    def error(self, title: str, description: str = "") -> Notice:
        return self.publish(NoticeLevel.ERROR, title, description)

    def clear(self) -> None:
        self._notices.clear()


__all__ = ["Notice", "NoticeLevel", "Notifier"]
