"""Helpers shared by the sessions for socket payloads and handler bookkeeping."""
from __future__ import annotations

import logging
from typing import Any, Callable, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_event(model: Type[ModelT], payload: Any, event: str) -> ModelT | None:
    """Validate a socket payload; malformed payloads are logged and dropped."""

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Dropping malformed %s payload: %s", event, exc.errors(include_url=False))
        return None


class Subscriptions:
    """Collects disposers so a session can drop all of its handlers at once."""

    def __init__(self) -> None:
        self._disposers: list[Callable[[], None]] = []

    def __len__(self) -> int:
        return len(self._disposers)

    def add(self, disposer: Callable[[], None]) -> None:
        self._disposers.append(disposer)

    def dispose_all(self) -> None:
        disposers, self._disposers = self._disposers, []
        for dispose in disposers:
            dispose()


__all__ = ["parse_event", "Subscriptions"]
