"""Persistent storage for the viewer's bearer token."""
from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class TokenStore:
    """Keeps the auth token in a small JSON file between runs.

    A token passed explicitly (normally from ``READER_AUTH_TOKEN``) takes
    precedence over the file and is never written back.
    """

    def __init__(self, path: Path | str, *, override: str | None = None) -> None:
        self._path = Path(path)
        self._override = (override or "").strip() or None
        self._token: str | None = None
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> str | None:
        if self._override:
            return self._override
        if not self._loaded:
            self._token = self._read()
            self._loaded = True
        return self._token

    def set(self, token: str | None) -> None:
        """Persist a new token, or remove the stored one when ``token`` is empty."""

        value = (token or "").strip()
        self._loaded = True
        if not value:
            self._token = None
            try:
                self._path.unlink()
            except FileNotFoundError:
                pass
            return
        self._token = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as fh:
            json.dump({"token": value}, fh, indent=2)

    def clear(self) -> None:
        self.set(None)

    def _read(self) -> str | None:
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable token file %s", self._path)
            return None
        if not isinstance(data, dict):
            return None
        token = str(data.get("token") or "").strip()
        return token or None


__all__ = ["TokenStore"]
