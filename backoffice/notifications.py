from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Level = Literal["success", "error", "info"]


class Toast(BaseModel):
    level: Level
    message: str


class ToastSink:
    """Collects user-facing notifications until the caller drains them."""

    def __init__(self) -> None:
        self._pending: list[Toast] = []

    def success(self, message: str) -> None:
        self._push("success", message)

    def error(self, message: str) -> None:
        self._push("error", message)

    def info(self, message: str) -> None:
        self._push("info", message)

    def drain(self) -> list[Toast]:
        out, self._pending = self._pending, []
        return out

    @property
    def pending(self) -> list[Toast]:
        return list(self._pending)

    def _push(self, level: Level, message: str) -> None:
        logger.log(logging.WARNING if level == "error" else logging.INFO, "[%s] %s", level, message)
        self._pending.append(Toast(level=level, message=message))
