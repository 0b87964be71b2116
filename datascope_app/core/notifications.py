from __future__ import annotations

from typing import Optional, Protocol


class Notifier(Protocol):
    """Sink for the user-facing success/error messages of an operation."""

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class ToastCollector:
    """Notifier that keeps the messages so a view can return them."""

    def __init__(self) -> None:
        self.successes: list[str] = []
        self.errors: list[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    @property
    def last_success(self) -> Optional[str]:
        return self.successes[-1] if self.successes else None

    @property
    def last_error(self) -> Optional[str]:
        return self.errors[-1] if self.errors else None
