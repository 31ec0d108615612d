"""User-facing notification sink used by the dispatch clients."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from lease_erp.logging_config import get_logger

logger = get_logger(__name__)


class Notifier(Protocol):
    """Presentation collaborator that shows success/failure toasts."""

    def success(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


class LoggingNotifier:
    """Fallback notifier that writes notifications to the package log."""

    def success(self, message: str) -> None:
        logger.info("notify success: %s", message)

    def error(self, message: str) -> None:
        logger.info("notify error: %s", message)


@dataclass(slots=True)
class RecordingNotifier:
    """Keeps notifications in memory; handy for scripts and tests."""

    successes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def clear(self) -> None:
        self.successes.clear()
        self.errors.clear()


_notifier: Notifier = LoggingNotifier()


def configure_notifier(notifier: Notifier | None) -> None:
    """Install the notifier used by clients constructed without one."""

    global _notifier
    _notifier = notifier or LoggingNotifier()


def get_notifier() -> Notifier:
    return _notifier


__all__ = [
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "configure_notifier",
    "get_notifier",
]
