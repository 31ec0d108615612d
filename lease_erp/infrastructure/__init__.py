"""Infrastructure layer exports."""

from .notifications import (
    LoggingNotifier,
    Notifier,
    RecordingNotifier,
    configure_notifier,
    get_notifier,
)
from .store import InMemoryLeaseRepository, LeaseRepository
from .transport import DispatchTransport

__all__ = [
    "DispatchTransport",
    "InMemoryLeaseRepository",
    "LeaseRepository",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "configure_notifier",
    "get_notifier",
]
