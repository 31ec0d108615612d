"""Exception hierarchy shared by the dispatch clients and the reference backend."""
from __future__ import annotations

from typing import Iterable


class LeaseError(Exception):
    """Base class for every error raised inside the package."""


class ValidationError(LeaseError, ValueError):
    """Raised when input fails a client-side check before anything is sent."""

    def __init__(self, message: str | Iterable[str]) -> None:
        if isinstance(message, str):
            messages = [message]
        else:
            messages = [str(item) for item in message]
        self.messages = messages or ["Validation failed"]
        super().__init__("; ".join(self.messages))


class DomainError(LeaseError):
    """A refusal produced by the backend; surfaces as ``Status=0``."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(DomainError):
    pass


class ConflictError(DomainError):
    pass


class PreconditionError(DomainError):
    """Domain refusal carrying an enumerable list of failed preconditions."""

    def __init__(self, messages: Iterable[str], **details) -> None:
        self.messages = [str(item) for item in messages] or ["Preconditions not met"]
        self.details = details
        super().__init__(self.messages[0])


class TransportError(LeaseError, RuntimeError):
    """Raised when the HTTP exchange itself fails."""


def not_found(entity: str, entity_id: object) -> NotFoundError:
    return NotFoundError(f"{entity} not found: {entity_id}")


def already_posted(entity: str) -> ConflictError:
    return ConflictError(f"{entity} is already posted")


__all__ = [
    "ConflictError",
    "DomainError",
    "LeaseError",
    "NotFoundError",
    "PreconditionError",
    "TransportError",
    "ValidationError",
    "already_posted",
    "not_found",
]
