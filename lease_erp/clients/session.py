"""View-local state fed by dispatch results.

A view asks its :class:`ViewSession` for a token before sending a request
and hands the token back with the result. Navigating away bumps the
generation, so replies to earlier requests no longer match and are dropped.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from lease_erp.logging_config import get_logger

from .results import DispatchResult

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class ViewSession:
    generation: int = 0

    def begin(self) -> int:
        return self.generation

    def navigate(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation


@dataclass(slots=True)
class ListViewState(Generic[T]):
    """Rows mirrored from the server for one list view."""

    session: ViewSession = field(default_factory=ViewSession)
    rows: list[T] = field(default_factory=list)
    message: str = ""

    def apply_fetch(self, result: DispatchResult[list[T]], token: int) -> bool:
        if not self.session.is_current(token):
            logger.debug("discarding stale fetch (token %s, generation %s)", token, self.session.generation)
            return False
        if not result.ok:
            self.message = result.message
            return False
        self.rows = list(result.data or [])
        self.message = result.message
        return True

    def apply_mutation(
        self,
        result: DispatchResult[Any],
        token: int,
        reducer: Callable[[list[T]], list[T]],
    ) -> bool:
        """Apply ``reducer`` to the rows only for a current, successful mutation."""

        if not self.session.is_current(token):
            logger.debug("discarding stale mutation reply (token %s)", token)
            return False
        if not result.ok:
            self.message = result.message
            return False
        self.rows = reducer(list(self.rows))
        self.message = result.message
        return True
