"""Reference backend: one mode handler per entity family."""

from .service import DispatchService, get_dispatch_service, reset_backend_state

__all__ = [
    "DispatchService",
    "get_dispatch_service",
    "reset_backend_state",
]
