"""Transport factory and initialization."""

from __future__ import annotations

from .base import BaseExecutionsTransport, RawExecution, RawWorkflow
from .inmemory import InMemoryExecutionsTransport


def get_transport(backend: str = "google") -> BaseExecutionsTransport:
    """Factory function to get the execution management transport."""

    backend = backend.lower()

    if backend == "inmemory":
        return InMemoryExecutionsTransport()
    elif backend == "google":
        from .google import GoogleExecutionsTransport

        return GoogleExecutionsTransport()
    else:
        raise ValueError(f"Unsupported transport backend: {backend}")


__all__ = [
    "BaseExecutionsTransport",
    "InMemoryExecutionsTransport",
    "RawExecution",
    "RawWorkflow",
    "get_transport",
]
