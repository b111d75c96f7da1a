"""Port: message channel to the out-of-process recognition worker."""

from __future__ import annotations

from typing import Any, Protocol


class AsrWorker(Protocol):
    """Ordered, copy-only message passing with a worker process.

    Messages from the worker arrive in send order; ``recv`` blocks until one is available.
    """

    def start(self) -> None:
        """Spawn the worker. Raises WorkerUnavailableError if it cannot start."""
        ...

    def send(self, message: dict[str, Any]) -> None:
        """Send a request. Raises WorkerCommunicationError if the channel is broken."""
        ...

    def recv(self) -> dict[str, Any]:
        """Block for the next message. Raises WorkerCommunicationError when the channel closes."""
        ...

    def terminate(self) -> None:
        """Kill the worker immediately, discarding any in-flight job."""
        ...

    def close(self) -> None:
        """Ask the worker to shut down gracefully."""
        ...
