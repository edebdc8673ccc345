"""Source gateway contract consumed by the synchronization engine."""

import threading
from abc import ABC, abstractmethod

from sheetsync.models.snapshot import Snapshot, SourceConfig


class SourceGateway(ABC):
    """
    Reads and overwrites the configured range of a tabular source.

    Implementations must allow fetch to run concurrently for distinct sources.
    A set cancel_event means the caller has given up: implementations stop
    retrying and raise instead of waiting out their backoff.
    Authentication and session setup are the implementation's own concern.
    """

    @abstractmethod
    def fetch(
        self, source: SourceConfig, cancel_event: threading.Event | None = None
    ) -> Snapshot:
        """
        Read the full configured range of a source.

        Raises:
            FetchError: On transport, auth or timeout failure
        """

    @abstractmethod
    def clear(
        self, source: SourceConfig, cancel_event: threading.Event | None = None
    ) -> None:
        """
        Clear the configured range of a source.

        Raises:
            WriteError: If the range cannot be cleared
        """

    @abstractmethod
    def write(
        self,
        source: SourceConfig,
        snapshot: Snapshot,
        cancel_event: threading.Event | None = None,
    ) -> None:
        """
        Replace the configured range content of a source.

        Raises:
            WriteError: If the range cannot be written
        """

    def check_access(self, source: SourceConfig) -> None:
        """
        Verify the source is reachable. Defaults to a fetch.

        Raises:
            FetchError: If the source cannot be reached
        """
        self.fetch(source)

    def close(self) -> None:
        """Release any held resources."""
