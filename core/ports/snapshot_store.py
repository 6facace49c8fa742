from __future__ import annotations

from typing import Protocol

from core.domain.snapshot import Snapshot, SyncPayload


class SnapshotStore(Protocol):
    """Latest-snapshot storage keyed by sync key."""

    def put(self, sync_key: str, payload: SyncPayload, *, source_ip: str | None = None) -> Snapshot:
        """Replace the snapshot for a key and return it with its new timestamp."""

    def get(self, sync_key: str) -> Snapshot | None:
        """Return the current snapshot, or None when the key was never pushed."""

    def keys(self) -> list[str]:
        """List known sync keys."""

    def close(self) -> None:
        """Flush and release any underlying resources."""
