"""Port interfaces for adapters."""

from core.ports.snapshot_store import SnapshotStore

__all__ = ["SnapshotStore"]
