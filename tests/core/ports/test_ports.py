from __future__ import annotations

from adapters.storage.json_file_store import JsonFileSnapshotStore
from core.ports import SnapshotStore


def test_ports_expose_expected_methods() -> None:
    assert {"put", "get", "keys", "close"} <= set(SnapshotStore.__dict__)


def test_json_store_satisfies_port() -> None:
    expected = {"put", "get", "keys", "close"}
    assert all(callable(getattr(JsonFileSnapshotStore, name)) for name in expected)
