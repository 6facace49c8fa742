from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from collections.abc import Callable
from pathlib import Path

from pydantic import ValidationError

from core.domain.snapshot import Snapshot, SyncPayload
from core.errors import PersistenceError

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class JsonFileSnapshotStore:
    """In-memory snapshot map mirrored to a single JSON file after every push.

    Snapshots are immutable and swapped under ``_lock``, so readers never see a
    half-applied push. File writes are serialized separately by ``_write_lock``
    and tagged with a version so an older state never replaces a newer file.
    """

    def __init__(self, path: str | os.PathLike[str] | None, *, clock: Callable[[], int] = _now_ms) -> None:
        self._path = Path(path) if path else None
        self._clock = clock
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._version = 0
        self._written_version = 0
        self._snapshots: dict[str, Snapshot] = self._load()

    @property
    def path(self) -> Path | None:
        return self._path

    def put(self, sync_key: str, payload: SyncPayload, *, source_ip: str | None = None) -> Snapshot:
        with self._lock:
            previous = self._snapshots.get(sync_key)
            stamp = self._clock()
            if previous is not None and stamp <= previous.last_updated:
                stamp = previous.last_updated + 1
            snapshot = Snapshot.from_payload(payload, last_updated=stamp, last_ip=source_ip)
            self._snapshots[sync_key] = snapshot
            self._version += 1
            version = self._version
            state = dict(self._snapshots)
        self._persist(state, version)
        return snapshot

    def get(self, sync_key: str) -> Snapshot | None:
        with self._lock:
            return self._snapshots.get(sync_key)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._snapshots)

    def close(self) -> None:
        with self._lock:
            version = self._version
            state = dict(self._snapshots)
        if version:
            self._persist(state, version)

    def _persist(self, state: dict[str, Snapshot], version: int) -> None:
        if self._path is None:
            return
        with self._write_lock:
            if version <= self._written_version:
                return
            try:
                self._write_file(state)
            except PersistenceError:
                logger.exception("Failed to persist %d snapshots to %s", len(state), self._path)
                return
            self._written_version = version

    def _write_file(self, state: dict[str, Snapshot]) -> None:
        assert self._path is not None
        payload = {key: snapshot.to_record() for key, snapshot in state.items()}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(payload, handle, ensure_ascii=False, indent=2, sort_keys=True)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(str(exc)) from exc

    def _load(self) -> dict[str, Snapshot]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            raw = self._read_file()
        except PersistenceError:
            logger.exception("Snapshot file %s unreadable; starting with an empty store", self._path)
            return {}

        snapshots: dict[str, Snapshot] = {}
        for key, record in raw.items():
            try:
                snapshots[key] = Snapshot.model_validate(record)
            except ValidationError as exc:
                logger.warning("Skipping persisted snapshot for key %s: %s", key, exc.error_count())
        logger.info("Loaded %d snapshots from %s", len(snapshots), self._path)
        return snapshots

    def _read_file(self) -> dict[str, object]:
        assert self._path is not None
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PersistenceError(str(exc)) from exc
        if not isinstance(payload, dict):
            raise PersistenceError(f"expected a JSON object, got {type(payload).__name__}")
        return payload


__all__ = ["JsonFileSnapshotStore"]
