"""Relay error taxonomy mapped onto HTTP responses."""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base class for failures that terminate a request with a JSON body."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class MissingSyncKeyError(RelayError):
    status_code = 401
    message = "Missing sync-key header"


class InvalidJsonError(RelayError):
    status_code = 400
    message = "Invalid JSON body"


class PayloadTooLargeError(RelayError):
    status_code = 413
    message = "Payload too large"


class InvalidPayloadError(RelayError):
    status_code = 400
    message = "Invalid payload"

    def __init__(self, details: list[dict[str, str]]) -> None:
        super().__init__()
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class RateLimitedError(RelayError):
    status_code = 429
    message = "Too many requests"


class SnapshotNotFoundError(RelayError):
    """No push has been received for the key yet; not a fault."""

    status_code = 404
    message = "No data yet"

    def to_payload(self) -> dict[str, Any]:
        return {"success": False}


class PersistenceError(Exception):
    """Snapshot file could not be read or written. Never surfaced over HTTP."""


__all__ = [
    "InvalidJsonError",
    "InvalidPayloadError",
    "MissingSyncKeyError",
    "PayloadTooLargeError",
    "PersistenceError",
    "RateLimitedError",
    "RelayError",
    "SnapshotNotFoundError",
]
