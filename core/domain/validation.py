"""Structural validation of webhook bodies before they reach the store."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from core.domain.snapshot import SyncPayload
from core.errors import InvalidPayloadError


def _field_path(loc: tuple[Any, ...]) -> str:
    return ".".join(str(part) for part in loc)


def describe_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into ``{field, message, type}`` entries keyed by wire path."""
    return [
        {"field": _field_path(error["loc"]), "message": error["msg"], "type": error["type"]}
        for error in exc.errors(include_url=False)
    ]


def parse_payload(body: Any) -> SyncPayload:
    """Validate a decoded JSON body; either the whole payload is accepted or nothing is.

    A bare JSON array is the trade list posted by older bridge scripts.
    """
    if isinstance(body, list):
        body = {"trades": body}
    if not isinstance(body, dict):
        raise InvalidPayloadError(
            [{"field": "", "message": "Payload must be a JSON object", "type": "model_type"}]
        )
    try:
        return SyncPayload.model_validate(body)
    except ValidationError as exc:
        raise InvalidPayloadError(describe_errors(exc)) from exc


__all__ = ["describe_errors", "parse_payload"]
