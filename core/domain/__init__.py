"""Domain models."""

from core.domain.snapshot import AccountInfo, OpenPosition, Snapshot, SyncPayload, Trade
from core.domain.validation import parse_payload

__all__ = ["AccountInfo", "OpenPosition", "Snapshot", "SyncPayload", "Trade", "parse_payload"]
