from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

Direction = Literal["Buy", "Sell"]


def _require_number(value: Any) -> Any:
    # The bridge serializes numbers itself; quoted numbers mean a broken payload.
    if isinstance(value, (str, bool)):
        raise PydanticCustomError("number_type", "Input should be a number, got {kind}", {"kind": type(value).__name__})
    return value


def _coerce_flag(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    raise PydanticCustomError("bool_type", "Input should be true, false, 'true' or 'false'")


Number = Annotated[float, BeforeValidator(_require_number)]
WholeNumber = Annotated[int, BeforeValidator(_require_number)]
Flag = Annotated[bool, BeforeValidator(_coerce_flag)]


class _WireModel(BaseModel):
    """Base for entities pushed by the terminal bridge (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, allow_inf_nan=False)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class Trade(_WireModel):
    """Closed deal as reported by the terminal."""

    ticket: WholeNumber
    symbol: str
    direction: Direction = Field(alias="type")
    open_time: str
    close_time: str
    open_price: Number
    close_price: Number
    lots: Number
    profit: Number
    commission: Number
    swap: Number

    @property
    def net_profit(self) -> float:
        return self.profit + self.commission + self.swap


class AccountInfo(_WireModel):
    """Trading account summary (balance, equity, live/demo)."""

    login: WholeNumber
    name: str
    server: str
    currency: str
    leverage: WholeNumber
    balance: Number
    equity: Number
    is_real: Flag


class OpenPosition(_WireModel):
    """Currently open exposure; replaced wholesale on every push."""

    ticket: WholeNumber
    symbol: str
    direction: Direction = Field(alias="type")
    open_time: str
    open_price: Number
    current_price: Number
    sl: Number
    tp: Number
    lots: Number
    swap: Number
    profit: Number
    comment: str | None = None

    @property
    def floating_profit(self) -> float:
        return self.profit + self.swap


class SyncPayload(_WireModel):
    """Body of a webhook push."""

    trades: list[Trade]
    account: AccountInfo | None = None
    open_positions: list[OpenPosition] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Latest state held for one sync key."""

    trades: tuple[Trade, ...] = ()
    account: AccountInfo | None = None
    open_positions: tuple[OpenPosition, ...] = ()
    last_updated: int = Field(ge=0)
    last_ip: str | None = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @classmethod
    def from_payload(cls, payload: SyncPayload, *, last_updated: int, last_ip: str | None = None) -> Snapshot:
        return cls(
            trades=tuple(payload.trades),
            account=payload.account,
            open_positions=tuple(payload.open_positions),
            last_updated=last_updated,
            last_ip=last_ip,
        )

    def to_wire(self) -> dict[str, Any]:
        """Shape served to pollers; ``lastIp`` stays server-side."""
        return {
            "trades": [trade.to_wire() for trade in self.trades],
            "account": self.account.to_wire() if self.account is not None else None,
            "openPositions": [position.to_wire() for position in self.open_positions],
            "lastUpdated": self.last_updated,
        }

    def to_record(self) -> dict[str, Any]:
        record = self.to_wire()
        record["lastIp"] = self.last_ip
        return record


__all__ = ["AccountInfo", "Direction", "OpenPosition", "Snapshot", "SyncPayload", "Trade"]
