from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.domain.snapshot import AccountInfo, OpenPosition, Snapshot, SyncPayload, Trade


def _trade_payload(**overrides) -> dict:
    payload = {
        "ticket": 1,
        "symbol": "EURUSD",
        "type": "Buy",
        "openTime": "2024-01-01T00:00:00Z",
        "closeTime": "2024-01-01T01:00:00Z",
        "profit": 10.5,
        "commission": -0.5,
        "swap": 0,
        "lots": 0.1,
        "openPrice": 1.1,
        "closePrice": 1.105,
    }
    payload.update(overrides)
    return payload


def _position_payload(**overrides) -> dict:
    payload = {
        "ticket": 7,
        "symbol": "XAUUSD",
        "type": "Sell",
        "openTime": "2024.01.02 09:30",
        "openPrice": 2050.0,
        "currentPrice": 2045.5,
        "sl": 2060.0,
        "tp": 2000.0,
        "lots": 0.5,
        "swap": -1.25,
        "profit": 225.0,
    }
    payload.update(overrides)
    return payload


def test_trade_reads_wire_names_and_derives_net_profit() -> None:
    trade = Trade.model_validate(_trade_payload())

    assert trade.direction == "Buy"
    assert trade.open_time == "2024-01-01T00:00:00Z"
    assert trade.net_profit == pytest.approx(10.0)


def test_trade_rejects_unknown_direction() -> None:
    with pytest.raises(ValidationError):
        Trade.model_validate(_trade_payload(type="Long"))


def test_trade_round_trips_to_wire_shape() -> None:
    payload = _trade_payload()
    assert Trade.model_validate(payload).to_wire() == payload


def test_open_position_omits_absent_comment_on_wire() -> None:
    position = OpenPosition.model_validate(_position_payload())

    assert "comment" not in position.to_wire()
    assert position.floating_profit == pytest.approx(223.75)


def test_open_position_keeps_comment() -> None:
    position = OpenPosition.model_validate(_position_payload(comment="grid #3"))
    assert position.to_wire()["comment"] == "grid #3"


@pytest.mark.parametrize(("raw", "expected"), [(True, True), ("true", True), (False, False), ("false", False)])
def test_account_is_real_accepts_bool_and_literal_strings(raw, expected) -> None:
    account = AccountInfo.model_validate(
        {
            "login": 5551234,
            "name": "Demo Trader",
            "server": "MetaQuotes-Demo",
            "currency": "USD",
            "leverage": 100,
            "balance": 10000,
            "equity": 10012.5,
            "isReal": raw,
        }
    )
    assert account.is_real is expected


def test_payload_defaults_optional_sections() -> None:
    payload = SyncPayload.model_validate({"trades": []})

    assert payload.account is None
    assert payload.open_positions == []


def test_snapshot_wire_shape_hides_source_ip() -> None:
    payload = SyncPayload.model_validate({"trades": [_trade_payload()], "openPositions": [_position_payload()]})
    snapshot = Snapshot.from_payload(payload, last_updated=1700000000000, last_ip="10.0.0.8")

    wire = snapshot.to_wire()
    assert wire["lastUpdated"] == 1700000000000
    assert wire["account"] is None
    assert "lastIp" not in wire
    assert snapshot.to_record()["lastIp"] == "10.0.0.8"


def test_snapshot_rebuilds_from_record() -> None:
    payload = SyncPayload.model_validate({"trades": [_trade_payload()], "openPositions": [_position_payload()]})
    record = Snapshot.from_payload(payload, last_updated=42, last_ip=None).to_record()

    restored = Snapshot.model_validate(record)

    assert restored.last_updated == 42
    assert restored.to_record() == record
