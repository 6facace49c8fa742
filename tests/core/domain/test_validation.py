from __future__ import annotations

import pytest

from core.domain.validation import parse_payload
from core.errors import InvalidPayloadError


def _trade(**overrides) -> dict:
    trade = {
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
    trade.update(overrides)
    return trade


def _account(**overrides) -> dict:
    account = {
        "login": 5551234,
        "name": "Demo Trader",
        "server": "MetaQuotes-Demo",
        "currency": "USD",
        "leverage": 100,
        "balance": 10000,
        "equity": 10012.5,
        "isReal": "false",
    }
    account.update(overrides)
    return account


def _fields(exc_info: pytest.ExceptionInfo[InvalidPayloadError]) -> list[str]:
    return [detail["field"] for detail in exc_info.value.details]


def test_parse_payload_accepts_full_push() -> None:
    payload = parse_payload({"trades": [_trade()], "account": _account(), "openPositions": []})

    assert len(payload.trades) == 1
    assert payload.account is not None
    assert payload.account.is_real is False


def test_parse_payload_rejects_string_profit() -> None:
    with pytest.raises(InvalidPayloadError) as exc_info:
        parse_payload({"trades": [_trade(profit="10.5")]})

    assert _fields(exc_info) == ["trades.0.profit"]
    assert exc_info.value.status_code == 400


def test_parse_payload_rejects_boolean_number() -> None:
    with pytest.raises(InvalidPayloadError) as exc_info:
        parse_payload({"trades": [_trade(lots=True)]})

    assert _fields(exc_info) == ["trades.0.lots"]


def test_parse_payload_reports_every_failing_field() -> None:
    broken = _trade(swap="0")
    del broken["symbol"]
    with pytest.raises(InvalidPayloadError) as exc_info:
        parse_payload({"trades": [_trade(), broken], "account": _account(isReal="yes")})

    assert set(_fields(exc_info)) == {"trades.1.symbol", "trades.1.swap", "account.isReal"}


def test_parse_payload_requires_trades() -> None:
    with pytest.raises(InvalidPayloadError) as exc_info:
        parse_payload({"openPositions": []})

    assert _fields(exc_info) == ["trades"]
    assert exc_info.value.details[0]["type"] == "missing"


def test_parse_payload_accepts_legacy_trade_array() -> None:
    payload = parse_payload([_trade(ticket=10), _trade(ticket=11, type="Sell")])

    assert [trade.ticket for trade in payload.trades] == [10, 11]
    assert payload.account is None
    assert payload.open_positions == []


@pytest.mark.parametrize("body", ["trades", 42, None])
def test_parse_payload_rejects_non_object_body(body) -> None:
    with pytest.raises(InvalidPayloadError) as exc_info:
        parse_payload(body)

    assert _fields(exc_info) == [""]


def test_parse_payload_allows_null_account() -> None:
    payload = parse_payload({"trades": [], "account": None, "openPositions": []})
    assert payload.account is None


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_parse_payload_rejects_non_finite_numbers(value) -> None:
    with pytest.raises(InvalidPayloadError) as exc_info:
        parse_payload({"trades": [_trade(commission=value)]})

    assert _fields(exc_info) == ["trades.0.commission"]
