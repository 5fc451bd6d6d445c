# =============================================================================
# Unit Tests — Market Data Client and Stock Context
# =============================================================================
#
# The Juhe HTTP API is replaced by httpx.MockTransport; no network needed.
# =============================================================================

from __future__ import annotations

import asyncio

import httpx
import pytest

from quantalpha.services.market_data import (
    Quote,
    fetch_quote,
    format_prompt_context,
    parse_quote_payload,
)
from quantalpha.services.stock_context import build_stock_context


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _payload(**overrides) -> dict:
    data = {
        "gid": "sh600519",
        "name": "贵州茅台",
        "nowPri": "100.00",
        "todayStartPri": "99.00",
        "yestodEndPri": "98.50",
        "todayMax": "101.00",
        "todayMin": "99.00",
        "increase": "1.50",
        "increPer": "1.52",
        "traNumber": "123456",
        "traAmount": "12345600.00",
        "date": "2026-10-16",
        "time": "15:00:00",
    }
    data.update(overrides)
    return {"resultcode": "200", "reason": "SUCCESSED!", "error_code": 0,
            "result": [{"data": data}]}


def _quote(**overrides) -> Quote:
    fields = dict(
        name="贵州茅台", gid="sh600519", current_price=100.0, open_price=99.0,
        prev_close=98.5, day_high=101.0, day_low=99.0, change=1.5,
        change_pct=1.52, volume=123456.0, turnover=12345600.0,
        date="2026-10-16", time="15:00:00",
    )
    fields.update(overrides)
    return Quote(**fields)


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Test: Payload Parsing
# ---------------------------------------------------------------------------


class TestParseQuotePayload:
    """Tests for parse_quote_payload()."""

    def test_parses_numbers_from_strings(self):
        quote = parse_quote_payload(_payload())
        assert quote is not None
        assert quote.name == "贵州茅台"
        assert quote.current_price == 100.0
        assert quote.day_high == 101.0
        assert quote.volume == 123456.0

    def test_error_code_returns_none(self):
        payload = _payload()
        payload["error_code"] = 202101
        assert parse_quote_payload(payload) is None

    def test_empty_result_returns_none(self):
        payload = _payload()
        payload["result"] = []
        assert parse_quote_payload(payload) is None

    def test_unparsable_price_returns_none(self):
        assert parse_quote_payload(_payload(nowPri="--")) is None

    def test_non_dict_returns_none(self):
        assert parse_quote_payload(["not", "a", "dict"]) is None


# ---------------------------------------------------------------------------
# Test: fetch_quote
# ---------------------------------------------------------------------------


class TestFetchQuote:
    """Tests for fetch_quote() against a mocked HTTP transport."""

    def test_success_routes_symbol_and_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["gid"] = request.url.params["gid"]
            seen["key"] = request.url.params["key"]
            return httpx.Response(200, json=_payload())

        async def go():
            async with _client(handler) as client:
                return await fetch_quote("600519", "k-123", client=client)

        quote = _run(go())
        assert quote is not None
        assert quote.current_price == 100.0
        assert seen == {"gid": "sh600519", "key": "k-123"}

    def test_http_error_returns_none(self):
        def handler(request):
            return httpx.Response(500, text="boom")

        async def go():
            async with _client(handler) as client:
                return await fetch_quote("600519", "k", client=client)

        assert _run(go()) is None

    def test_transport_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async def go():
            async with _client(handler) as client:
                return await fetch_quote("000001", "k", client=client)

        assert _run(go()) is None

    def test_invalid_json_returns_none(self):
        def handler(request):
            return httpx.Response(200, text="<html>not json</html>")

        async def go():
            async with _client(handler) as client:
                return await fetch_quote("000001", "k", client=client)

        assert _run(go()) is None

    def test_beijing_code_has_no_quote(self):
        seen = []

        def handler(request):
            seen.append(request.url.params["gid"])
            return httpx.Response(200, json={
                "resultcode": "202", "reason": "股票代码错误", "error_code": 202102,
                "result": None,
            })

        async def go():
            async with _client(handler) as client:
                return await fetch_quote("830799", "k", client=client)

        assert _run(go()) is None
        assert seen == ["bj830799"]

    def test_missing_key_returns_none_without_request(self, monkeypatch):
        from quantalpha.services import market_data

        monkeypatch.setattr(market_data.settings, "juhe_api_key", "")
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_payload())

        async def go():
            async with _client(handler) as client:
                return await fetch_quote("600519", None, client=client)

        assert _run(go()) is None
        assert calls == []


# ---------------------------------------------------------------------------
# Test: Projections
# ---------------------------------------------------------------------------


class TestFormatPromptContext:
    """Tests for the prompt text projection."""

    def test_contains_key_fields(self):
        text = format_prompt_context(_quote())
        assert "贵州茅台" in text
        assert "SH600519" in text
        assert "100.00" in text
        assert "+1.52%" in text

    def test_deterministic(self):
        assert format_prompt_context(_quote()) == format_prompt_context(_quote())


class TestBuildStockContext:
    """Tests for build_stock_context()."""

    def test_amplitude_and_volatility_proxy(self):
        ctx = build_stock_context(_quote(), volatility_proxy_factor=1.8)
        assert ctx.current_price == 100.0
        assert ctx.daily_amplitude_pct == pytest.approx(2.0)
        assert ctx.volatility_20d_pct == pytest.approx(3.6)
        assert ctx.volume == 123456.0

    def test_default_factor_from_settings(self):
        ctx = build_stock_context(_quote())
        assert ctx.volatility_20d_pct == pytest.approx(2.0 * 1.8)

    def test_zero_price_gives_zero_amplitude(self):
        ctx = build_stock_context(_quote(current_price=0.0))
        assert ctx.daily_amplitude_pct == 0.0
        assert ctx.volatility_20d_pct == 0.0

    def test_inverted_high_low_is_non_negative(self):
        ctx = build_stock_context(_quote(day_high=99.0, day_low=101.0))
        assert ctx.daily_amplitude_pct == 0.0
