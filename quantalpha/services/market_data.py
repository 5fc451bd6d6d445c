# =============================================================================
# Market Data — Juhe (聚合数据) Real-Time Quote Client
# =============================================================================
#
# Fetches a real-time Shanghai/Shenzhen quote and projects it into the
# text block injected into every agent prompt.
#
# CONTRACT: fetch_quote() never raises for a failed lookup. Absence (None)
# is the failure signal; the orchestrator treats it as fatal for the run.
# Every failure path logs why the quote is missing.
#
# RESPONSE SHAPE (numbers arrive as strings):
#   {"resultcode": "200", "error_code": 0,
#    "result": [{"data": {"gid": "sh600519", "name": "贵州茅台",
#                         "nowPri": "1688.00", "todayMax": "...", ...}}]}
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from quantalpha.config import settings
from quantalpha.services.symbols import to_exchange_code

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Quote:
    """A parsed real-time quote."""

    name: str
    gid: str                 # Exchange-prefixed code, e.g. "sh600519"
    current_price: float
    open_price: float
    prev_close: float
    day_high: float
    day_low: float
    change: float            # Absolute change vs previous close
    change_pct: float        # Percent change vs previous close
    volume: float            # Traded volume (shares)
    turnover: float          # Traded amount (CNY)
    date: str = ""
    time: str = ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def fetch_quote(
    symbol: str,
    api_key: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> Quote | None:
    """
    Fetch a real-time quote for an A-share symbol.

    Args:
        symbol: "600519" or "sh600519" style code (already format-checked).
        api_key: Juhe key. Falls back to settings.juhe_api_key.
        client: Optional shared httpx client (tests inject a MockTransport).

    Returns:
        The parsed Quote, or None when no usable quote is available.
    """
    key = api_key or settings.juhe_api_key
    if not key:
        logger.warning("No Juhe API key configured; cannot fetch %s", symbol)
        return None

    gid = to_exchange_code(symbol)
    params = {"gid": gid, "key": key}

    try:
        if client is not None:
            response = await client.get(settings.juhe_base_url, params=params)
        else:
            async with httpx.AsyncClient(
                timeout=settings.market_data_timeout,
            ) as owned_client:
                response = await owned_client.get(
                    settings.juhe_base_url, params=params,
                )
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("Quote request for %s failed: %s", gid, e)
        return None

    quote = parse_quote_payload(payload)
    if quote is None:
        logger.warning(
            "No quote for %s (error_code=%s, reason=%s)",
            gid,
            payload.get("error_code") if isinstance(payload, dict) else None,
            payload.get("reason") if isinstance(payload, dict) else None,
        )
        return None

    logger.info(
        "Fetched quote: %s (%s) price=%.2f", quote.name, quote.gid,
        quote.current_price,
    )
    return quote


def parse_quote_payload(payload: object) -> Quote | None:
    """
    Parse a Juhe JSON payload into a Quote.

    Returns None for error responses, empty results, or unparsable fields.
    """
    if not isinstance(payload, dict):
        return None
    if str(payload.get("error_code", 0)) != "0":
        return None

    result = payload.get("result")
    if not result:
        return None

    try:
        data = result[0]["data"]
        return Quote(
            name=str(data["name"]),
            gid=str(data["gid"]),
            current_price=float(data["nowPri"]),
            open_price=float(data.get("todayStartPri") or 0),
            prev_close=float(data.get("yestodEndPri") or 0),
            day_high=float(data["todayMax"]),
            day_low=float(data["todayMin"]),
            change=float(data.get("increase") or 0),
            change_pct=float(data.get("increPer") or 0),
            volume=float(data.get("traNumber") or 0),
            turnover=float(data.get("traAmount") or 0),
            date=str(data.get("date", "")),
            time=str(data.get("time", "")),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.debug("Malformed quote payload: %s", e)
        return None


def format_prompt_context(quote: Quote) -> str:
    """
    Render a quote as the market-data block injected into agent prompts.

    Deterministic: the same quote always yields the same text.
    """
    return (
        "【实时行情数据（来源：聚合数据 API）】\n"
        f"股票名称: {quote.name}\n"
        f"股票代码: {quote.gid.upper()}\n"
        f"当前价格: {quote.current_price:.2f} 元\n"
        f"涨跌额: {quote.change:+.2f} 元\n"
        f"涨跌幅: {quote.change_pct:+.2f}%\n"
        f"今日开盘: {quote.open_price:.2f} 元\n"
        f"昨日收盘: {quote.prev_close:.2f} 元\n"
        f"今日最高: {quote.day_high:.2f} 元\n"
        f"今日最低: {quote.day_low:.2f} 元\n"
        f"成交量: {quote.volume:.0f} 股\n"
        f"成交额: {quote.turnover:.0f} 元\n"
        f"数据时间: {quote.date} {quote.time}".rstrip()
        + "\n\n请严格基于以上实时数据进行分析，价格区间须与当前价格保持合理关系。"
    )
