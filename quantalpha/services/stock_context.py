# =============================================================================
# Stock Context — Numeric Market Snapshot for Interval Validation
# =============================================================================
#
# A small structured projection of a Quote. Pure: no I/O, no state.
#
# NOTE: volatility_20d_pct is a proxy (daily amplitude × factor). No
# 20-day price series is available here, so this is not a historical
# volatility; the factor is configurable for that reason.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass

from quantalpha.config import settings
from quantalpha.services.market_data import Quote


@dataclass(frozen=True)
class StockContext:
    """Snapshot used to check the plausibility of agent-produced ranges."""

    current_price: float
    daily_amplitude_pct: float
    volume: float
    volatility_20d_pct: float


def build_stock_context(
    quote: Quote,
    volatility_proxy_factor: float | None = None,
) -> StockContext:
    """
    Derive a StockContext from a quote.

    daily_amplitude_pct = (day_high - day_low) / current_price * 100.
    A non-positive price yields zero amplitude. All fields are clamped at 0.
    """
    factor = (
        volatility_proxy_factor
        if volatility_proxy_factor is not None
        else settings.volatility_proxy_factor
    )
    price = max(quote.current_price, 0.0)

    if price > 0:
        amplitude = max(quote.day_high - quote.day_low, 0.0) / price * 100
    else:
        amplitude = 0.0

    return StockContext(
        current_price=price,
        daily_amplitude_pct=amplitude,
        volume=max(quote.volume, 0.0),
        volatility_20d_pct=amplitude * factor,
    )
