# =============================================================================
# Interval Validation — Plausibility Check Against Live Market Data
# =============================================================================
#
# Checks each extracted interval against a StockContext and clamps it into
# a plausible range. Intervals are processed independently and in order.
#
# PER INTERVAL:
#   1. Normalise  — swap reversed bounds; clamp negative prices to 0
#   2. Round      — 2 decimals (absolute) or integer (percent)
#   3. Plausibility by kind:
#        target / support / resistance → midpoint must sit inside
#            price × (1 ± vol/100 × k); otherwise both bounds are clamped
#            into that band
#        stop-loss → must be below the current price; otherwise upper is
#            clamped to price × stop_loss_ratio
#        percent intervals → band is ±vol × k percent
#        unclassified → warning only, interval left untouched
#
# DESIGN DECISION: Band edges are rounded inward to the unit's precision
# and bounds are rounded before the check. Clamped bounds therefore land
# on the rounding grid inside the band, which makes the validator
# idempotent: validating its own output yields no adjustments or warnings.
# When inward rounding would invert the band (zero amplitude, 3-decimal
# ETF prices), the band collapses to one on-grid value instead.
# =============================================================================

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from quantalpha.agents.roles import AgentRole
from quantalpha.config import settings
from quantalpha.errors import IntervalProcessingError
from quantalpha.services.intervals import Interval, IntervalKind, IntervalUnit
from quantalpha.services.stock_context import StockContext

logger = logging.getLogger(__name__)

REASON_BOUNDS_REVERSED = "bounds reversed"
REASON_NEGATIVE_CLAMPED = "negative price clamped"
REASON_OUT_OF_RANGE = "out of plausible range given observed volatility"
REASON_STOP_LOSS_ABOVE_PRICE = "stop-loss not below current price"
WARNING_UNCLASSIFIED = "unclassified interval not validated"

_BAND_KINDS = frozenset({
    IntervalKind.TARGET_PRICE,
    IntervalKind.SUPPORT,
    IntervalKind.RESISTANCE,
})


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Adjustment:
    """One change applied to an interval, with the state before and after."""

    original: Interval
    adjusted: Interval
    reason: str


@dataclass
class ValidationOutcome:
    """
    Result of validate_intervals().

    `adjusted_intervals` holds every validated interval (changed or not).
    Unclassified intervals are not validated; they go to
    `skipped_intervals` unchanged and produce one warning each.
    """

    adjusted_intervals: list[Interval] = field(default_factory=list)
    adjustments: list[Adjustment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    skipped_intervals: list[Interval] = field(default_factory=list)
    role: AgentRole = AgentRole.GM
    stock_context: StockContext | None = None

    @property
    def has_findings(self) -> bool:
        return bool(self.adjustments or self.warnings)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_intervals(
    intervals: Iterable[Interval],
    stock_context: StockContext,
    role: AgentRole = AgentRole.GM,
    plausibility_multiplier: float | None = None,
    stop_loss_ratio: float | None = None,
) -> ValidationOutcome:
    """
    Validate and adjust intervals against a market snapshot.

    Args:
        intervals: Extracted intervals, in order of appearance.
        stock_context: Snapshot with the current price and volatility proxy.
        role: Producing seat. Only used for reporting.
        plausibility_multiplier: k; defaults to settings.
        stop_loss_ratio: Clamp target for stop-losses; defaults to settings.

    Returns:
        ValidationOutcome with adjusted intervals, adjustments and warnings.

    Raises:
        IntervalProcessingError: If the snapshot has no usable price.
    """
    if stock_context is None or not stock_context.current_price > 0:
        raise IntervalProcessingError(
            "Cannot validate intervals without a positive current price"
        )

    k = (
        plausibility_multiplier
        if plausibility_multiplier is not None
        else settings.plausibility_multiplier
    )
    ratio = stop_loss_ratio if stop_loss_ratio is not None else settings.stop_loss_ratio

    outcome = ValidationOutcome(role=role, stock_context=stock_context)

    for interval in intervals:
        if interval.kind is IntervalKind.UNCLASSIFIED:
            outcome.warnings.append(
                f"{WARNING_UNCLASSIFIED}: {interval.source_text}"
            )
            outcome.skipped_intervals.append(interval)
            continue

        current = _normalise(interval, outcome.adjustments)
        current = _round_interval(current)

        if interval.kind in _BAND_KINDS or interval.unit is IntervalUnit.PERCENT:
            current = _check_band(current, stock_context, k, outcome.adjustments)
        else:
            current = _check_stop_loss(
                current, stock_context, ratio, outcome.adjustments,
            )

        outcome.adjusted_intervals.append(current)

    logger.info(
        "Interval validation (%s): %d validated, %d adjustments, %d warnings",
        role.value,
        len(outcome.adjusted_intervals),
        len(outcome.adjustments),
        len(outcome.warnings),
    )
    return outcome


def plausibility_band(
    stock_context: StockContext,
    unit: IntervalUnit,
    plausibility_multiplier: float,
) -> tuple[float, float]:
    """
    Return the (low, high) band for a unit, rounded inward to its precision.

    Absolute: price × (1 ± vol/100 × k). Percent: ±vol × k.
    A band narrower than one rounding step collapses to its rounded centre.
    """
    move_pct = stock_context.volatility_20d_pct * plausibility_multiplier
    if unit is IntervalUnit.PERCENT:
        centre = 0.0
        low, high = -move_pct, move_pct
    else:
        centre = stock_context.current_price
        low = max(centre * (1 - move_pct / 100), 0.0)
        high = centre * (1 + move_pct / 100)

    places = _decimal_places(unit)
    low, high = _round_up(low, places), _round_down(high, places)
    if low > high:
        # e.g. price 1.005 with zero amplitude: [1.01, 1.00]
        low = high = float(round(centre, places))
    return low, high


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _normalise(interval: Interval, adjustments: list[Adjustment]) -> Interval:
    current = interval

    if current.lower > current.upper:
        swapped = replace(current, lower=current.upper, upper=current.lower)
        adjustments.append(Adjustment(current, swapped, REASON_BOUNDS_REVERSED))
        current = swapped

    if current.unit is IntervalUnit.ABSOLUTE and current.lower < 0:
        clamped = replace(
            current, lower=0.0, upper=max(current.upper, 0.0),
        )
        adjustments.append(Adjustment(current, clamped, REASON_NEGATIVE_CLAMPED))
        current = clamped

    return current


def _check_band(
    interval: Interval,
    stock_context: StockContext,
    k: float,
    adjustments: list[Adjustment],
) -> Interval:
    low, high = plausibility_band(stock_context, interval.unit, k)
    if low <= interval.midpoint <= high:
        return interval

    clamped = replace(
        interval,
        lower=min(max(interval.lower, low), high),
        upper=min(max(interval.upper, low), high),
    )
    adjustments.append(Adjustment(interval, clamped, REASON_OUT_OF_RANGE))
    return clamped


def _check_stop_loss(
    interval: Interval,
    stock_context: StockContext,
    ratio: float,
    adjustments: list[Adjustment],
) -> Interval:
    price = stock_context.current_price
    if interval.upper < price:
        return interval

    ceiling = _round_down(price * ratio, _decimal_places(interval.unit))
    clamped = replace(
        interval,
        lower=min(interval.lower, ceiling),
        upper=ceiling,
    )
    adjustments.append(
        Adjustment(interval, clamped, REASON_STOP_LOSS_ABOVE_PRICE)
    )
    return clamped


def _round_interval(interval: Interval) -> Interval:
    places = _decimal_places(interval.unit)
    lower = round(interval.lower, places)
    upper = round(interval.upper, places)
    if lower == interval.lower and upper == interval.upper:
        return interval
    return replace(interval, lower=float(lower), upper=float(upper))


def _decimal_places(unit: IntervalUnit) -> int:
    return 0 if unit is IntervalUnit.PERCENT else 2


# Values are first rounded to 6 places so float noise such as
# 110.00000000000001 does not push an edge one step inward.
def _round_up(value: float, places: int) -> float:
    scale = 10 ** places
    return math.ceil(round(value * scale, 6)) / scale


def _round_down(value: float, places: int) -> float:
    scale = 10 ** places
    return math.floor(round(value * scale, 6)) / scale
