# =============================================================================
# Interval Validation Report — Markdown Appendix for the GM Output
# =============================================================================
#
# Pure rendering of a ValidationOutcome. Returns None (not "") when there
# is nothing to report; callers check before appending.
#
# Example output:
#   ### 区间校验报告 / Interval Validation Report (gm)
#
#   行情基准: 现价 100.00 · 日振幅 2.00% · 波动率代理 3.60%
#
#   **调整记录 / Adjustments**
#   1. 目标价 (target_price): 120.00 – 135.00 元 → 110.00 – 110.00 元
#      — out of plausible range given observed volatility
#
#   **警告 / Warnings**
#   - unclassified interval not validated: 10%-20%
# =============================================================================

from __future__ import annotations

from quantalpha.services.interval_validator import ValidationOutcome
from quantalpha.services.intervals import Interval, IntervalKind, IntervalUnit

_KIND_LABELS: dict[IntervalKind, str] = {
    IntervalKind.TARGET_PRICE: "目标价",
    IntervalKind.STOP_LOSS: "止损价",
    IntervalKind.SUPPORT: "支撑位",
    IntervalKind.RESISTANCE: "压力位",
    IntervalKind.UNCLASSIFIED: "未分类",
}


def generate_interval_report(outcome: ValidationOutcome) -> str | None:
    """Render the outcome as a Markdown section, or None if it is empty."""
    if not outcome.has_findings:
        return None

    lines = [
        f"### 区间校验报告 / Interval Validation Report ({outcome.role.value})",
        "",
    ]

    ctx = outcome.stock_context
    if ctx is not None:
        lines.append(
            f"行情基准: 现价 {ctx.current_price:.2f} · "
            f"日振幅 {ctx.daily_amplitude_pct:.2f}% · "
            f"波动率代理 {ctx.volatility_20d_pct:.2f}%"
        )
        lines.append("")

    if outcome.adjustments:
        lines.append("**调整记录 / Adjustments**")
        for i, adjustment in enumerate(outcome.adjustments, 1):
            kind = adjustment.original.kind
            lines.append(
                f"{i}. {_KIND_LABELS[kind]} ({kind.value}): "
                f"{format_interval(adjustment.original)} → "
                f"{format_interval(adjustment.adjusted)}"
            )
            lines.append(f"   — {adjustment.reason}")
        lines.append("")

    if outcome.warnings:
        lines.append("**警告 / Warnings**")
        lines.extend(f"- {warning}" for warning in outcome.warnings)
        lines.append("")

    return "\n".join(lines).rstrip()


def format_interval(interval: Interval) -> str:
    """Format bounds with their unit, e.g. "120.00 – 135.00 元" or "5% – 8%"."""
    if interval.unit is IntervalUnit.PERCENT:
        return f"{interval.lower:g}% – {interval.upper:g}%"
    return f"{interval.lower:.2f} – {interval.upper:.2f} 元"
