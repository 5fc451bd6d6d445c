# =============================================================================
# Interval Extraction — Numeric Ranges in Agent Free Text
# =============================================================================
#
# Scans free text for range expressions such as "¥100–120", "120元~135元",
# "100至120元" or "5%-8%", and tags each with a semantic kind from the
# nearest preceding keyword on the same line (目标价 / 止损 / 支撑 / 压力,
# plus English equivalents).
#
# DESIGN DECISION: extract_intervals() returns a restartable iterable.
# Each iteration rescans the text, so callers can iterate more than once
# and nothing is computed until someone iterates.
#
# RULES:
#   - Digits glued to other digits, dots or hyphens are not range starts,
#     and a range followed by "-<digit>" is rejected (dates, codes).
#   - Either side carrying a percent sign → percent unit. A range mixing a
#     currency marker with a percent sign is dropped.
#   - A range with no currency/unit marker at all is only kept when a
#     price keyword directly precedes it ("目标价 120-135").
#   - A range followed by 倍 / 年 / 个月 / 天 ... is a multiple, year or
#     duration, never a price.
# =============================================================================

from __future__ import annotations

import enum
import re
from collections.abc import Iterator
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


class IntervalKind(str, enum.Enum):
    TARGET_PRICE = "target_price"
    STOP_LOSS = "stop_loss"
    SUPPORT = "support"
    RESISTANCE = "resistance"
    UNCLASSIFIED = "unclassified"


class IntervalUnit(str, enum.Enum):
    ABSOLUTE = "absolute"
    PERCENT = "percent"


@dataclass(frozen=True)
class Interval:
    """
    A lower/upper bound pair extracted from text.

    `span` is the (start, end) character range of `source_text` in the
    original text. Bounds may be reversed as extracted; the validator
    normalises them.
    """

    kind: IntervalKind
    lower: float
    upper: float
    unit: IntervalUnit
    span: tuple[int, int]
    source_text: str

    @property
    def midpoint(self) -> float:
        return (self.lower + self.upper) / 2


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_UNIT = r"%|％|(?:元|块)(?:/股)?"

_RANGE_RE = re.compile(
    r"(?<![\d.\-−])"
    r"(?:(?P<cur1>[¥￥$])[ \t]*)?"
    r"(?P<low>[-−]?\d+(?:\.\d+)?)"
    rf"(?:[ \t]*(?P<unit1>{_UNIT}))?"
    r"[ \t]*(?P<sep>[-–—－~～]|至|到)[ \t]*"
    r"(?:(?P<cur2>[¥￥$])[ \t]*)?"
    r"(?P<high>[-−]?\d+(?:\.\d+)?)"
    r"(?!\.?\d)(?![ \t]*[-−]\d)"
    rf"(?:[ \t]*(?P<unit2>{_UNIT}))?"
)

# Ordered: earlier entries win when two keywords sit at the same distance.
_KIND_KEYWORDS: tuple[tuple[IntervalKind, tuple[str, ...]], ...] = (
    (IntervalKind.STOP_LOSS, ("止损", "stop-loss", "stop loss", "stoploss")),
    (IntervalKind.TARGET_PRICE, (
        "目标价", "目标区间", "目标位", "目标", "price target", "target",
    )),
    (IntervalKind.SUPPORT, ("支撑", "support")),
    (IntervalKind.RESISTANCE, ("压力", "阻力", "resistance")),
)

# Characters searched around a match, within the same line.
_LOOKBEHIND_CHARS = 24
_LOOKAHEAD_CHARS = 12

_KEYWORD_ALTERNATION = "|".join(
    re.escape(keyword)
    for _, keywords in _KIND_KEYWORDS
    for keyword in sorted(keywords, key=len, reverse=True)
)

# A unit-less range must sit right after a price keyword: "目标价 120-135",
# "止损位：90-92", "target price 120-135".
_BARE_PREFIX_RE = re.compile(
    rf"(?:{_KEYWORD_ALTERNATION})"
    r"(?:价位|价|位|区间|[ \t]*price)?"
    r"[ \t]*(?:[:：]|为|在)?[ \t]*$",
    re.IGNORECASE,
)

# Multiples, years and durations: "25-30倍PE", "2025-2026年", "3-6个月".
_NON_PRICE_SUFFIX_RE = re.compile(r"[ \t]*(?:倍|年|个月|月|日|天|周|季度)")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class IntervalSequence:
    """Lazy, restartable sequence of intervals in order of appearance."""

    def __init__(self, text: str) -> None:
        self._text = text

    def __iter__(self) -> Iterator[Interval]:
        for match in _RANGE_RE.finditer(self._text):
            interval = _to_interval(self._text, match)
            if interval is not None:
                yield interval


def extract_intervals(text: str) -> IntervalSequence:
    """Return the intervals found in `text`. Empty when nothing matches."""
    return IntervalSequence(text or "")


def classify_kind(text: str, start: int, end: int) -> IntervalKind:
    """
    Classify the range at text[start:end] by the nearest keyword.

    Looks back up to _LOOKBEHIND_CHARS, never across a line break. Only
    when nothing precedes the range does it look ahead up to
    _LOOKAHEAD_CHARS ("120-135元为目标区间").
    """
    line_start = text.rfind("\n", 0, start) + 1
    line_end = text.find("\n", end)
    if line_end == -1:
        line_end = len(text)

    before = text[max(line_start, start - _LOOKBEHIND_CHARS):start].lower()
    after = text[end:min(line_end, end + _LOOKAHEAD_CHARS)].lower()

    # Keywords normally precede the number; a trailing keyword usually
    # belongs to the next range.
    kind = _nearest_keyword(
        before, lambda kw: _distance_before(before, kw),
    )
    if kind is IntervalKind.UNCLASSIFIED:
        kind = _nearest_keyword(after, after.find)
    return kind


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _to_interval(text: str, match: re.Match[str]) -> Interval | None:
    units = (match.group("unit1"), match.group("unit2"))
    has_percent = any(u in ("%", "％") for u in units)
    has_currency = bool(match.group("cur1") or match.group("cur2")) or any(
        u is not None and u not in ("%", "％") for u in units
    )
    if has_percent and has_currency:
        return None
    if _NON_PRICE_SUFFIX_RE.match(text, match.end()):
        return None
    if not (has_percent or has_currency) and not _follows_price_keyword(
        text, match.start(),
    ):
        return None

    kind = classify_kind(text, match.start(), match.end())

    return Interval(
        kind=kind,
        lower=_parse_number(match.group("low")),
        upper=_parse_number(match.group("high")),
        unit=IntervalUnit.PERCENT if has_percent else IntervalUnit.ABSOLUTE,
        span=(match.start(), match.end()),
        source_text=match.group(0),
    )


def _follows_price_keyword(text: str, start: int) -> bool:
    line_start = text.rfind("\n", 0, start) + 1
    return _BARE_PREFIX_RE.search(text, line_start, start) is not None


def _nearest_keyword(window: str, distance_of) -> IntervalKind:
    best_kind = IntervalKind.UNCLASSIFIED
    best_distance: int | None = None
    for kind, keywords in _KIND_KEYWORDS:
        for keyword in keywords:
            if keyword not in window:
                continue
            distance = distance_of(keyword)
            if best_distance is None or distance < best_distance:
                best_kind, best_distance = kind, distance
    return best_kind


def _distance_before(window: str, keyword: str) -> int:
    return len(window) - (window.rfind(keyword) + len(keyword))


def _parse_number(raw: str) -> float:
    return float(raw.replace("−", "-"))
