# =============================================================================
# Unit Tests — Interval Extraction
# =============================================================================

from __future__ import annotations

from quantalpha.services.intervals import (
    IntervalKind,
    IntervalSequence,
    IntervalUnit,
    classify_kind,
    extract_intervals,
)


class TestExtractIntervals:
    """Tests for extract_intervals() — range recognition."""

    def test_yuan_range_with_target_keyword(self):
        text = "目标价 120-135元"
        intervals = list(extract_intervals(text))
        assert len(intervals) == 1
        interval = intervals[0]
        assert interval.kind is IntervalKind.TARGET_PRICE
        assert (interval.lower, interval.upper) == (120.0, 135.0)
        assert interval.unit is IntervalUnit.ABSOLUTE
        assert text[interval.span[0]:interval.span[1]] == interval.source_text
        assert interval.source_text == "120-135元"

    def test_currency_prefix_and_en_dash(self):
        intervals = list(extract_intervals("支撑位 ¥100–120"))
        assert len(intervals) == 1
        assert intervals[0].kind is IntervalKind.SUPPORT
        assert (intervals[0].lower, intervals[0].upper) == (100.0, 120.0)

    def test_unit_on_both_sides_with_tilde(self):
        intervals = list(extract_intervals("压力位：120元~135元"))
        assert intervals[0].kind is IntervalKind.RESISTANCE
        assert intervals[0].upper == 135.0

    def test_chinese_separator(self):
        intervals = list(extract_intervals("止损价 95.5至97元"))
        assert intervals[0].kind is IntervalKind.STOP_LOSS
        assert (intervals[0].lower, intervals[0].upper) == (95.5, 97.0)

    def test_percent_range(self):
        intervals = list(extract_intervals("目标涨幅 5%-8%"))
        assert intervals[0].unit is IntervalUnit.PERCENT
        assert (intervals[0].lower, intervals[0].upper) == (5.0, 8.0)

    def test_negative_percent_lower_bound(self):
        intervals = list(extract_intervals("目标区间 -3%~5%"))
        assert (intervals[0].lower, intervals[0].upper) == (-3.0, 5.0)

    def test_reversed_bounds_kept_as_written(self):
        intervals = list(extract_intervals("目标价 135-120元"))
        assert (intervals[0].lower, intervals[0].upper) == (135.0, 120.0)

    def test_order_of_appearance(self):
        text = "止损价 90-92元；目标价 120-135元；支撑位 95-98元"
        kinds = [i.kind for i in extract_intervals(text)]
        assert kinds == [
            IntervalKind.STOP_LOSS,
            IntervalKind.TARGET_PRICE,
            IntervalKind.SUPPORT,
        ]

    def test_no_ranges_yields_empty(self):
        assert list(extract_intervals("建议持有，等待回调。")) == []

    def test_empty_text(self):
        assert list(extract_intervals("")) == []

    def test_dates_are_not_ranges(self):
        assert list(extract_intervals("数据日期 2026-10-16，目标不变")) == []

    def test_bare_numbers_without_keyword_or_unit_skipped(self):
        assert list(extract_intervals("评分 60-70 之间")) == []

    def test_bare_numbers_with_keyword_kept(self):
        intervals = list(extract_intervals("target price 120-135"))
        assert len(intervals) == 1
        assert intervals[0].kind is IntervalKind.TARGET_PRICE

    def test_bare_numbers_need_keyword_directly_before(self):
        intervals = list(extract_intervals("止损位：90-92"))
        assert [i.kind for i in intervals] == [IntervalKind.STOP_LOSS]
        assert list(extract_intervals("目标价维持不变，观察 90-92 附近")) == []

    def test_pe_multiple_is_not_a_price(self):
        intervals = list(extract_intervals("给予25-30倍PE估值，目标价 102-108元"))
        assert [(i.lower, i.upper) for i in intervals] == [(102.0, 108.0)]
        assert intervals[0].kind is IntervalKind.TARGET_PRICE

    def test_year_range_is_not_a_price(self):
        intervals = list(extract_intervals("2025-2026年目标价维持 102-108元"))
        assert [(i.lower, i.upper) for i in intervals] == [(102.0, 108.0)]

    def test_duration_is_not_a_price(self):
        assert list(extract_intervals("目标价 3-6个月内兑现")) == []

    def test_unclassified_range_with_unit_kept(self):
        intervals = list(extract_intervals("建仓区间 100-105元"))
        assert len(intervals) == 1
        assert intervals[0].kind is IntervalKind.UNCLASSIFIED

    def test_mixed_currency_and_percent_dropped(self):
        assert list(extract_intervals("目标 120元-5%")) == []


class TestIntervalSequence:
    """The extracted sequence is lazy and restartable."""

    def test_restartable(self):
        sequence = extract_intervals("目标价 120-135元，止损价 90-92元")
        assert isinstance(sequence, IntervalSequence)
        first = list(sequence)
        second = list(sequence)
        assert first == second
        assert len(first) == 2


class TestClassifyKind:
    """Tests for nearest-keyword classification."""

    def test_nearest_keyword_wins(self):
        text = "止损价 90-92元，目标价 120-135元"
        start = text.index("120")
        end = text.index("元", start) + 1
        assert classify_kind(text, start, end) is IntervalKind.TARGET_PRICE

    def test_keyword_after_range(self):
        text = "120-135元为目标区间"
        assert classify_kind(text, 0, 8) is IntervalKind.TARGET_PRICE

    def test_keyword_on_previous_line_ignored(self):
        text = "目标价\n120-135元"
        start = text.index("120")
        assert classify_kind(text, start, len(text)) is IntervalKind.UNCLASSIFIED

    def test_english_keywords_case_insensitive(self):
        text = "Stop-Loss 90-92"
        assert classify_kind(text, 10, 15) is IntervalKind.STOP_LOSS
