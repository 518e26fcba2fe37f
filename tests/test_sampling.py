"""
Unit tests for chart downsampling.
"""

from datetime import date

import pandas as pd
import pytest

from core.utils import iter_days, round_cents
from engine.sampling import SERIES_COLUMNS, downsample_series, keeps_future_month


def _daily(start, end, movements=None):
    days = list(iter_days(start, end))
    movements = movements or {}
    return pd.DataFrame({
        "date": days,
        "patrimony": [float(i) for i in range(len(days))],
        "principal": [0.0] * len(days),
        "movement": [movements.get(d, 0.0) for d in days],
    })


def _dates(series):
    return [d.date() for d in series["date"]]


class TestKeepsFutureMonth:

    @pytest.mark.parametrize("timeframe", ["1Y", "5Y"])
    def test_monthly(self, timeframe):
        assert all(keeps_future_month(m, timeframe) for m in range(1, 13))

    def test_quarterly(self):
        assert [m for m in range(1, 13) if keeps_future_month(m, "10Y")] == [1, 4, 7, 10]

    def test_yearly(self):
        assert [m for m in range(1, 13) if keeps_future_month(m, "20Y")] == [1]


class TestDownsample:
    """Which points are plotted and what they carry."""

    def test_quarterly_keeps_final_day(self, today):
        daily = _daily(date(2024, 5, 20), date(2025, 6, 1))

        out = downsample_series(daily, today=today, timeframe="10Y")

        assert _dates(out) == [
            date(2024, 6, 15), date(2024, 7, 1), date(2024, 10, 1),
            date(2025, 1, 1), date(2025, 4, 1), date(2025, 6, 1),
        ]

    def test_yearly_keeps_final_day(self, today):
        daily = _daily(date(2024, 5, 20), date(2025, 6, 1))

        out = downsample_series(daily, today=today, timeframe="20Y")

        assert _dates(out) == [date(2024, 6, 15), date(2025, 1, 1), date(2025, 6, 1)]

    def test_past_months_always_kept(self, today):
        daily = _daily(date(2024, 2, 1), date(2024, 8, 1))

        out = downsample_series(daily, today=today, timeframe="20Y")

        assert _dates(out) == [
            date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1), date(2024, 5, 1),
            date(2024, 6, 15), date(2024, 8, 1),
        ]

    def test_today_replaces_first_of_month(self, today):
        daily = _daily(date(2024, 6, 1), date(2024, 7, 1))

        out = downsample_series(daily, today=today, timeframe="1Y")

        assert _dates(out) == [date(2024, 6, 15), date(2024, 7, 1)]
        assert out["is_today"].tolist() == [True, False]

    def test_movement_accumulates_within_month(self, today):
        daily = _daily(
            date(2024, 6, 1),
            date(2024, 8, 1),
            movements={date(2024, 6, 3): 100.0, date(2024, 6, 15): 50.0, date(2024, 7, 20): 5.0},
        )

        out = downsample_series(daily, today=today, timeframe="1Y")
        movement = dict(zip(_dates(out), out["movement"]))

        assert movement == {date(2024, 6, 15): 150.0, date(2024, 7, 1): 0.0, date(2024, 8, 1): 0.0}

    def test_values_come_from_the_plotted_day(self, today):
        daily = _daily(date(2024, 6, 10), date(2024, 7, 1))

        out = downsample_series(daily, today=today, timeframe="1Y")

        # patrimony is the day index in the fixture
        assert out["patrimony"].tolist() == [5.0, 21.0]

    def test_columns_and_types(self, today):
        out = downsample_series(_daily(date(2024, 6, 1), date(2024, 7, 1)), today=today, timeframe="5Y")

        assert tuple(out.columns) == SERIES_COLUMNS
        assert pd.api.types.is_datetime64_any_dtype(out["date"])
        assert out["is_today"].dtype == bool

    def test_empty_frame(self, today):
        empty = pd.DataFrame(columns=["date", "patrimony", "principal", "movement"])
        out = downsample_series(empty, today=today, timeframe="1Y")
        assert out.empty
        assert tuple(out.columns) == SERIES_COLUMNS

    def test_missing_columns(self, today):
        with pytest.raises(ValueError, match="Missing required columns"):
            downsample_series(pd.DataFrame({"date": []}), today=today, timeframe="1Y")


class TestRoundCents:

    def test_half_away_from_zero(self):
        assert round_cents(0.125) == 0.13
        assert round_cents(-0.125) == -0.13

    def test_vectorized(self):
        assert round_cents([1.004, 2.0]).tolist() == [1.0, 2.0]
