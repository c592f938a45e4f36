"""
Unit tests for series quality reporting.
"""

import numpy as np
import pandas as pd

from btc_analytics.data_quality import quality_report, series_quality

from conftest import make_daily


class TestSeriesQuality:

    def test_clean_daily_series(self, daily_q1):
        row = series_quality(daily_q1, "bitcoin")

        assert row["rows"] == 91
        assert row["start_date"] == "2020-01-01"
        assert row["end_date"] == "2020-03-31"
        assert row["inferred_freq"] == "D"
        assert row["notes"] == ""

    def test_nulls_and_short_series_flagged(self):
        df = make_daily([1.0, 2.0, 3.0, 4.0], market_caps=[1.0, np.nan, 3.0, 4.0])

        row = series_quality(df, "short")

        assert row["market_cap_null_rate"] == 0.25
        assert "many_nulls" in row["notes"]
        assert "short_series" in row["notes"]

    def test_empty(self):
        assert series_quality(pd.DataFrame(), "none")["notes"] == "empty"


class TestQualityReport:

    def test_one_row_per_series(self, daily_q1):
        report = quality_report({"bitcoin": daily_q1, "ethereum": daily_q1.iloc[:10]})

        assert report["series"].tolist() == ["bitcoin", "ethereum"]
