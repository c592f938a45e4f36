"""
Unit tests for downstream statistics wrappers and summary metrics.
"""

import numpy as np
import pandas as pd
import pytest

from btc_analytics import analysis
from btc_analytics.errors import DataError
from btc_analytics.summary_metrics import max_drawdown_from_logreturns, summary_metrics


def daily_series(values, start="2020-01-01"):
    return pd.Series(values, index=pd.date_range(start, periods=len(values), freq="D", name="date"))


class TestStationarity:

    def test_white_noise_is_stationary(self):
        s = daily_series(np.random.default_rng(0).normal(size=500))

        result = analysis.stationarity_test(s)

        assert result["p_value"] < 0.05
        assert result["stationary_5pct"] is True
        assert set(result["critical_values"]) == {"1%", "5%", "10%"}

    def test_non_finite_values_filtered(self):
        values = np.random.default_rng(1).normal(size=300)
        values[[5, 50]] = [np.nan, np.inf]

        result = analysis.stationarity_test(daily_series(values))

        assert result["n_obs"] + result["used_lag"] + 1 == 298

    def test_too_short(self):
        with pytest.raises(DataError):
            analysis.stationarity_test(daily_series([1.0, 2.0, 3.0]))


class TestAutocorrelations:

    def test_table_shape(self):
        s = daily_series(np.random.default_rng(2).normal(size=200))

        table = analysis.autocorrelations(s, nlags=10)

        assert list(table.columns) == ["acf", "pacf"]
        assert len(table) == 11
        assert table.loc[0, "acf"] == pytest.approx(1.0)

    def test_nlags_capped(self):
        s = daily_series(np.random.default_rng(3).normal(size=30))

        table = analysis.autocorrelations(s, nlags=40)

        assert len(table) == 15


class TestDecompose:

    def test_weekly_seasonality_recovered(self):
        pattern = np.tile([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0], 10)
        s = daily_series(pattern + np.linspace(0, 1, len(pattern)))

        parts = analysis.decompose(s, period=7)

        assert list(parts.columns) == ["observed", "trend", "seasonal", "resid"]
        assert parts["seasonal"].iloc[6] - parts["seasonal"].iloc[0] == pytest.approx(6.0, abs=0.2)

    def test_too_short(self):
        with pytest.raises(DataError):
            analysis.decompose(daily_series(np.arange(10.0)), period=7)


class TestSeasonalProfile:

    def test_day_of_week_profile(self):
        # 2020-01-01 — среда (weekday=2)
        s = daily_series(np.tile([2.0, 3.0, 4.0, 5.0, 6.0, 0.0, 1.0], 4))
        labels = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

        profile = analysis.seasonal_profile(s, 7, shift=2, labels=labels)

        assert profile.loc["Mon", "mean"] == 0.0
        assert profile.loc["Wed", "mean"] == 2.0
        assert (profile["count"] == 4).all()

    def test_halving_shift(self):
        halvings = ["2012-11-28", "2016-07-09", "2020-05-11"]

        assert analysis.halving_shift("2020-01-01", halvings) == 42
        assert analysis.halving_shift("2020-05-11", halvings) == 0

    def test_halving_shift_before_first_halving(self):
        with pytest.raises(DataError):
            analysis.halving_shift("2011-01-01", ["2012-11-28"])


class TestFactorRegression:

    def make_panel(self, n=60):
        rng = np.random.default_rng(4)
        x1 = rng.normal(size=n)
        x2 = rng.normal(size=n)
        y = 1.0 + 2.0 * x1 - 0.5 * x2 + rng.normal(scale=1e-3, size=n)
        idx = pd.date_range("2015-01-01", periods=n, freq="MS", name="date")
        return pd.DataFrame({"y": y, "x1": x1, "x2": x2}, index=idx)

    def test_coefficients(self):
        model = analysis.factor_regression(self.make_panel(), "y", ["x1", "x2"])

        assert model.params["const"] == pytest.approx(1.0, abs=0.01)
        assert model.params["x1"] == pytest.approx(2.0, abs=0.01)
        assert model.params["x2"] == pytest.approx(-0.5, abs=0.01)

    def test_non_finite_rows_dropped(self):
        panel = self.make_panel()
        panel.iloc[3, 1] = np.nan
        panel.iloc[7, 0] = np.inf

        model = analysis.factor_regression(panel, "y", ["x1", "x2"])

        assert int(model.nobs) == 58

    def test_too_few_rows(self):
        with pytest.raises(DataError):
            analysis.factor_regression(self.make_panel(3), "y", ["x1", "x2"])


class TestSummaryMetrics:

    def test_max_drawdown(self):
        logr = pd.Series(np.log([1.0, 0.5, 2.0]))

        assert max_drawdown_from_logreturns(logr) == pytest.approx(-0.5)

    def test_table(self):
        records = {
            "calm": pd.DataFrame({"log_return": [0.01, 0.011, 0.009, 0.01]}),
            "wild": pd.DataFrame({"log_return": [0.2, -0.3, 0.25, -0.1]}),
        }

        table = summary_metrics(records, "monthly")

        assert table["series"].tolist() == ["wild", "calm"]
        assert table.loc[1, "ann_return"] == pytest.approx(np.exp(0.01 * 12) - 1)
