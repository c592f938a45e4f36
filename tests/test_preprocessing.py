"""
Unit tests for observation validation and market cap imputation.
"""

import numpy as np
import pandas as pd
import pytest

from btc_analytics.errors import DataError
from btc_analytics.preprocessing import clean_observations, impute_market_cap, validate_observations

from conftest import make_daily


class TestImputeMarketCap:
    """Tests for coin-count interpolation of missing market caps."""

    def test_single_gap_uses_midpoint_coin_count(self):
        """Imputed coin count is the midpoint of neighbor coin counts."""
        df = make_daily([100.0, 200.0, 400.0], market_caps=[1000.0, np.nan, 4400.0])

        out = impute_market_cap(df, asset="bitcoin")

        assert out["market_cap"].isna().sum() == 0
        assert out["market_cap"].iloc[1] == pytest.approx(2100.0)
        coin_count = out["market_cap"].iloc[1] / out["price"].iloc[1]
        assert coin_count == pytest.approx((10.0 + 11.0) / 2)

    def test_input_not_mutated(self):
        """Imputation returns a new frame."""
        df = make_daily([100.0, 200.0, 400.0], market_caps=[1000.0, np.nan, 4400.0])

        impute_market_cap(df)

        assert np.isnan(df["market_cap"].iloc[1])

    def test_several_isolated_gaps(self):
        """Each isolated gap is repaired from its own neighbors."""
        df = make_daily([1, 2, 3, 4, 5], market_caps=[10, np.nan, 30, np.nan, 50])

        out = impute_market_cap(df)

        assert out["market_cap"].tolist() == pytest.approx([10, 20, 30, 40, 50])

    def test_no_gaps_is_noop(self):
        df = make_daily([1.0, 2.0, 3.0])
        pd.testing.assert_frame_equal(impute_market_cap(df), df)

    def test_gap_on_first_row_raises(self):
        """A boundary gap has no predecessor: DataError, not a one-sided average."""
        df = make_daily([100.0, 200.0, 400.0], market_caps=[np.nan, 2000.0, 4000.0])

        with pytest.raises(DataError) as exc:
            impute_market_cap(df, asset="bitcoin")

        assert exc.value.asset == "bitcoin"
        assert str(exc.value.date) == "2020-01-01"

    def test_gap_on_last_row_raises(self):
        df = make_daily([100.0, 200.0, 400.0], market_caps=[1000.0, 2000.0, np.nan])

        with pytest.raises(DataError):
            impute_market_cap(df)

    def test_consecutive_gaps_raise(self):
        """Two missing days in a row are not interpolated."""
        df = make_daily([1, 2, 3, 4], market_caps=[10, np.nan, np.nan, 40])

        with pytest.raises(DataError, match="adjacent"):
            impute_market_cap(df)


class TestValidateObservations:
    """Tests for series invariants."""

    def test_non_positive_price_raises(self):
        df = make_daily([1.0, 0.0, 3.0])

        with pytest.raises(DataError) as exc:
            validate_observations(df, asset="ethereum")

        assert str(exc.value.date) == "2020-01-02"

    def test_duplicate_dates_raise(self):
        df = make_daily([1.0, 2.0, 3.0])
        df.index = pd.DatetimeIndex(["2020-01-01", "2020-01-01", "2020-01-02"], name="date")

        with pytest.raises(DataError, match="duplicate"):
            validate_observations(df)

    def test_unsorted_dates_raise(self):
        df = make_daily([1.0, 2.0, 3.0]).iloc[::-1]

        with pytest.raises(DataError, match="increasing"):
            validate_observations(df)

    def test_empty_raises(self):
        with pytest.raises(DataError):
            validate_observations(pd.DataFrame())

    def test_clean_observations_imputes(self):
        df = make_daily([100.0, 200.0, 400.0], market_caps=[1000.0, np.nan, 4400.0])

        out = clean_observations(df, asset="bitcoin")

        assert out["market_cap"].notna().all()
        assert out.index.name == "date"
