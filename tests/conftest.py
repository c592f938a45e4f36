"""Shared fixtures: synthetic daily observation frames."""

import numpy as np
import pandas as pd
import pytest


def make_daily(prices, start="2020-01-01", market_caps=None, volumes=None):
    index = pd.date_range(start, periods=len(prices), freq="D", name="date")
    prices = np.asarray(prices, dtype=float)
    if market_caps is None:
        market_caps = prices * 1_000.0
    if volumes is None:
        volumes = np.full(len(prices), 50.0)
    return pd.DataFrame(
        {"price": prices, "total_volume": np.asarray(volumes, dtype=float),
         "market_cap": np.asarray(market_caps, dtype=float)},
        index=index,
    )


def random_walk_daily(start, end, seed=0, base=1000.0, coins=18e6):
    index = pd.date_range(start, end, freq="D", name="date")
    rng = np.random.default_rng(seed)
    prices = base * np.exp(np.cumsum(rng.normal(0, 0.03, len(index))))
    return pd.DataFrame(
        {"price": prices,
         "total_volume": rng.uniform(1e8, 5e8, len(index)),
         "market_cap": prices * coins},
        index=index,
    )


@pytest.fixture
def daily_q1():
    """2020-01-01 .. 2020-03-31, prices 1..91."""
    return make_daily(np.arange(1, 92))
