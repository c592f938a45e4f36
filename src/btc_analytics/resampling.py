"""
resampling.py

Перевод дневного ряда в OHLC-бары по календарным периодам:
- weekly  -> ISO-неделя (понедельник..воскресенье)
- monthly -> календарный месяц

Индекс бара — дата начала периода. Бар строится только из цен внутри
периода. Неполные первый/последний периоды тоже попадают в результат,
к ним стоит относиться с осторожностью.
"""

import pandas as pd

from .errors import ConfigError, DataError

# период pandas, чьё start_time совпадает с началом календарного периода
PERIOD_FREQ = {
    "weekly": "W-SUN",
    "monthly": "M",
}

OHLC_COLUMNS = ["open", "high", "low", "close"]


def period_keys(index, period):
    if period not in PERIOD_FREQ:
        raise ConfigError(f"Unknown resampling period '{period}', expected one of {list(PERIOD_FREQ)}")
    return index.to_period(PERIOD_FREQ[period])


def resample_bars(df, period, price_col="price", volume_col="total_volume",
                  market_cap_col="market_cap", include_volume=True, include_market_cap=True):
    """
    Возвращает DataFrame баров: open, high, low, close
    (+ total_volume как сумма, + market_cap на дату закрытия периода).

    На вход принимается либо дневной ряд (колонка price_col),
    либо уже готовые бары (колонки open/high/low/close) — тогда
    повторная агрегация в тот же период ничего не меняет.
    """
    if df is None or df.empty:
        raise DataError(f"Cannot resample an empty series to {period}", stage="resampling")
    if not isinstance(df.index, pd.DatetimeIndex):
        raise DataError("Series must be indexed by date", stage="resampling")

    grouped = df.groupby(period_keys(df.index, period))

    if all(c in df.columns for c in OHLC_COLUMNS):
        bars = pd.DataFrame({
            "open": grouped["open"].first(),
            "high": grouped["high"].max(),
            "low": grouped["low"].min(),
            "close": grouped["close"].last(),
        })
    elif price_col in df.columns:
        prices = grouped[price_col]
        bars = pd.DataFrame({
            "open": prices.first(),
            "high": prices.max(),
            "low": prices.min(),
            "close": prices.last(),
        })
    else:
        raise DataError(f"No '{price_col}' or OHLC columns to resample", stage="resampling")

    if include_volume and volume_col in df.columns:
        bars[volume_col] = grouped[volume_col].sum(min_count=1)
    if include_market_cap and market_cap_col in df.columns:
        bars[market_cap_col] = grouped[market_cap_col].last()

    bars.index = bars.index.to_timestamp(how="start")
    bars.index.name = "date"
    return bars.dropna(subset=["close"])

