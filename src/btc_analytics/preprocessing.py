"""
preprocessing.py

Предобработка дневных рядов:
- проверка инвариантов (уникальные возрастающие даты, price > 0)
- восстановление пропущенной капитализации (market_cap)

Восстановление — локальная линейная интерполяция "числа монет":
для соседних дней считается market_cap / price, берётся среднее,
и капитализация в дыре = среднее число монет * цена в этот день.
Это эвристика, а не статистическая модель: она рассчитана на одиночные
пропуски. Два пропуска подряд или пропуск на краю ряда -> DataError.
"""

import logging
import numpy as np
import pandas as pd

from .errors import DataError

OBSERVATION_COLUMNS = ["price", "total_volume", "market_cap"]


def safe_to_numeric(series):
    """Безопасно конвертирует в числа, заменяет некорректные на NaN."""
    return pd.to_numeric(series, errors="coerce")


def validate_observations(df, asset=None, price_col="price"):
    """
    Проверяет дневной ряд и возвращает копию с числовыми колонками.
    Даты должны быть уникальными и строго возрастающими, цена > 0.
    """
    if df is None or df.empty:
        raise DataError("Empty observation series", stage="cleaning", asset=asset)
    if not isinstance(df.index, pd.DatetimeIndex):
        raise DataError("Observation series must be indexed by date", stage="cleaning", asset=asset)
    if price_col not in df.columns:
        raise DataError(f"No '{price_col}' column", stage="cleaning", asset=asset)

    dups = df.index[df.index.duplicated()]
    if len(dups):
        raise DataError(f"{len(dups)} duplicate dates", stage="cleaning", asset=asset, date=dups[0].date())
    if not df.index.is_monotonic_increasing:
        raise DataError("Dates are not increasing", stage="cleaning", asset=asset)

    df = df.copy()
    for c in df.columns:
        df[c] = safe_to_numeric(df[c])

    bad = df[~(df[price_col] > 0)]
    if not bad.empty:
        raise DataError(
            f"Non-positive or missing price ({bad[price_col].iloc[0]})",
            stage="cleaning", asset=asset, date=bad.index[0].date(),
        )
    df.index.name = "date"
    return df


def impute_market_cap(df, asset=None, column="market_cap", price_col="price"):
    """
    Заполняет одиночные пропуски в column через среднее число монет
    у соседних дней. Возвращает новый DataFrame, исходный не меняется.
    """
    df = df.copy()
    values = df[column].to_numpy(dtype=float, copy=True)
    prices = df[price_col].to_numpy(dtype=float)
    missing = np.flatnonzero(np.isnan(values))
    if len(missing) == 0:
        return df

    n = len(values)
    for i in missing:
        date = df.index[i].date()
        if i == 0 or i == n - 1:
            raise DataError(
                f"Cannot impute {column} at series boundary",
                stage="cleaning", asset=asset, date=date,
            )
        if np.isnan(values[i - 1]) or np.isnan(values[i + 1]):
            # несколько пропусков подряд эвристикой не покрываются
            raise DataError(
                f"Cannot impute {column}: adjacent value is also missing",
                stage="cleaning", asset=asset, date=date,
            )

    filled = values.copy()
    for i in missing:
        count_before = values[i - 1] / prices[i - 1]
        count_after = values[i + 1] / prices[i + 1]
        filled[i] = (count_before + count_after) / 2 * prices[i]
        logging.info(f"Imputed {column} for {asset or 'series'} on {df.index[i].date()}: {filled[i]:.2f}")

    df[column] = filled
    return df


def clean_observations(df, asset=None):
    """Проверка инвариантов + восстановление market_cap (если колонка есть)."""
    df = validate_observations(df, asset=asset)
    if "market_cap" in df.columns:
        n_missing = int(df["market_cap"].isna().sum())
        if n_missing:
            logging.warning(f"{asset or 'series'}: {n_missing} missing market_cap values, imputing")
        df = impute_market_cap(df, asset=asset)
    return df
