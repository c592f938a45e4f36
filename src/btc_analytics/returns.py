"""
returns.py

Лог-доходности и их аннуализация.

log_return        = ln(v_t) - ln(v_{t-1})
annualized_return = log_return * 100 * periods_per_year

Первый период записи не получает (его не с чем сравнить): длина
результата всегда len(input) - 1. Нулевые и отрицательные значения
в лог-домене не допускаются (объём или хешрейт могут быть нулевыми).
"""

import numpy as np
import pandas as pd

from .config import PERIODS_PER_YEAR
from .errors import ConfigError, DataError


def periods_per_year(periodicity):
    """'daily' | 'weekly' | 'monthly' или уже готовое число периодов в году."""
    if isinstance(periodicity, (int, float)) and not isinstance(periodicity, bool):
        if periodicity <= 0:
            raise ConfigError(f"periods_per_year must be positive, got {periodicity}")
        return periodicity
    try:
        return PERIODS_PER_YEAR[periodicity]
    except (KeyError, TypeError):
        raise ConfigError(f"Unknown periodicity {periodicity!r}, expected one of {list(PERIODS_PER_YEAR)}")


def annualize(log_return, periodicity):
    return log_return * 100 * periods_per_year(periodicity)


def build_returns(df, periodicity, column="close", asset=None):
    """
    Возвращает DataFrame с колонками log_return, annualized_return,
    индексированный датой более позднего наблюдения.
    """
    if column not in df.columns:
        raise DataError(f"No '{column}' column to difference", stage="returns", asset=asset)
    ppy = periods_per_year(periodicity)
    values = df[column].astype(float)

    missing = values[values.isna()]
    if not missing.empty:
        raise DataError(
            f"Missing {column} values in log domain",
            stage="returns", asset=asset, date=missing.index[0].date(),
        )
    bad = values[values <= 0]
    if not bad.empty:
        raise DataError(
            f"Non-positive {column} ({bad.iloc[0]}) in log domain",
            stage="returns", asset=asset, date=bad.index[0].date(),
        )

    log_return = np.log(values).diff().iloc[1:]
    out = pd.DataFrame({
        "log_return": log_return,
        "annualized_return": annualize(log_return, ppy),
    })
    out.index.name = "date"
    return out


def build_return_set(df, periodicity, columns=None, asset=None):
    """
    Доходности сразу по нескольким колонкам (цена, капитализация, объём).
    Возвращает {column: DataFrame}; отсутствующие колонки пропускаются.
    """
    if columns is None:
        columns = ["close", "market_cap", "total_volume"] if "close" in df.columns \
            else ["price", "market_cap", "total_volume"]
    return {c: build_returns(df, periodicity, column=c, asset=asset) for c in columns if c in df.columns}
