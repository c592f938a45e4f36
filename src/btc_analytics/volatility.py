"""
volatility.py

Волатильность внутри периода: std аннуализированных дневных доходностей
за неделю / месяц.

Агрегация идёт по периодам с меткой конца (конец месяца, воскресенье),
затем дата переносится на начало периода, как у баров из resampling:
сдвиг вперёд до ближайшей границы следующего периода минус один период.
Это правило воспроизводится буквально, иначе панель не сойдётся по датам.
"""

import pandas as pd

from .errors import ConfigError, DataError

END_LABEL_RULES = {
    "weekly": "W-SUN",
    "monthly": "ME",
}


def shift_to_period_start(index, period):
    """Метка конца периода -> метка начала того же периода."""
    if period == "monthly":
        return index + pd.offsets.MonthBegin(1) - pd.DateOffset(months=1)
    if period == "weekly":
        return index + pd.offsets.Week(weekday=0) - pd.Timedelta(weeks=1)
    raise ConfigError(f"Unknown volatility period '{period}', expected one of {list(END_LABEL_RULES)}")


def period_volatility(daily_returns, period, column="annualized_return", name="volatility"):
    """
    daily_returns — результат returns.build_returns для дневного ряда.
    Периоды, где меньше двух наблюдений, дают NaN; их нужно
    отфильтровать до регрессии.
    """
    if period not in END_LABEL_RULES:
        raise ConfigError(f"Unknown volatility period '{period}', expected one of {list(END_LABEL_RULES)}")
    if column not in daily_returns.columns:
        raise DataError(f"No '{column}' column in daily returns", stage="volatility")
    if daily_returns.empty:
        raise DataError("Cannot compute volatility of an empty series", stage="volatility")

    vol = daily_returns[column].resample(END_LABEL_RULES[period]).std(ddof=1)
    vol.index = shift_to_period_start(vol.index, period)
    vol.index.name = "date"
    return vol.rename(name)
