"""
analysis.py

Статистика поверх подготовленных рядов: тест Дики-Фуллера, ACF/PACF,
сезонная декомпозиция, сезонные профили и факторная регрессия.
Все функции выбрасывают нечисловые значения до вызова statsmodels.
"""

import logging
import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.tsa.stattools import adfuller, acf, pacf
from statsmodels.tsa.seasonal import seasonal_decompose

from .errors import DataError
from .panel import cycle_index, finite_rows


def _finite(series):
    s = series.astype(float)
    return s[np.isfinite(s)]


def stationarity_test(series, regression="c", autolag="AIC"):
    """Расширенный тест Дики-Фуллера. Возвращает словарь с ключевыми числами."""
    s = _finite(series)
    if len(s) < 10:
        raise DataError(f"Too few observations for ADF test: {len(s)}", stage="analysis")
    stat, p_value, used_lag, n_obs, critical, _ = adfuller(s, regression=regression, autolag=autolag)
    return {
        "adf_stat": float(stat),
        "p_value": float(p_value),
        "used_lag": int(used_lag),
        "n_obs": int(n_obs),
        "critical_values": {k: float(v) for k, v in critical.items()},
        "stationary_5pct": bool(p_value < 0.05),
    }


def autocorrelations(series, nlags=20):
    """Таблица ACF и PACF по лагам 0..nlags."""
    s = _finite(series)
    max_lags = len(s) // 2 - 1
    if max_lags < 1:
        raise DataError(f"Too few observations for autocorrelations: {len(s)}", stage="analysis")
    if nlags > max_lags:
        logging.warning(f"nlags={nlags} too large for {len(s)} observations, using {max_lags}")
        nlags = max_lags
    return pd.DataFrame({
        "acf": acf(s, nlags=nlags, fft=True),
        "pacf": pacf(s, nlags=nlags),
    }, index=pd.RangeIndex(nlags + 1, name="lag"))


def decompose(series, period, model="additive"):
    """Сезонная декомпозиция: observed, trend, seasonal, resid."""
    s = _finite(series)
    if len(s) < 2 * period:
        raise DataError(
            f"Need at least {2 * period} observations to decompose with period {period}, got {len(s)}",
            stage="analysis",
        )
    result = seasonal_decompose(s, model=model, period=period)
    return pd.DataFrame({
        "observed": result.observed,
        "trend": result.trend,
        "seasonal": result.seasonal,
        "resid": result.resid,
    })


def seasonal_profile(series, cycle_length, shift=0, labels=None):
    """
    Среднее, std и число наблюдений по фазам цикла.
    labels — необязательные имена фаз (например, дни недели).
    """
    s = _finite(series)
    phase = pd.Series(cycle_index(len(s), cycle_length, shift), index=s.index, name="phase")
    profile = s.groupby(phase).agg(["mean", "std", "count"])
    if labels is not None:
        profile.index = [labels[i] for i in profile.index]
        profile.index.name = "phase"
    return profile


def halving_shift(first_date, halving_dates):
    """Сколько полных месяцев прошло от последнего халвинга до first_date."""
    first = pd.Timestamp(first_date)
    past = [pd.Timestamp(d) for d in halving_dates if pd.Timestamp(d) <= first]
    if not past:
        raise DataError(f"No halving on or before {first.date()}", stage="analysis")
    last = max(past)
    return (first.year - last.year) * 12 + (first.month - last.month)


def factor_regression(panel, dependent, regressors):
    """
    МНК с константой: dependent ~ regressors.
    Строки с NaN/Inf в любой из участвующих колонок выбрасываются.
    """
    regressors = list(regressors)
    data = finite_rows(panel, [dependent] + regressors)
    dropped = len(panel) - len(data)
    if dropped:
        logging.info(f"factor_regression: dropped {dropped} non-finite rows")
    if len(data) < len(regressors) + 2:
        raise DataError(
            f"Too few rows ({len(data)}) for regression on {len(regressors)} regressors",
            stage="analysis",
        )
    X = sm.add_constant(data[regressors].astype(float))
    model = sm.OLS(data[dependent].astype(float), X).fit()
    logging.info(f"OLS {dependent} ~ {' + '.join(regressors)}: n={int(model.nobs)}, R2={model.rsquared:.3f}")
    return model
