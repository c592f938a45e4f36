"""
panel.py

Сборка выровненной панели: несколько рядов доходностей, таблица факторов,
производные ряды (рост хешрейта, волатильность) на общей оси дат.
"""

import numpy as np
import pandas as pd

from .errors import ConfigError, DataError

JOIN_MODES = ("inner", "outer")


def prepare_factor_table(factors, start_date, scale=12):
    """Оставляет строки начиная с start_date и переводит значения в годовые (x scale)."""
    start = pd.Timestamp(start_date)
    kept = factors.loc[factors.index >= start]
    if kept.empty:
        raise DataError(f"No factor rows at or after {start.date()}", stage="alignment", asset="factors")
    return kept * scale


def align_panel(columns, how="inner", drop_first=0, drop_last=0):
    """
    columns — пары (имя, Series) или dict {имя: Series}; порядок колонок
    в результате совпадает с порядком на входе.

    how="inner" оставляет только общие даты, how="outer" — объединение дат
    с NaN там, где ряда нет. drop_first / drop_last отрезают самые старые /
    самые свежие строки уже после объединения.
    """
    if how not in JOIN_MODES:
        raise ConfigError(f"Unknown join mode '{how}', expected one of {JOIN_MODES}")
    if drop_first < 0 or drop_last < 0:
        raise ConfigError(f"Row drops must be non-negative, got {drop_first}/{drop_last}")

    pairs = list(columns.items()) if isinstance(columns, dict) else list(columns)
    if not pairs:
        raise ConfigError("Nothing to align")
    names = [name for name, _ in pairs]
    dup_names = sorted({n for n in names if names.count(n) > 1})
    if dup_names:
        raise ConfigError(f"Duplicate panel column names: {dup_names}")

    series = []
    for name, s in pairs:
        if isinstance(s, pd.DataFrame):
            raise ConfigError(f"Column '{name}' must be a Series, got a DataFrame")
        if s.index.has_duplicates:
            raise DataError(f"Series '{name}' has duplicate dates", stage="alignment", asset=name)
        series.append(s.rename(name))

    panel = pd.concat(series, axis=1, join=how).sort_index()
    panel.index.name = "date"
    panel = panel[names]
    # если срезать нужно больше строк, чем есть, панель становится пустой
    stop = max(len(panel) - drop_last, 0)
    return panel.iloc[drop_first:stop]


def add_difference(panel, name, left, right):
    """Новая колонка name = left - right (например, избыточная доходность = актив - rf)."""
    for c in (left, right):
        if c not in panel.columns:
            raise ConfigError(f"Unknown panel column '{c}'")
    if name in panel.columns:
        raise ConfigError(f"Panel already has a column '{name}'")
    out = panel.copy()
    out[name] = out[left] - out[right]
    return out


def finite_rows(panel, columns=None):
    """Только строки, где все выбранные значения конечны (без NaN/Inf)."""
    columns = list(columns) if columns is not None else list(panel.columns)
    values = panel[columns].astype(float)
    return panel.loc[np.isfinite(values).all(axis=1)]


def cycle_index(n, cycle_length, shift=0):
    """
    Номер фазы цикла для каждого из n наблюдений:
    (номер наблюдения + shift) mod cycle_length.
    День недели: cycle_length=7, shift=weekday первой даты;
    месяц года: 12 и month-1; цикл халвинга: 48 месяцев.
    """
    if cycle_length <= 0:
        raise ConfigError(f"cycle_length must be positive, got {cycle_length}")
    if n < 0:
        raise ConfigError(f"Number of observations must be non-negative, got {n}")
    return (np.arange(n) + shift) % cycle_length
