"""
data_quality.py

Проверки качества входных рядов: число строк, диапазон дат, дубли дат,
доля пропусков по колонкам, частота. Отчёт логируется пайплайном
для каждого загруженного ряда.
"""

import logging
import numpy as np
import pandas as pd

MISSING_THRESHOLD = 0.05
SHORT_SERIES_DAYS = 30


def infer_freq_from_index(idx):
    try:
        return pd.infer_freq(idx)
    except (TypeError, ValueError):
        return None


def series_quality(df, name):
    """Одна строка отчёта для одного ряда."""
    n_rows = len(df)
    if n_rows == 0:
        return {
            "series": name, "rows": 0, "start_date": None, "end_date": None,
            "dup_dates": 0, "max_null_rate": np.nan, "inferred_freq": None,
            "notes": "empty",
        }

    idx = df.index
    n_unique_dates = idx.nunique()
    dup_count = n_rows - n_unique_dates
    start = idx.min()
    end = idx.max()

    null_rates = {f"{c}_null_rate": float(df[c].isna().mean()) for c in df.columns}
    max_null = max(null_rates.values()) if null_rates else 0.0
    freq = infer_freq_from_index(idx) if n_rows >= 3 and dup_count == 0 else None

    notes = []
    if dup_count > 0:
        notes.append(f"dup_index:{dup_count}")
    if max_null > MISSING_THRESHOLD:
        notes.append("many_nulls")
    if (end - start).days < SHORT_SERIES_DAYS:
        notes.append("short_series")

    row = {
        "series": name,
        "rows": n_rows,
        "start_date": start.date().isoformat(),
        "end_date": end.date().isoformat(),
        "dup_dates": int(dup_count),
        "max_null_rate": max_null,
        "inferred_freq": freq,
        "notes": ";".join(notes),
    }
    row.update(null_rates)
    return row


def quality_report(frames):
    """frames — {имя: DataFrame}. Возвращает таблицу отчёта и логирует проблемы."""
    rows = [series_quality(df, name) for name, df in frames.items()]
    report = pd.DataFrame(rows)
    for r in rows:
        if r["notes"]:
            logging.warning(f"Data quality [{r['series']}]: {r['notes']}; rows={r['rows']}, "
                            f"{r['start_date']} -> {r['end_date']}")
        else:
            logging.info(f"Data quality [{r['series']}]: ok, rows={r['rows']}, "
                         f"{r['start_date']} -> {r['end_date']}")
    return report
