"""
load_to_db.py

Выгрузка выровненной панели в БД в "длинном" виде:
panel_values(panel, date, series, value). Повторная выгрузка той же
панели обновляет значения (ON CONFLICT DO UPDATE).
"""

import logging
import numpy as np
import pandas as pd
from sqlalchemy import text

from .db.database import Base, get_engine
from .db import models  # noqa: F401  (регистрирует таблицы в Base.metadata)

UPSERT_SQL = text(
    """
    INSERT INTO panel_values (panel, date, series, value)
    VALUES (:panel, :date, :series, :value)
    ON CONFLICT (panel, date, series) DO UPDATE SET
        value = EXCLUDED.value
    """
)


def create_tables(engine):
    Base.metadata.create_all(engine)


def panel_to_rows(panel, name):
    rows = []
    for date, values in panel.iterrows():
        for series, value in values.items():
            value = float(value)
            rows.append({
                "panel": name,
                "date": pd.Timestamp(date).date().isoformat(),
                "series": str(series),
                "value": value if np.isfinite(value) else None,
            })
    return rows


def save_panel(panel, name, engine=None):
    engine = engine or get_engine()
    create_tables(engine)
    rows = panel_to_rows(panel, name)
    if not rows:
        logging.warning(f"Panel {name} is empty, nothing to save")
        return 0
    with engine.begin() as conn:
        conn.execute(UPSERT_SQL, rows)
    logging.info(f"Saved panel {name}: {len(panel)} rows x {len(panel.columns)} columns")
    return len(rows)


def read_panel(name, engine=None):
    """Читает панель обратно в широкий DataFrame (date x series)."""
    engine = engine or get_engine()
    with engine.connect() as conn:
        long = pd.read_sql(
            text("SELECT date, series, value FROM panel_values WHERE panel = :panel ORDER BY id"),
            conn,
            params={"panel": name},
        )
    if long.empty:
        return pd.DataFrame()
    long["date"] = pd.to_datetime(long["date"])
    order = list(dict.fromkeys(long["series"]))
    wide = long.pivot(index="date", columns="series", values="value")[order].sort_index()
    wide.columns.name = None
    wide.index.name = "date"
    return wide.astype(float)
