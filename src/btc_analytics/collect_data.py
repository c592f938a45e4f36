"""
collect_data.py

Собирает данные из трёх внешних источников:
- дневные цена / капитализация / объём актива через CoinGecko API (no API key)
- месячные факторы Фамы-Френча из архива Kenneth French Data Library
- хешрейт сети биткоина через mempool.space API

Все функции возвращают pandas DataFrame с индексом "date" (UTC, без tz).
Ошибки сети и некорректные ответы поднимаются как FetchError.
"""

import io
import time
import logging
import zipfile
from datetime import datetime, timezone

import requests
import pandas as pd

from .config import CONFIG, COINGECKO_API
from .errors import FetchError, DataError

MARKET_CHART_FIELDS = {
    "prices": "price",
    "market_caps": "market_cap",
    "total_volumes": "total_volume",
}


def to_unix(ts: str) -> int:
    """Преобразовать YYYY-MM-DD в unix (seconds)."""
    dt = datetime.fromisoformat(ts)
    return int(dt.replace(tzinfo=timezone.utc).timestamp())


def http_get(url, params=None, http_cfg=None, source="http"):
    """
    GET с таймаутом и ограниченным числом повторов.
    После исчерпания попыток поднимает FetchError.
    """
    http_cfg = http_cfg or CONFIG["http"]
    retries = max(int(http_cfg.get("retries", 1)), 1)
    timeout = http_cfg.get("timeout", 60)
    sleep = float(http_cfg.get("retry_sleep", 0))

    last_error = None
    for attempt in range(1, retries + 1):
        try:
            r = requests.get(url, params=params, timeout=timeout)
        except requests.RequestException as e:
            last_error = f"{type(e).__name__}: {e}"
        else:
            if r.status_code == 200:
                return r
            last_error = f"HTTP {r.status_code}: {r.text[:200]}"
        logging.warning(f"[{source}] attempt {attempt}/{retries} failed: {last_error}")
        if attempt < retries and sleep > 0:
            time.sleep(sleep)

    raise FetchError(f"{url} unreachable after {retries} attempts: {last_error}", stage="ingestion")


def market_chart_to_frame(payload: dict) -> pd.DataFrame:
    """
    Превращает ответ market_chart/range в дневной DataFrame
    с колонками price, market_cap, total_volume.
    Несколько точек за одни сутки схлопываются в первую (снимок на 00:00 UTC):
    последняя точка ответа за сегодня внутридневная и в ряд не попадает,
    если за этот день уже есть полночный снимок.
    Нулевая капитализация считается пропуском.
    """
    if not isinstance(payload, dict) or "prices" not in payload:
        raise FetchError("Malformed market chart payload: no 'prices' key", stage="ingestion")

    if not payload["prices"]:
        raise FetchError("No price data returned", stage="ingestion")

    columns = []
    for key, name in MARKET_CHART_FIELDS.items():
        points = payload.get(key) or []
        if not points:
            columns.append(pd.Series(dtype=float, name=name, index=pd.DatetimeIndex([], name="date")))
            continue
        try:
            part = pd.DataFrame(points, columns=["ts_ms", name])
        except ValueError as e:
            raise FetchError(f"Malformed '{key}' array: {e}", stage="ingestion")
        part["date"] = pd.to_datetime(part["ts_ms"], unit="ms", utc=True).dt.tz_localize(None).dt.normalize()
        part = part.drop(columns="ts_ms").drop_duplicates(subset="date", keep="first")
        columns.append(part.set_index("date")[name])

    df = pd.concat(columns, axis=1).sort_index()
    df = df.apply(pd.to_numeric, errors="coerce")
    df["market_cap"] = df["market_cap"].mask(df["market_cap"] <= 0)
    df = df.dropna(subset=["price"])
    df.index.name = "date"
    return df


def get_coin_market_chart_range(coin_id: str, vs_currency: str, start_date: str, end_date: str,
                                http_cfg=None) -> pd.DataFrame:
    """
    Возвращает дневной DataFrame: date -> price, market_cap, total_volume.
    Использует /coins/{id}/market_chart/range
    """
    start_unix = to_unix(start_date)
    end_dt = datetime.fromisoformat(end_date)
    end_dt = end_dt.replace(hour=23, minute=59, second=59)
    end_unix = int(end_dt.replace(tzinfo=timezone.utc).timestamp())

    url = f"{COINGECKO_API}/coins/{coin_id}/market_chart/range"
    params = {"vs_currency": vs_currency, "from": start_unix, "to": end_unix}
    logging.info(f"CoinGecko request for {coin_id}: {params}")
    r = http_get(url, params=params, http_cfg=http_cfg, source=coin_id)

    try:
        payload = r.json()
    except ValueError as e:
        raise FetchError(f"CoinGecko returned invalid JSON: {e}", stage="ingestion", asset=coin_id)

    try:
        df = market_chart_to_frame(payload)
    except FetchError as e:
        e.asset = coin_id
        raise
    if df.empty:
        raise FetchError(f"No price data returned for {coin_id}", stage="ingestion", asset=coin_id)
    logging.info(f"Fetched {coin_id}: {len(df)} days, {df.index.min().date()}..{df.index.max().date()}")
    return df


def _normalize_factor_name(name: str) -> str:
    return name.strip().lower().replace("-", "_")


def parse_factor_csv(text: str) -> pd.DataFrame:
    """
    Разбирает CSV из архива Фамы-Френча.

    Файл начинается с нескольких строк описания, затем идёт заголовок
    (",Mkt-RF,SMB,...") и месячные строки с датой YYYYMM. После них
    следует блок годовых значений ("Annual Factors: January-December")
    и строка копирайта. Всё, где дата не разбирается как YYYYMM, отбрасывается.
    """
    lines = text.splitlines()
    header_idx = None
    for i, line in enumerate(lines):
        if line.lstrip().startswith(",") and "RF" in line:
            header_idx = i
            break
    if header_idx is None:
        raise DataError("Factor file has no header row", stage="ingestion", asset="factors")

    df = pd.read_csv(io.StringIO("\n".join(lines[header_idx:])), dtype=str, skip_blank_lines=True)
    date_col = df.columns[0]
    raw_dates = df[date_col].fillna("").str.strip()
    monthly = raw_dates.str.fullmatch(r"\d{6}")
    df["date"] = pd.to_datetime(raw_dates.where(monthly), format="%Y%m", errors="coerce")

    dropped = int(df["date"].isna().sum())
    df = df.dropna(subset=["date"]).drop(columns=date_col).set_index("date")
    df.columns = [_normalize_factor_name(c) for c in df.columns]
    df = df.apply(lambda s: pd.to_numeric(s.str.strip(), errors="coerce"))

    if df.empty:
        raise DataError("Factor file has no monthly rows", stage="ingestion", asset="factors")
    incomplete = df[df.isna().any(axis=1)]
    if not incomplete.empty:
        raise DataError(
            f"Factor table has {len(incomplete)} incomplete monthly rows",
            stage="ingestion", asset="factors", date=incomplete.index[0].date(),
        )
    if not df.index.is_monotonic_increasing or df.index.has_duplicates:
        raise DataError("Factor dates are not unique and increasing", stage="ingestion", asset="factors")

    logging.info(f"Parsed factor table: {len(df)} monthly rows, dropped {dropped} trailing/annual rows")
    return df


def fetch_factor_table(url=None, http_cfg=None) -> pd.DataFrame:
    """Скачивает zip с факторами и разбирает CSV в памяти."""
    url = url or CONFIG["factors"]["url"]
    logging.info(f"Downloading factor archive {url}")
    r = http_get(url, http_cfg=http_cfg, source="factors")
    try:
        with zipfile.ZipFile(io.BytesIO(r.content)) as zf:
            members = [n for n in zf.namelist() if n.lower().endswith(".csv")]
            if not members:
                raise FetchError(f"No CSV inside factor archive {url}", stage="ingestion", asset="factors")
            text = zf.read(members[0]).decode("utf-8", errors="replace")
    except zipfile.BadZipFile as e:
        raise FetchError(f"Factor archive is not a zip file: {e}", stage="ingestion", asset="factors")
    return parse_factor_csv(text)


def hashrate_to_frame(payload: dict) -> pd.DataFrame:
    """
    Из ответа mempool.space берёт только ряд хешрейта (hashrates);
    ряд корректировок сложности (difficulty) игнорируется.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("hashrates"), list):
        raise FetchError("Malformed hashrate payload: no 'hashrates' list", stage="ingestion", asset="hashrate")
    points = payload["hashrates"]
    if not points:
        raise FetchError("Empty hashrate series", stage="ingestion", asset="hashrate")
    try:
        df = pd.DataFrame(points)[["timestamp", "avgHashrate"]]
    except KeyError as e:
        raise FetchError(f"Hashrate points lack field {e}", stage="ingestion", asset="hashrate")

    df["date"] = pd.to_datetime(df["timestamp"], unit="s", utc=True).dt.tz_localize(None).dt.normalize()
    df = df.rename(columns={"avgHashrate": "hashrate"})
    df["hashrate"] = pd.to_numeric(df["hashrate"], errors="coerce")
    df = df.drop_duplicates(subset="date", keep="last").set_index("date").sort_index()
    return df[["hashrate"]].dropna()


def fetch_hashrate(url=None, http_cfg=None) -> pd.DataFrame:
    url = url or CONFIG["hashrate"]["url"]
    logging.info(f"Fetching hashrate from {url}")
    r = http_get(url, http_cfg=http_cfg, source="hashrate")
    try:
        payload = r.json()
    except ValueError as e:
        raise FetchError(f"Hashrate endpoint returned invalid JSON: {e}", stage="ingestion", asset="hashrate")
    df = hashrate_to_frame(payload)
    logging.info(f"Fetched hashrate: {len(df)} points")
    return df
