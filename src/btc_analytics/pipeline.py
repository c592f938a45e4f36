"""
pipeline.py

Полный прогон исследования:
  1. ingestion  — цены активов, факторы, хешрейт
  2. cleaning   — проверка рядов и восстановление market_cap
  3. resampling — недельные / месячные бары
  4. returns    — лог-доходности, аннуализация, волатильность внутри периода
  5. alignment  — месячная факторная панель с избыточными доходностями

Запуск: python -m btc_analytics.pipeline
"""

import time
import logging
from contextlib import contextmanager

from .config import CONFIG, HALVING_DATES, asset_date_ranges, validate_config
from .errors import AnalysisError, ConfigError
from .collect_data import get_coin_market_chart_range, fetch_factor_table, fetch_hashrate
from .preprocessing import clean_observations, validate_observations
from .resampling import resample_bars
from .returns import build_returns, build_return_set
from .volatility import period_volatility
from .panel import prepare_factor_table, align_panel, add_difference
from .data_quality import quality_report
from .summary_metrics import summary_metrics
from . import analysis

BAR_PERIODS = ("weekly", "monthly")
FACTOR_REGRESSORS = ["mkt_rf", "smb", "hml", "rmw", "cma"]
WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@contextmanager
def stage(name, asset=None):
    """Проставляет этап и актив в ошибку, логирует и пробрасывает дальше."""
    try:
        yield
    except AnalysisError as e:
        if e.stage is None:
            e.stage = name
        if e.asset is None:
            e.asset = asset
        logging.error(f"Stage '{name}' failed: {e}")
        raise


def run(config=CONFIG, price_fetcher=get_coin_market_chart_range,
        factor_fetcher=fetch_factor_table, metric_fetcher=fetch_hashrate):
    """
    Выполняет все этапы и возвращает словарь с промежуточными и итоговыми
    таблицами. Fetcher-ы можно подменить (тесты, локальные файлы).
    """
    with stage("configuration"):
        start, end = validate_config(config)
        ranges = asset_date_ranges(config)
        study = config["study"]
        benchmark = study.get("benchmark", next(iter(ranges)))
        if benchmark not in ranges:
            raise ConfigError(f"Benchmark '{benchmark}' is not among configured assets {list(ranges)}")
    http_cfg = config.get("http", {})
    vs_currency = study.get("vs_currency", "usd")

    # 1. ingestion
    raw = {}
    for idx, (coin, (s, e)) in enumerate(ranges.items(), start=1):
        with stage("ingestion", coin):
            logging.info(f"[{idx}/{len(ranges)}] Fetching {coin} {s}..{e}")
            raw[coin] = price_fetcher(coin, vs_currency, s, e, http_cfg=http_cfg)
        if idx < len(ranges):
            time.sleep(float(http_cfg.get("rate_limit_sleep", 0)))
    with stage("ingestion", "factors"):
        factors_raw = factor_fetcher(url=config["factors"]["url"], http_cfg=http_cfg)
    with stage("ingestion", "hashrate"):
        hashrate_raw = metric_fetcher(url=config["hashrate"]["url"], http_cfg=http_cfg)

    quality = quality_report({**raw, "factors": factors_raw, "hashrate": hashrate_raw})

    # 2. cleaning
    daily = {}
    for coin, df in raw.items():
        with stage("cleaning", coin):
            daily[coin] = clean_observations(df, asset=coin)
    with stage("cleaning", "hashrate"):
        hashrate = validate_observations(
            hashrate_raw.loc[hashrate_raw.index >= start], asset="hashrate", price_col="hashrate"
        )

    # 3. resampling
    bars = {}
    for coin, df in daily.items():
        with stage("resampling", coin):
            bars[coin] = {period: resample_bars(df, period) for period in BAR_PERIODS}
    with stage("resampling", "hashrate"):
        hashrate_bars = resample_bars(hashrate, "monthly", price_col="hashrate",
                                      include_volume=False, include_market_cap=False)

    # 4. returns
    returns = {}
    volatility = {}
    for coin in daily:
        with stage("returns", coin):
            returns[coin] = {"daily": build_return_set(daily[coin], "daily", asset=coin)}
            for period in BAR_PERIODS:
                returns[coin][period] = build_return_set(bars[coin][period], period, asset=coin)
        with stage("volatility", coin):
            daily_price = returns[coin]["daily"]["price"]
            volatility[coin] = {period: period_volatility(daily_price, period) for period in BAR_PERIODS}
    with stage("returns", "hashrate"):
        hashrate_growth = build_returns(hashrate_bars, "monthly", column="close", asset="hashrate")

    # 5. alignment
    with stage("alignment"):
        factors = prepare_factor_table(factors_raw, start, scale=config["factors"].get("scale", 12))
        columns = [(f"{coin}_return", returns[coin]["monthly"]["close"]["annualized_return"]) for coin in daily]
        columns.append((f"{benchmark}_volatility", volatility[benchmark]["monthly"]))
        columns.append(("hashrate_growth", hashrate_growth["annualized_return"]))
        columns.extend((c, factors[c]) for c in factors.columns)
        panel = align_panel(
            columns, how="inner",
            drop_first=study.get("drop_first", 0), drop_last=study.get("drop_last", 0),
        )
        for coin in daily:
            panel = add_difference(panel, f"{coin}_excess", f"{coin}_return", "rf")
    logging.info(f"Aligned panel: {len(panel)} months x {len(panel.columns)} columns")

    summary = summary_metrics({coin: returns[coin]["monthly"]["close"] for coin in daily}, "monthly")

    return {
        "daily": daily,
        "bars": bars,
        "returns": returns,
        "volatility": volatility,
        "factors": factors,
        "hashrate": hashrate,
        "hashrate_growth": hashrate_growth,
        "panel": panel,
        "quality": quality,
        "summary": summary,
        "benchmark": benchmark,
    }


def run_statistics(results, config=CONFIG):
    """Стационарность, сезонность и факторная регрессия для бенчмарка."""
    benchmark = results["benchmark"]
    cycles = config.get("cycles", {})
    daily_returns = results["returns"][benchmark]["daily"]["price"]["annualized_return"]
    monthly_returns = results["returns"][benchmark]["monthly"]["close"]["annualized_return"]
    daily_prices = results["daily"][benchmark]["price"]

    stats = {}
    with stage("analysis", benchmark):
        stats["adf_price"] = analysis.stationarity_test(daily_prices)
        stats["adf_returns"] = analysis.stationarity_test(daily_returns)
        stats["autocorrelations"] = analysis.autocorrelations(daily_returns)
        stats["decomposition"] = analysis.decompose(daily_returns, period=cycles.get("day_of_week", 7))

        first_daily = daily_returns.index[0]
        first_month = monthly_returns.index[0]
        stats["day_of_week"] = analysis.seasonal_profile(
            daily_returns, cycles.get("day_of_week", 7), shift=first_daily.weekday(), labels=WEEKDAYS
        )
        stats["month_of_year"] = analysis.seasonal_profile(
            monthly_returns, cycles.get("month_of_year", 12), shift=first_month.month - 1
        )
        stats["halving_cycle"] = analysis.seasonal_profile(
            monthly_returns, cycles.get("halving_months", 48),
            shift=analysis.halving_shift(first_month, HALVING_DATES),
        )
        stats["factor_model"] = analysis.factor_regression(
            results["panel"], f"{benchmark}_excess", FACTOR_REGRESSORS
        )

    adf = stats["adf_returns"]
    logging.info(f"ADF on daily {benchmark} returns: stat={adf['adf_stat']:.3f}, p={adf['p_value']:.4f}")
    return stats


def main(config=CONFIG):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")
    logging.info("Starting bitcoin factor study")
    try:
        results = run(config)
        stats = run_statistics(results, config)
        db_cfg = config.get("database", {})
        if db_cfg.get("save"):
            from .db.database import get_engine
            from .load_to_db import save_panel
            save_panel(results["panel"], db_cfg.get("panel_name", "monthly_factor_panel"),
                       get_engine(db_cfg.get("url")))
    except AnalysisError as e:
        logging.error(f"Run failed: {e}")
        raise SystemExit(1)
    logging.info(f"Study finished\n{results['summary'].to_string(index=False)}")
    return results, stats


if __name__ == "__main__":
    main()
