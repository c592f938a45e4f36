import numpy as np
import pandas as pd
import scipy.stats as st

from .returns import periods_per_year


def max_drawdown_from_logreturns(logr: pd.Series) -> float:

    if logr.empty:
        return np.nan
    cum = np.exp(logr.cumsum())
    peak = cum.cummax()
    dd = (cum / peak) - 1
    return dd.min()


def summary_metrics(return_sets, periodicity):
    """
    return_sets — {имя: DataFrame с log_return}.
    Годовая доходность, годовая волатильность, максимальная просадка, асимметрия.
    """
    ppy = periods_per_year(periodicity)
    out = []
    for name, records in return_sets.items():
        s = records["log_return"].dropna()
        if s.empty:
            continue

        mean = s.mean()
        std = s.std()
        ann_vol = std * (ppy ** 0.5)
        ann_return = np.exp(mean * ppy) - 1
        mdd = max_drawdown_from_logreturns(s)
        skewness = float(st.skew(s))

        out.append((name, len(s), ann_return, ann_vol, mdd, skewness))

    summary = pd.DataFrame(out, columns=['series', 'n_obs', 'ann_return', 'ann_vol', 'max_drawdown', 'skew'])
    return summary.sort_values('ann_vol', ascending=False).reset_index(drop=True)
