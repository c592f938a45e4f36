"""Bitcoin return construction and factor-panel pipeline."""

from .errors import AnalysisError, FetchError, DataError, ConfigError
from .preprocessing import clean_observations, impute_market_cap, validate_observations
from .resampling import resample_bars
from .returns import annualize, build_returns, build_return_set, periods_per_year
from .volatility import period_volatility, shift_to_period_start
from .panel import align_panel, add_difference, finite_rows, cycle_index, prepare_factor_table

__version__ = "0.1.0"
