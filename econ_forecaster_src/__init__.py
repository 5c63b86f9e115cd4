# econ_forecaster_src/__init__.py

"""
Econ Forecaster SARIMA - seasonal ARIMA reports for single economic series

Key Components
--------------
- series: Immutable TimeSeries, ModelSpec, FittedModel and ForecastResult types
- exceptions: Error hierarchy rooted at ForecasterError
- config_utils: Configuration management and CLI override support
- data_utils: Loading one series from a flat statistical table
- transform_utils: Log transform, differencing and ADF order heuristics
- forecasting_utils: Seasonal ARIMA fitting, automatic order search and forecasts
- comparison_utils: AICc-ranked model comparison
- metrics_utils: Hold-out accuracy measures
- plotting_utils: Plot data builders and the matplotlib renderer
- diagnostics_utils: Residual diagnostic artifacts
- file_utils: Markdown report and path utilities
- main: Command-line entry point and workflow orchestration

Usage
-----
    # Command-line usage
    python -m econ_forecaster_src.main --data data/cu.data.tsv --series-id CUUR0000SA0

    # Programmatic usage
    from econ_forecaster_src import load_series_table, SarimaxFitter, forecast
"""

__version__ = "1.0.0"

from .exceptions import (
    ForecasterError, DataFormatError, IncompleteWindowError, DomainError,
    InvalidOrderError, NonConvergenceError, InvalidHorizonError
)
from .series import TimeSeries, ModelSpec, Coefficient, FittedModel, ForecastResult
from .config_utils import initialize_config, get_config_value
from .data_utils import load_series_frame, load_series_table
from .transform_utils import log_transform, exp_transform, difference, undifference, difference_series
from .forecasting_utils import Fitter, SarimaxFitter, OrderBounds, search_orders, forecast
from .comparison_utils import compare_models
from .metrics_utils import compute_accuracy, holdout_split

__all__ = [
    # Data model
    "TimeSeries",
    "ModelSpec",
    "Coefficient",
    "FittedModel",
    "ForecastResult",
    # Errors
    "ForecasterError",
    "DataFormatError",
    "IncompleteWindowError",
    "DomainError",
    "InvalidOrderError",
    "NonConvergenceError",
    "InvalidHorizonError",
    # Core functionality
    "initialize_config",
    "get_config_value",
    "load_series_frame",
    "load_series_table",
    "log_transform",
    "exp_transform",
    "difference",
    "undifference",
    "difference_series",
    "Fitter",
    "SarimaxFitter",
    "OrderBounds",
    "search_orders",
    "forecast",
    "compare_models",
    "compute_accuracy",
    "holdout_split",
    # Version info
    "__version__",
]
