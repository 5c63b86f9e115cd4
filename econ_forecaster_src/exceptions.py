# econ_forecaster_src/exceptions.py

"""
Exception hierarchy for the seasonal ARIMA report pipeline.

Every error is terminal for the operation that raised it. The attributes carry
enough context (series id, requested order, horizon) for an operator to fix the
input and run again; nothing in the package retries automatically.
"""

from typing import Any, Optional


class ForecasterError(Exception):
    """Base class for all pipeline errors."""


class DataFormatError(ForecasterError):
    """Raised for malformed, missing or non-contiguous input rows."""

    def __init__(self, message: str, series_id: Optional[str] = None):
        if series_id is not None:
            message = f"{message} (series_id={series_id!r})"
        super().__init__(message)
        self.series_id = series_id


class IncompleteWindowError(ForecasterError):
    """Raised when a resampling window does not contain all its observations."""


class DomainError(ForecasterError):
    """Raised when a transformation is applied outside its mathematical domain."""


class InvalidOrderError(ForecasterError):
    """Raised for negative orders or orders the series is too short to estimate."""

    def __init__(self, message: str, spec: Any = None):
        label = getattr(spec, "label", None)
        if label:
            message = f"{message} [{label}]"
        super().__init__(message)
        self.spec = spec


class NonConvergenceError(ForecasterError):
    """Raised when the likelihood optimizer fails to converge."""

    def __init__(self, message: str, spec: Any = None):
        label = getattr(spec, "label", None)
        if label:
            message = f"{message} [{label}]"
        super().__init__(message)
        self.spec = spec


class InvalidHorizonError(ForecasterError):
    """Raised when a forecast horizon is not a positive integer."""

    def __init__(self, horizon: Any):
        super().__init__(f"Forecast horizon must be a positive integer, got {horizon!r}")
        self.horizon = horizon
