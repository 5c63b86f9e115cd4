# econ_forecaster_src/transform_utils.py

import pandas as pd
import numpy as np
from typing import Sequence, Union
import logging

from .exceptions import DomainError
from .series import TimeSeries

logger = logging.getLogger(__name__)


def log_transform(series: TimeSeries) -> TimeSeries:
    """
    Apply the natural logarithm elementwise.

    Logging a level series stabilizes variance that grows with the level, and
    turns multiplicative seasonality into additive seasonality.

    Parameters
    ----------
    series : TimeSeries
        Strictly positive series

    Returns
    -------
    TimeSeries
        Log-scale series with the same start and frequency

    Raises
    ------
    DomainError
        If any value is zero or negative
    """
    values = np.asarray(series.values)
    bad = ~(values > 0)
    if bad.any():
        first = series.start + int(np.argmax(bad))
        raise DomainError(
            f"Cannot take log of {int(bad.sum())} non-positive value(s) in "
            f"{series.name or 'series'}; first at {first}"
        )
    return series.with_values(np.log(values))


def exp_transform(series: TimeSeries) -> TimeSeries:
    """Inverse of ``log_transform``."""
    return series.with_values(np.exp(np.asarray(series.values)))


def difference(series: TimeSeries, lag: int = 1, order: int = 1) -> TimeSeries:
    """
    Lagged differences ``y[t] - y[t-lag]``, applied ``order`` times.

    Parameters
    ----------
    series : TimeSeries
        Input series
    lag : int, default=1
        Distance between the subtracted observations (1 removes a trend,
        the seasonal period removes seasonality)
    order : int, default=1
        Number of times the lag-``lag`` difference is applied

    Returns
    -------
    TimeSeries
        Series of length ``len(series) - lag * order`` starting ``lag * order``
        periods after the input

    Raises
    ------
    ValueError
        If lag or order is less than 1, or the series is too short

    Examples
    --------
    >>> s = TimeSeries([100, 102, 101, 105], start=(2020, 1), frequency=12)
    >>> difference(s).values
    array([ 2., -1.,  4.])
    """
    if lag < 1 or order < 1:
        raise ValueError(f"lag and order must be >= 1, got lag={lag}, order={order}")
    if len(series) <= lag * order:
        raise ValueError(
            f"Series of length {len(series)} is too short for {order} difference(s) at lag {lag}"
        )
    values = np.asarray(series.values)
    for _ in range(order):
        values = values[lag:] - values[:-lag]
    return series.with_values(values, start=series.start + lag * order)


def undifference(diffed: TimeSeries, initial: Union[Sequence[float], np.ndarray], lag: int = 1) -> TimeSeries:
    """
    Invert one lag-``lag`` difference by cumulative summation.

    Parameters
    ----------
    diffed : TimeSeries
        Output of ``difference(series, lag)``
    initial : Sequence[float]
        The first ``lag`` observations of the original series

    Returns
    -------
    TimeSeries
        Reconstructed original series of length ``len(diffed) + lag``
    """
    init = np.asarray(initial, dtype=float)
    if len(init) != lag:
        raise ValueError(f"Expected {lag} initial value(s), got {len(init)}")
    out = np.empty(len(diffed) + lag)
    out[:lag] = init
    d = np.asarray(diffed.values)
    for t in range(len(d)):
        out[t + lag] = out[t] + d[t]
    return diffed.with_values(out, start=diffed.start - lag)


def difference_series(series: TimeSeries, d: int = 0, D: int = 0, s: int = 1) -> TimeSeries:
    """
    Apply the SARIMA differencing operator ``(1-B)^d (1-B^s)^D``.

    Non-seasonal differences are taken first and seasonal differences second.
    The operators commute algebraically, but the stated order is kept so that
    intermediate series match the conventional presentation.
    """
    out = series
    if d:
        out = difference(out, lag=1, order=d)
    if D:
        if s < 2:
            raise ValueError("Seasonal differencing requires a seasonal period s >= 2")
        out = difference(out, lag=s, order=D)
    return out


def safe_adf_pval(series: Union[TimeSeries, pd.Series, np.ndarray]) -> float:
    """
    Safely compute ADF test p-value with error handling.

    Parameters
    ----------
    series : Union[TimeSeries, pd.Series, np.ndarray]
        Time series to test for stationarity

    Returns
    -------
    float
        ADF test p-value, or NaN if test cannot be performed

    Notes
    -----
    Requires at least 12 observations to perform the test reliably.
    """
    from statsmodels.tsa.stattools import adfuller

    values = series.values if isinstance(series, TimeSeries) else series
    s = pd.Series(np.asarray(values, dtype=float)).dropna()
    if len(s) < 12 or s.nunique() < 2:
        return float("nan")
    try:
        return float(adfuller(s)[1])
    except (ValueError, np.linalg.LinAlgError) as e:
        logger.debug("ADF test failed: %s", e)
        return float("nan")


def adf_select_d(series: TimeSeries, alpha: float = 0.05) -> int:
    """
    Select non-seasonal differencing order using ADF test heuristic.

    If the level series is stationary (p < alpha) then d=0, else d=1.
    """
    p_level = safe_adf_pval(series)
    if np.isfinite(p_level) and p_level < alpha:
        return 0
    return 1


def adf_select_D(series: TimeSeries, s: int, alpha: float = 0.05) -> int:
    """
    Select seasonal differencing order using ADF test heuristic.

    One seasonal difference is selected when the seasonally differenced series
    is stationary (p < alpha) while the level is not; otherwise D=0.
    """
    if s < 2 or len(series) <= 2 * s:
        return 0
    p_level = safe_adf_pval(series)
    p_seasonal = safe_adf_pval(difference(series, lag=s))

    if (not np.isfinite(p_level) or p_level >= alpha) and np.isfinite(p_seasonal) and p_seasonal < alpha:
        return 1
    return 0
