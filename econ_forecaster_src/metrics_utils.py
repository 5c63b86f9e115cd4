# econ_forecaster_src/metrics_utils.py

import numpy as np
import pandas as pd
from typing import Union, List, Dict, Optional, Tuple
import logging

from .series import TimeSeries

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], np.ndarray, pd.Series, TimeSeries]


def to_1d_array(x: ArrayLike) -> np.ndarray:
    """
    Convert input to 1D numpy array, filtering out non-finite values.

    Parameters
    ----------
    x : Union[List[float], np.ndarray, pd.Series, TimeSeries]
        Input data to convert

    Returns
    -------
    np.ndarray
        1D array containing only finite values
    """
    if isinstance(x, TimeSeries):
        x = x.values
    arr = np.asarray(x, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def _aligned(y_true: ArrayLike, y_hat: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    yt = to_1d_array(y_true)
    yh = to_1d_array(y_hat)
    n = min(len(yt), len(yh))
    return yt[:n], yh[:n]


def mae(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """Mean Absolute Error, or NaN if no valid data."""
    yt, yh = _aligned(y_true, y_hat)
    if len(yt) == 0:
        return float("nan")
    return float(np.mean(np.abs(yh - yt)))


def rmse(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """Root Mean Square Error, or NaN if no valid data."""
    yt, yh = _aligned(y_true, y_hat)
    if len(yt) == 0:
        return float("nan")
    return float(np.sqrt(np.mean((yh - yt) ** 2)))


def mpe(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Mean Percentage Error of ``y_true - y_hat`` relative to ``y_true``.

    Observations with a zero actual value are left out; NaN if none remain.
    """
    yt, yh = _aligned(y_true, y_hat)
    mask = yt != 0.0
    if not mask.any():
        return float("nan")
    return float(np.mean((yt[mask] - yh[mask]) / yt[mask]) * 100.0)


def mape(y_true: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Mean Absolute Percentage Error.

    Observations with a zero actual value are left out; NaN if none remain.
    """
    yt, yh = _aligned(y_true, y_hat)
    mask = yt != 0.0
    if not mask.any():
        return float("nan")
    return float(np.mean(np.abs((yt[mask] - yh[mask]) / yt[mask])) * 100.0)


def mase_metric(y_true: ArrayLike, y_hat: ArrayLike, y_train: ArrayLike, m: int = 1) -> float:
    """
    Calculate Mean Absolute Scaled Error.

    MASE scales the MAE by the in-sample MAE of a naive seasonal forecast,
    making it comparable across series of different scale.

    Parameters
    ----------
    y_true : array-like
        True values
    y_hat : array-like
        Predicted values
    y_train : array-like
        Training data for scaling reference
    m : int, default=1
        Seasonal period for naive forecast (12 monthly, 4 quarterly)

    Returns
    -------
    float
        MASE value, or NaN if computation is not possible

    Notes
    -----
    Values < 1 indicate the forecast is better than naive seasonal forecast.
    """
    yt, yh = _aligned(y_true, y_hat)
    if len(yt) == 0:
        return float("nan")
    num = np.mean(np.abs(yh - yt))
    tr = to_1d_array(y_train)
    if len(tr) <= m:
        return float("nan")
    denom = np.mean(np.abs(tr[m:] - tr[:-m]))
    if not np.isfinite(denom) or denom <= 0.0:
        return float("nan")
    return float(num / denom)


def acf1(errors: ArrayLike) -> float:
    """Lag-1 autocorrelation of forecast errors, or NaN for fewer than 3 values."""
    e = to_1d_array(errors)
    if len(e) < 3:
        return float("nan")
    e = e - e.mean()
    denom = float(np.sum(e * e))
    if denom <= 0.0:
        return float("nan")
    return float(np.sum(e[1:] * e[:-1]) / denom)


def compute_accuracy(y_true: ArrayLike,
                     y_hat: ArrayLike,
                     y_train: Optional[ArrayLike] = None,
                     m: int = 1) -> Dict[str, float]:
    """
    Compute hold-out accuracy measures for one forecast.

    Parameters
    ----------
    y_true : array-like
        Held-out actual values
    y_hat : array-like
        Point forecasts for the same periods
    y_train : array-like, optional
        Training data for MASE scaling; MASE is NaN without it
    m : int, default=1
        Seasonal period for the MASE naive benchmark

    Returns
    -------
    Dict[str, float]
        ME, RMSE, MAE, MPE, MAPE, MASE and ACF1 (of the errors)

    Notes
    -----
    Errors are ``actual - forecast``, so a positive ME means under-forecasting.
    """
    yt, yh = _aligned(y_true, y_hat)
    err = yt - yh
    res = {
        "ME": float(np.mean(err)) if len(err) > 0 else float("nan"),
        "RMSE": rmse(yt, yh),
        "MAE": mae(yt, yh),
        "MPE": mpe(yt, yh),
        "MAPE": mape(yt, yh),
        "MASE": mase_metric(yt, yh, y_train, m=m) if y_train is not None else float("nan"),
        "ACF1": acf1(err),
    }
    logger.debug("Accuracy on %d hold-out points: %s", len(err), res)
    return res


def holdout_split(series: TimeSeries, h: int) -> Tuple[TimeSeries, TimeSeries]:
    """
    Split a series into training data and the final ``h`` observations.

    Raises
    ------
    ValueError
        If ``h`` is not positive or leaves no training data
    """
    if h <= 0:
        raise ValueError(f"Hold-out length must be positive, got {h}")
    if h >= len(series):
        raise ValueError(f"Hold-out length {h} leaves no training data in a series of length {len(series)}")
    n_train = len(series) - h
    train = series.with_values(series.values[:n_train])
    test = series.with_values(series.values[n_train:], start=series.start + n_train)
    return train, test
