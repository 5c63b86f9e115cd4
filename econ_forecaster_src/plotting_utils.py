# econ_forecaster_src/plotting_utils.py

"""
Plot data builders and renderers.

Builders turn pipeline objects into plain arrays so that any plotting
backend can draw them; ``MatplotlibRenderer`` is the backend used by the
command-line report. Anything with the ``PlotRenderer`` methods can be
passed to the workflow instead.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple
import logging

import numpy as np
import pandas as pd

from .file_utils import ensure_dir
from .series import ForecastResult, TimeSeries
from diagnostics import Correlogram

logger = logging.getLogger(__name__)


@dataclass
class SeriesPlotData:
    """Line-plot data for one series."""

    dates: pd.DatetimeIndex
    values: np.ndarray
    title: str
    ylabel: str = ""


@dataclass
class CorrelogramPlotData:
    """Bar-plot data for an ACF/PACF pair with its significance band."""

    lags: np.ndarray
    acf: np.ndarray
    pacf: np.ndarray
    band: float
    title: str


@dataclass
class ForecastFanData:
    """History, point forecasts and nested interval bands."""

    history_dates: pd.DatetimeIndex
    history: np.ndarray
    forecast_dates: pd.DatetimeIndex
    mean: np.ndarray
    bands: Dict[int, Tuple[np.ndarray, np.ndarray]]
    title: str
    actuals: Optional[np.ndarray] = None
    ylabel: str = ""


def _timestamps(index: pd.PeriodIndex) -> pd.DatetimeIndex:
    return index.to_timestamp(how="start")


def series_plot_data(series: TimeSeries, title: Optional[str] = None, ylabel: str = "") -> SeriesPlotData:
    """Plot data for a series (levels, logs or differences)."""
    return SeriesPlotData(
        dates=_timestamps(series.index),
        values=np.array(series.values),
        title=title or (series.name or "Series"),
        ylabel=ylabel,
    )


def correlogram_plot_data(correlogram: Correlogram, title: str = "Correlogram") -> CorrelogramPlotData:
    """Plot data for a sample ACF/PACF."""
    return CorrelogramPlotData(
        lags=np.array(correlogram.lags),
        acf=np.array(correlogram.acf),
        pacf=np.array(correlogram.pacf),
        band=float(correlogram.band),
        title=title,
    )


def forecast_fan_data(result: ForecastResult,
                      history: Optional[TimeSeries] = None,
                      actuals: Optional[TimeSeries] = None,
                      title: Optional[str] = None,
                      ylabel: str = "") -> ForecastFanData:
    """
    Fan-chart data for a forecast.

    Parameters
    ----------
    result : ForecastResult
        Forecast to draw
    history : TimeSeries, optional
        Observed history; defaults to the training series (exponentiated when
        the forecast was back-transformed from log scale)
    actuals : TimeSeries, optional
        Held-out observations covering the forecast periods
    """
    if history is None:
        history = result.model.series
        if result.log_scale:
            history = history.with_values(np.exp(history.values))
    actual_values = None
    if actuals is not None:
        # Align on the forecast periods; periods without an actual stay NaN
        aligned = actuals.to_series().reindex(result.index)
        actual_values = aligned.to_numpy(dtype=float)
    return ForecastFanData(
        history_dates=_timestamps(history.index),
        history=np.array(history.values),
        forecast_dates=_timestamps(result.index),
        mean=np.array(result.mean),
        bands={lvl: (np.array(result.lower[lvl]), np.array(result.upper[lvl])) for lvl in result.levels},
        title=title or f"Forecasts from {result.model.label}",
        actuals=actual_values,
        ylabel=ylabel,
    )


class PlotRenderer(Protocol):
    """Anything that can draw the three plot kinds to a file."""

    def render_series(self, data: SeriesPlotData, out_path: Path) -> Path: ...

    def render_correlogram(self, data: CorrelogramPlotData, out_path: Path) -> Path: ...

    def render_forecast(self, data: ForecastFanData, out_path: Path) -> Path: ...


@dataclass
class MatplotlibRenderer:
    """
    Render plot data to PNG files with matplotlib's Agg backend.

    Parameters
    ----------
    dpi : int, default=300
        Output resolution
    figsize : Tuple[float, float], default=(8, 4)
        Size of single-panel figures in inches
    """

    dpi: int = 300
    figsize: Tuple[float, float] = (8, 4)
    colors: Tuple[str, ...] = field(default=("tab:blue", "tab:red", "black"))

    @staticmethod
    def _pyplot():
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        return plt

    def _save(self, fig, out_path: Path) -> Path:
        plt = self._pyplot()
        ensure_dir(out_path.parent)
        fig.tight_layout()
        fig.savefig(out_path, dpi=self.dpi)
        plt.close(fig)
        logger.debug("Saved figure %s", out_path)
        return out_path

    def render_series(self, data: SeriesPlotData, out_path: Path) -> Path:
        plt = self._pyplot()
        fig, ax = plt.subplots(figsize=self.figsize)
        ax.plot(data.dates, data.values, color=self.colors[2], linewidth=1)
        ax.set_title(data.title)
        ax.set_xlabel("Date")
        if data.ylabel:
            ax.set_ylabel(data.ylabel)
        fig.autofmt_xdate()
        return self._save(fig, out_path)

    def render_correlogram(self, data: CorrelogramPlotData, out_path: Path) -> Path:
        plt = self._pyplot()
        fig, axes = plt.subplots(2, 1, figsize=(self.figsize[0], self.figsize[1] * 1.5), sharex=True)
        for ax, values, name in ((axes[0], data.acf, "ACF"), (axes[1], data.pacf, "PACF")):
            ax.vlines(data.lags, 0.0, values, color=self.colors[0], linewidth=1.5)
            ax.axhline(0.0, color="black", linewidth=0.8)
            ax.axhline(data.band, color="gray", linestyle="--", linewidth=1)
            ax.axhline(-data.band, color="gray", linestyle="--", linewidth=1)
            ax.set_ylabel(name)
        axes[0].set_title(data.title)
        axes[1].set_xlabel("Lag")
        return self._save(fig, out_path)

    def render_forecast(self, data: ForecastFanData, out_path: Path) -> Path:
        plt = self._pyplot()
        fig, ax = plt.subplots(figsize=self.figsize)
        ax.plot(data.history_dates, data.history, color=self.colors[2], linewidth=1, label="observed")
        # Widest band first so narrower bands are drawn on top
        for i, lvl in enumerate(sorted(data.bands, reverse=True)):
            lo, hi = data.bands[lvl]
            ax.fill_between(data.forecast_dates, lo, hi, color=self.colors[0],
                            alpha=0.2 + 0.15 * i, linewidth=0, label=f"{lvl}% interval")
        ax.plot(data.forecast_dates, data.mean, color=self.colors[0], linewidth=1.5, label="forecast")
        if data.actuals is not None:
            ax.plot(data.forecast_dates, data.actuals, color=self.colors[1], linestyle="--",
                    linewidth=1, label="actual")
        ax.set_title(data.title)
        if data.ylabel:
            ax.set_ylabel(data.ylabel)
        ax.legend(fontsize=8)
        fig.autofmt_xdate()
        return self._save(fig, out_path)
