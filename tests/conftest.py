import numpy as np
import pandas as pd
import pytest

from econ_forecaster_src import config_utils
from econ_forecaster_src.forecasting_utils import aicc_from_aic
from econ_forecaster_src.series import FittedModel, ModelSpec, TimeSeries


@pytest.fixture(autouse=True)
def _fresh_config():
    """Every test starts and ends without a loaded configuration."""
    config_utils.reset_config()
    yield
    config_utils.reset_config()


@pytest.fixture
def drift_series() -> TimeSeries:
    """Quarterly random walk with drift 0.5 and small innovations."""
    rng = np.random.default_rng(7)
    steps = 0.5 + rng.normal(0.0, 0.1, size=79)
    values = np.concatenate([[100.0], 100.0 + np.cumsum(steps)])
    return TimeSeries(values, start=(2000, 1), frequency=4, name="drift")


@pytest.fixture
def seasonal_monthly() -> TimeSeries:
    """
    Ten years of a positive monthly series whose logs follow an airline model
    (0,1,1)(0,1,1)[12] with theta=-0.4, Theta=-0.6, plus trend and seasonality.
    """
    rng = np.random.default_rng(11)
    n = 120
    e = rng.normal(0.0, 0.01, n + 13)
    w = e[13:] - 0.4 * e[12:-1] - 0.6 * e[1:-12] + 0.24 * e[:-13]
    z = np.zeros(n)
    for t in range(n):
        z[t] = w[t] + (z[t - 12] if t >= 12 else 0.0)
    t = np.arange(n)
    log_values = 0.002 * t + 0.03 * np.sin(2 * np.pi * t / 12) + np.cumsum(z)
    return TimeSeries(100.0 * np.exp(log_values), start=(2010, 1), frequency=12, name="CUUR0000SA0")


def write_bls_table(path, series: TimeSeries, extra_rows=()):
    """Write ``series`` as a tab-separated BLS-style table, with padded ids."""
    prefix = "M" if series.frequency == 12 else "Q"
    rows = []
    for period, value in zip(series.index, series.values):
        sub = period.month if series.frequency == 12 else period.quarter
        rows.append((f"{series.name:<17}", period.year, f"{prefix}{sub:02d}", f"{value:12.3f}", ""))
    rows.extend(extra_rows)
    frame = pd.DataFrame(rows, columns=["series_id        ", "year", "period", "       value", "footnote_codes"])
    frame.to_csv(path, sep="\t", index=False)
    return path


def make_fitted(spec: ModelSpec, aic: float, series: TimeSeries = None, loglik: float = None) -> FittedModel:
    """Hand-built FittedModel for tests that do not need a real estimator."""
    if series is None:
        series = TimeSeries(np.arange(1.0, 41.0), start=(2000, 1), frequency=4, name="stub")
    k = spec.n_params
    n_eff = len(series) - spec.n_lost
    if loglik is None:
        loglik = (2.0 * k - aic) / 2.0
    return FittedModel(
        spec=spec,
        series=series,
        coefficients={},
        residuals=np.zeros(len(series)),
        loglik=loglik,
        aic=aic,
        aicc=aicc_from_aic(aic, k, n_eff),
        bic=aic,
        sigma2=1.0,
        n_params=k,
        n_effective=n_eff,
    )
