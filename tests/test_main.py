"""End-to-end runs of the command-line report."""

from pathlib import Path

import pandas as pd
import pytest

from conftest import make_fitted, write_bls_table
from econ_forecaster_src.config_utils import initialize_config
from econ_forecaster_src.forecasting_utils import Fitter
from econ_forecaster_src.main import (
    fit_candidate_models, main, run_series_workflow, select_best_model, setup_cli_parser
)
from econ_forecaster_src.series import ModelSpec


class RecordingRenderer:
    """Renderer that records what would be drawn instead of drawing it."""

    def __init__(self):
        self.calls = []

    def _record(self, kind, data, out_path):
        self.calls.append((kind, Path(out_path).name, data))
        return out_path

    def render_series(self, data, out_path):
        return self._record("series", data, out_path)

    def render_correlogram(self, data, out_path):
        return self._record("correlogram", data, out_path)

    def render_forecast(self, data, out_path):
        return self._record("forecast", data, out_path)


@pytest.fixture
def fast_config(tmp_path):
    path = tmp_path / "fast.yaml"
    path.write_text("output:\n  dpi: 40\n")
    return path


def test_cli_run_writes_report_and_figures(tmp_path, seasonal_monthly, fast_config):
    data = write_bls_table(tmp_path / "cpi.txt", seasonal_monthly)
    figures = tmp_path / "figures"
    report = tmp_path / "report.md"

    status = main([
        "--data", str(data), "--series-id", "CUUR0000SA0", "--config", str(fast_config),
        "--no-auto", "--candidate", "0,1,1:0,1,1", "--candidate", "1,1,0:0,1,1",
        "--holdout", "12", "--horizon", "6",
        "--figures-dir", str(figures), "--report-md", str(report),
        "--log-level", "WARNING",
    ])

    assert status == 0
    for name in ("Series.png", "Series_log.png", "Differenced_ACF_PACF.png", "Holdout_Forecast.png",
                 "Best_Residuals_ACF_PACF.png", "Forecast.png", "Model_Comparison.csv",
                 "Best_Residuals_tests.csv", "Best_Residuals_LjungBox.csv", "Forecast.csv"):
        assert (figures / name).exists(), name

    comparison = pd.read_csv(figures / "Model_Comparison.csv")
    assert len(comparison) == 2
    assert comparison["AICc"].is_monotonic_increasing

    fc = pd.read_csv(figures / "Forecast.csv")
    assert len(fc) == 6
    assert list(fc.columns) == ["period", "mean", "lo_80", "hi_80", "lo_95", "hi_95"]
    assert (fc["mean"] > 0).all()

    text = report.read_text()
    for heading in ("Model comparison", "Best model", "Residual diagnostics", "Hold-out accuracy", "Forecast"):
        assert heading in text
    assert "log likelihood=" in text


def test_unknown_series_returns_error_status(tmp_path, seasonal_monthly):
    data = write_bls_table(tmp_path / "cpi.txt", seasonal_monthly)
    status = main(["--data", str(data), "--series-id", "NOPE", "--figures-dir", str(tmp_path / "f"),
                   "--report-md", str(tmp_path / "r.md"), "--log-level", "ERROR"])
    assert status == 1


def test_missing_data_file_returns_error_status(tmp_path):
    status = main(["--data", str(tmp_path / "absent.txt"), "--series-id", "X",
                   "--figures-dir", str(tmp_path / "f"), "--log-level", "ERROR"])
    assert status == 1


def test_bad_config_file_returns_error_status(tmp_path, seasonal_monthly):
    data = write_bls_table(tmp_path / "cpi.txt", seasonal_monthly)
    status = main(["--data", str(data), "--series-id", "CUUR0000SA0",
                   "--config", str(tmp_path / "absent.yaml"), "--log-level", "ERROR"])
    assert status == 1


def test_quarterly_workflow_with_recording_renderer(tmp_path, seasonal_monthly):
    data = write_bls_table(tmp_path / "cpi.txt", seasonal_monthly)
    args = setup_cli_parser().parse_args([
        "--data", str(data), "--series-id", "CUUR0000SA0", "--quarterly",
        "--no-auto", "--candidate", "0,1,1:0,1,1", "--candidate", "1,1,0",
        "--holdout", "0", "--horizon", "4",
        "--report-md", str(tmp_path / "q.md"),
    ])
    renderer = RecordingRenderer()

    summary = run_series_workflow(data, "CUUR0000SA0", tmp_path / "figs", args, renderer=renderer)

    assert summary["series"].frequency == 4
    assert len(summary["series"]) == len(seasonal_monthly) // 3
    assert summary["best"].spec.s == 4
    assert summary["accuracy"] is None
    assert summary["forecast"].horizon == 4
    assert summary["diagnostics"].model_name == summary["best"].label

    drawn = [name for _, name, _ in renderer.calls]
    assert "Holdout_Forecast.png" not in drawn
    assert {"Series.png", "Series_log.png", "Forecast.png"} <= set(drawn)
    fan = next(d for kind, name, d in renderer.calls if name == "Forecast.png")
    # Forecasts are drawn on the level scale next to the level history
    assert fan.history[-1] == pytest.approx(summary["series"].values[-1])


class StubFitter(Fitter):
    """Fitter with fixed likelihoods that records the automatic-search bounds."""

    def __init__(self):
        self.bounds = None

    def fit(self, series, spec, log_scale=False):
        return make_fitted(spec, aic=float(spec.p + spec.q), series=series)

    def auto_fit(self, series, bounds, log_scale=False):
        self.bounds = bounds
        d = 1 if bounds.d is None else bounds.d
        D = 1 if bounds.D is None else bounds.D
        return make_fitted(ModelSpec(p=2, d=d, q=0, D=D, s=bounds.s), aic=-5.0, series=series)


def test_auto_search_reuses_shared_candidate_differencing(seasonal_monthly):
    fitter = StubFitter()
    fits = fit_candidate_models(seasonal_monthly, ["0,1,1:0,1,1", "1,1,0:0,1,1"], 12, fitter,
                                log_scale=False, auto=True)
    assert (fitter.bounds.d, fitter.bounds.D) == (1, 1)
    assert len(fits) == 3
    assert {(m.spec.d, m.spec.D) for m in fits} == {(1, 1)}


def test_auto_search_differencing_left_open_for_mixed_candidates(seasonal_monthly):
    fitter = StubFitter()
    fit_candidate_models(seasonal_monthly, ["0,1,1:0,1,1", "1,1,0"], 12, fitter, log_scale=False, auto=True)
    assert fitter.bounds.d is None and fitter.bounds.D is None


def test_configured_differencing_wins_over_candidates(tmp_path, seasonal_monthly):
    cfg = tmp_path / "diff.yaml"
    cfg.write_text("model:\n  search_space:\n    d: 1\n    D: 0\n")
    initialize_config(cfg)
    fitter = StubFitter()
    fit_candidate_models(seasonal_monthly, ["0,1,1:0,1,1"], 12, fitter, log_scale=False, auto=True)
    assert (fitter.bounds.d, fitter.bounds.D) == (1, 0)


@pytest.mark.parametrize("d,D,expected", [(1, 1, "ARIMA(0,1,1)(0,1,1)[12]"), (0, 0, "ARIMA(0,1,1)(0,1,1)[12]"),
                                          (1, 0, "ARIMA(1,1,0)(0,0,0)[12] with drift")])
def test_best_model_chosen_within_one_differencing_group(tmp_path, seasonal_monthly, d, D, expected):
    cfg = tmp_path / "diff.yaml"
    cfg.write_text(f"model:\n  search_space:\n    d: {d}\n    D: {D}\n")
    initialize_config(cfg)
    fits = [
        make_fitted(ModelSpec(p=0, d=1, q=1, P=0, D=1, Q=1, s=12), aic=10.0, series=seasonal_monthly),
        make_fitted(ModelSpec(p=1, d=1, q=0, s=12), aic=-50.0, series=seasonal_monthly),
    ]
    # (0, 0) matches no fit, so the group of the first fit is used
    assert select_best_model(seasonal_monthly, fits, 12).label == expected
