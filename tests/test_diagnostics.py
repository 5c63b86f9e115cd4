"""Tests for residual diagnostics."""

import numpy as np
import pandas as pd
import pytest

from diagnostics import (
    DiagnosticTest, ResidualDiagnostics, fisher_g_pvalue, run_comprehensive_diagnostics
)
from econ_forecaster_src.forecasting_utils import SarimaxFitter
from econ_forecaster_src.series import ModelSpec


def create_ar1_residuals(n=200, phi=0.8, seed=42):
    """Strongly autocorrelated 'residuals' from an AR(1) process."""
    rng = np.random.default_rng(seed)
    e = rng.normal(size=n)
    x = np.zeros(n)
    for t in range(1, n):
        x[t] = phi * x[t - 1] + e[t]
    return x


def create_periodic_residuals(n=120, period=6, seed=1):
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    return 3.0 * np.sin(2 * np.pi * t / period) + rng.normal(0.0, 0.5, n)


@pytest.fixture
def engine():
    return ResidualDiagnostics(significance_level=0.05)


def test_correlogram_band_and_lengths(engine):
    x = np.random.default_rng(0).normal(size=100)
    c = engine.compute_acf_pacf(x, 12)
    assert list(c.lags) == list(range(1, 13))
    assert len(c.acf) == len(c.pacf) == 12
    assert c.band == pytest.approx(1.96 / np.sqrt(100))
    assert list(c.to_frame().columns) == ["lag", "acf", "pacf", "lower", "upper"]


def test_correlogram_ignores_undefined_residuals(engine):
    x = np.concatenate([[np.nan, np.nan], np.random.default_rng(1).normal(size=64)])
    assert engine.compute_acf_pacf(x, 5).n == 64


@pytest.mark.parametrize("max_lag", [0, 50, 80])
def test_correlogram_rejects_bad_max_lag(engine, max_lag):
    with pytest.raises(ValueError):
        engine.compute_acf_pacf(np.random.default_rng(0).normal(size=100), max_lag)


def test_ljung_box_detects_autocorrelation(engine):
    result = engine.ljung_box_test(create_ar1_residuals(), lags=10)
    assert result.test_type == DiagnosticTest.LJUNG_BOX
    assert result.p_value < 0.01
    assert not result.passed
    assert result.degrees_of_freedom == 10
    assert "Serial correlation detected" in result.interpretation


def test_ljung_box_degrees_of_freedom(engine):
    x = np.random.default_rng(2).normal(size=150)
    assert engine.ljung_box_test(x, lags=12, model_df=2).degrees_of_freedom == 10
    # Lags are raised to keep at least one degree of freedom
    assert engine.ljung_box_test(x, lags=2, model_df=3).degrees_of_freedom == 1


def test_passed_matches_p_value(engine):
    x = np.random.default_rng(3).normal(size=150)
    for result in (engine.ljung_box_test(x, 10), engine.jarque_bera_test(x), engine.shapiro_wilk_test(x)):
        assert 0.0 <= result.p_value <= 1.0
        assert result.passed == (result.p_value >= 0.05)


def test_normality_tests_reject_heavy_tails(engine):
    x = np.random.default_rng(4).standard_t(df=2, size=500)
    assert not engine.jarque_bera_test(x).passed
    assert not engine.shapiro_wilk_test(x).passed
    assert "skewness" in engine.jarque_bera_test(x).additional_stats


def test_arch_lm_detects_volatility_clustering(engine):
    rng = np.random.default_rng(123)
    n = 500
    resid = np.zeros(n)
    for t in range(1, n):
        resid[t] = rng.normal(0.0, np.sqrt(0.2 + 0.7 * resid[t - 1] ** 2))
    result = engine.arch_lm_test(resid, lags=4)
    assert result.test_type == DiagnosticTest.ARCH_LM
    assert result.p_value < 0.01


def test_fisher_g_finds_hidden_period(engine):
    result = engine.fisher_g_test(create_periodic_residuals())
    assert result.p_value < 0.001
    assert result.additional_stats["dominant_period"] == pytest.approx(6.0)
    assert "period" in result.interpretation


def test_fisher_g_pvalue_exact_values():
    # m=2: P(g > x) = 2(1 - x) for x > 1/2
    assert fisher_g_pvalue(0.75, 2) == pytest.approx(0.5)
    # g can never be below 1/m
    assert fisher_g_pvalue(1.0 / 3.0, 3) == pytest.approx(1.0)
    assert fisher_g_pvalue(0.9, 50) < 1e-30
    assert np.isnan(fisher_g_pvalue(0.5, 1))


def test_fisher_g_needs_enough_points(engine):
    with pytest.raises(ValueError):
        engine.fisher_g_test(np.arange(5.0))


def test_comprehensive_report_from_fitted_model(drift_series):
    fit = SarimaxFitter(show_progress=False).fit(drift_series, ModelSpec(p=1, d=1, q=0, s=4))
    residuals_before = np.array(fit.residuals)

    report = run_comprehensive_diagnostics(fit, significance_level=0.05)

    assert report.model_name == fit.label
    assert report.n_residuals == len(drift_series) - 1
    assert report.correlogram is not None
    assert {"ljung_box", "jarque_bera", "fisher_g", "arch_lm", "shapiro_wilk"} <= set(report.test_results)
    # One AR coefficient is removed from the Ljung-Box degrees of freedom
    lb = report.test_results["ljung_box"]
    assert lb.degrees_of_freedom == min(8, report.n_residuals // 5) - 1

    frame = report.to_frame()
    assert isinstance(frame, pd.DataFrame)
    assert len(frame) == len(report.test_results)
    assert isinstance(report.overall_adequate, bool)
    # Diagnostics never modify the model
    np.testing.assert_array_equal(fit.residuals, residuals_before)


def test_comprehensive_report_flags_serial_correlation():
    report = run_comprehensive_diagnostics(create_ar1_residuals(), model_name="AR residuals")
    assert report.model_name == "AR residuals"
    assert not report.overall_adequate
    assert "Serial correlation in residuals" in report.overall_assessment["issues_detected"]
