"""Residual diagnostics for seasonal ARIMA fits.

This module checks whether a fitted model's residuals look like white noise.
It only reports; it never alters or refits a model.

Features:
- Sample ACF/PACF with approximate 95% bands (+-1.96/sqrt(n))
- Ljung-Box portmanteau test for serial correlation
- Jarque-Bera and Shapiro-Wilk tests for normality
- ARCH-LM test for conditional heteroskedasticity
- Fisher's g test for a hidden periodic component
- Overall adequacy assessment
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats
from scipy.signal import periodogram
from scipy.special import comb

from statsmodels.stats.diagnostic import acorr_ljungbox, het_arch
from statsmodels.stats.stattools import jarque_bera
from statsmodels.tsa.stattools import acf, pacf

from econ_forecaster_src.config_utils import get_config_value
from econ_forecaster_src.series import FittedModel, TimeSeries

logger = logging.getLogger(__name__)

ResidualInput = Union[TimeSeries, pd.Series, np.ndarray, List[float]]


class DiagnosticTest(Enum):
    """Types of residual diagnostic tests."""
    LJUNG_BOX = "ljung_box"
    JARQUE_BERA = "jarque_bera"
    SHAPIRO_WILK = "shapiro_wilk"
    ARCH_LM = "arch_lm"
    FISHER_G = "fisher_g"


@dataclass
class DiagnosticResult:
    """Results from a single diagnostic test."""

    test_name: str
    test_type: DiagnosticTest
    test_statistic: float
    p_value: float
    significance_level: float = 0.05
    degrees_of_freedom: Optional[int] = None

    # Additional test-specific information
    test_description: Optional[str] = None
    additional_stats: Dict[str, float] = field(default_factory=dict)

    @property
    def is_significant(self) -> bool:
        """Check if test rejects null hypothesis."""
        return bool(np.isfinite(self.p_value) and self.p_value < self.significance_level)

    @property
    def passed(self) -> bool:
        """The residuals pass when the null hypothesis is not rejected."""
        return bool(np.isfinite(self.p_value) and self.p_value >= self.significance_level)

    @property
    def interpretation(self) -> str:
        """Get interpretation of test result."""
        if self.test_type == DiagnosticTest.LJUNG_BOX:
            if self.is_significant:
                return "Serial correlation detected in residuals"
            return "No significant serial correlation in residuals"
        elif self.test_type in (DiagnosticTest.JARQUE_BERA, DiagnosticTest.SHAPIRO_WILK):
            if self.is_significant:
                return "Residuals not normally distributed"
            return "Residuals appear normally distributed"
        elif self.test_type == DiagnosticTest.ARCH_LM:
            if self.is_significant:
                return "ARCH effects detected in residuals"
            return "No ARCH effects detected in residuals"
        elif self.test_type == DiagnosticTest.FISHER_G:
            if self.is_significant:
                period = self.additional_stats.get("dominant_period", float("nan"))
                return f"Periodic component detected in residuals (period ~{period:.1f})"
            return "No significant periodicity in residuals"
        if self.is_significant:
            return f"Null hypothesis rejected (p={self.p_value:.4f})"
        return f"Null hypothesis not rejected (p={self.p_value:.4f})"


@dataclass
class Correlogram:
    """Sample ACF and PACF for lags 1..max_lag with the white-noise band."""

    lags: np.ndarray
    acf: np.ndarray
    pacf: np.ndarray
    band: float
    n: int

    def significant_lags(self, which: str = "acf") -> List[int]:
        values = self.acf if which == "acf" else self.pacf
        return [int(l) for l, v in zip(self.lags, values) if abs(v) > self.band]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"lag": self.lags, "acf": self.acf, "pacf": self.pacf,
                             "lower": -self.band, "upper": self.band})


@dataclass
class DiagnosticReport:
    """Everything the engine found about one residual series."""

    model_name: str
    n_residuals: int
    correlogram: Optional[Correlogram]
    test_results: Dict[str, DiagnosticResult]
    summary_statistics: Dict[str, float]
    overall_assessment: Dict[str, Any]

    @property
    def overall_adequate(self) -> bool:
        return bool(self.overall_assessment.get("overall_adequate", False))

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                "test": r.test_name,
                "statistic": r.test_statistic,
                "df": r.degrees_of_freedom,
                "p_value": r.p_value,
                "passed": r.passed,
                "interpretation": r.interpretation,
            }
            for r in self.test_results.values()
        ]
        return pd.DataFrame(rows, columns=["test", "statistic", "df", "p_value", "passed", "interpretation"])


def clean_residuals(residuals: ResidualInput) -> np.ndarray:
    """Residual values as a float array with undefined (NaN) entries removed."""
    if isinstance(residuals, TimeSeries):
        values = residuals.values
    else:
        values = residuals
    arr = np.asarray(values, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def default_ljung_box_lags(n: int, s: int = 1) -> int:
    """Lag rule of thumb: min(2s, n/5) for seasonal data, min(10, n/5) otherwise."""
    base = 2 * s if s > 1 else 10
    return max(1, min(base, n // 5))


def default_acf_lags(n: int, s: int = 1) -> int:
    """Enough lags to see three seasonal cycles while staying below n/2."""
    return max(1, min(max(10, 3 * s), n // 2 - 1))


def fisher_g_pvalue(g: float, m: int) -> float:
    """
    Exact p-value of Fisher's g statistic for ``m`` Fourier frequencies.

    ``P(G > g) = sum_{j=1}^{floor(1/g)} (-1)^(j-1) C(m, j) (1 - j g)^(m-1)``
    """
    if m < 2 or not np.isfinite(g) or g <= 0:
        return float("nan")
    upper = min(int(np.floor(1.0 / g)), m)
    j = np.arange(1, upper + 1)
    terms = (-1.0) ** (j - 1) * comb(m, j) * np.power(np.clip(1.0 - j * g, 0.0, None), m - 1)
    return float(np.clip(terms.sum(), 0.0, 1.0))


class ResidualDiagnostics:
    """Residual diagnostic testing."""

    def __init__(self, significance_level: Optional[float] = None):
        """Initialize residual diagnostics.

        Parameters
        ----------
        significance_level : float, optional
            Significance level for all tests (config
            ``diagnostics.significance_level``, default 0.05)
        """
        if significance_level is None:
            significance_level = get_config_value("diagnostics.significance_level", 0.05)
        self.significance_level = float(significance_level)

    def compute_acf_pacf(self, residuals: ResidualInput, max_lag: int) -> Correlogram:
        """Compute ACF and PACF for lags 1..max_lag.

        Raises
        ------
        ValueError
            If ``max_lag < 1`` or ``max_lag >= n/2``
        """
        x = clean_residuals(residuals)
        n = len(x)
        if max_lag < 1 or max_lag >= n / 2:
            raise ValueError(f"max_lag must satisfy 1 <= max_lag < n/2 (n={n}), got {max_lag}")

        logger.debug("Computing ACF/PACF with %d lags", max_lag)
        acf_vals = acf(x, nlags=max_lag, fft=True)
        pacf_vals = pacf(x, nlags=max_lag, method="ywm")
        return Correlogram(
            lags=np.arange(1, max_lag + 1),
            acf=np.asarray(acf_vals[1:], dtype=float),
            pacf=np.asarray(pacf_vals[1:], dtype=float),
            band=1.96 / np.sqrt(n),
            n=n,
        )

    def ljung_box_test(self, residuals: ResidualInput, lags: int, model_df: int = 0) -> DiagnosticResult:
        """Ljung-Box test for serial correlation in residuals.

        Parameters
        ----------
        residuals : array-like
            Model residuals
        lags : int
            Number of autocorrelations included in the statistic
        model_df : int, default 0
            Estimated ARMA coefficients; subtracted from the degrees of freedom

        Returns
        -------
        DiagnosticResult
            Ljung-Box test results
        """
        x = clean_residuals(residuals)
        if lags <= model_df:
            logger.debug("Raising Ljung-Box lags from %d to %d to keep df positive", lags, model_df + 1)
            lags = model_df + 1
        if lags >= len(x):
            raise ValueError(f"Ljung-Box needs more observations than lags ({len(x)} <= {lags})")

        logger.debug("Running Ljung-Box test with %d lags (model_df=%d)", lags, model_df)
        lb = acorr_ljungbox(x, lags=[lags], model_df=model_df, return_df=True)
        return DiagnosticResult(
            test_name="Ljung-Box Test",
            test_type=DiagnosticTest.LJUNG_BOX,
            test_statistic=float(lb["lb_stat"].iloc[-1]),
            p_value=float(lb["lb_pvalue"].iloc[-1]),
            degrees_of_freedom=lags - model_df,
            significance_level=self.significance_level,
            test_description=f"Test for serial correlation in residuals (H0: No serial correlation, lags={lags})",
        )

    def ljung_box_table(self, residuals: ResidualInput, max_lag: int, model_df: int = 0) -> pd.DataFrame:
        """Ljung-Box statistics and p-values for every lag up to ``max_lag``."""
        x = clean_residuals(residuals)
        max_lag = int(min(max_lag, len(x) - 1))
        lb = acorr_ljungbox(x, lags=np.arange(1, max_lag + 1), model_df=model_df, return_df=True)
        lb.index.name = "lag"
        return lb

    def jarque_bera_test(self, residuals: ResidualInput) -> DiagnosticResult:
        """Jarque-Bera test for normality of residuals."""
        logger.debug("Running Jarque-Bera normality test")
        x = clean_residuals(residuals)
        jb_stat, jb_pval, skew, kurtosis = jarque_bera(x)
        return DiagnosticResult(
            test_name="Jarque-Bera Test",
            test_type=DiagnosticTest.JARQUE_BERA,
            test_statistic=float(jb_stat),
            p_value=float(jb_pval),
            degrees_of_freedom=2,
            significance_level=self.significance_level,
            test_description="Test for normality of residuals (H0: Residuals are normally distributed)",
            additional_stats={"skewness": float(skew), "kurtosis": float(kurtosis)},
        )

    def shapiro_wilk_test(self, residuals: ResidualInput) -> DiagnosticResult:
        """Shapiro-Wilk test for normality (for smaller samples)."""
        logger.debug("Running Shapiro-Wilk normality test")
        x = clean_residuals(residuals)
        if len(x) > 5000:
            logger.warning("Shapiro-Wilk test may be unreliable for large samples (n=%d)", len(x))
        sw_stat, sw_pval = stats.shapiro(x)
        return DiagnosticResult(
            test_name="Shapiro-Wilk Test",
            test_type=DiagnosticTest.SHAPIRO_WILK,
            test_statistic=float(sw_stat),
            p_value=float(sw_pval),
            significance_level=self.significance_level,
            test_description="Test for normality of residuals (H0: Residuals are normally distributed)",
        )

    def arch_lm_test(self, residuals: ResidualInput, lags: int = 4) -> DiagnosticResult:
        """ARCH-LM test for heteroskedasticity in residuals."""
        logger.debug("Running ARCH-LM test with %d lags", lags)
        x = clean_residuals(residuals)
        lm_stat, lm_pval, _, _ = het_arch(x, nlags=lags)
        return DiagnosticResult(
            test_name="ARCH-LM Test",
            test_type=DiagnosticTest.ARCH_LM,
            test_statistic=float(lm_stat),
            p_value=float(lm_pval),
            degrees_of_freedom=lags,
            significance_level=self.significance_level,
            test_description=f"Test for ARCH effects in residuals (H0: No ARCH effects, lags={lags})",
        )

    def fisher_g_test(self, residuals: ResidualInput) -> DiagnosticResult:
        """Fisher's g test for a periodic component in the residual spectrum.

        The statistic is the largest periodogram ordinate divided by the sum of
        all ordinates at the Fourier frequencies, excluding frequency zero and
        the Nyquist frequency.
        """
        x = clean_residuals(residuals)
        n = len(x)
        if n < 8:
            raise ValueError(f"Fisher's g test needs at least 8 observations, got {n}")

        freqs, power = periodogram(x - x.mean(), detrend=False, scaling="spectrum")
        mask = freqs > 0
        if n % 2 == 0:
            mask &= freqs < 0.5
        ordinates = power[mask]
        total = ordinates.sum()
        m = len(ordinates)
        if total <= 0:
            g, p_value, peak_freq = float("nan"), float("nan"), float("nan")
        else:
            peak = int(np.argmax(ordinates))
            g = float(ordinates[peak] / total)
            p_value = fisher_g_pvalue(g, m)
            peak_freq = float(freqs[mask][peak])

        return DiagnosticResult(
            test_name="Fisher's g Test",
            test_type=DiagnosticTest.FISHER_G,
            test_statistic=g,
            p_value=p_value,
            degrees_of_freedom=m,
            significance_level=self.significance_level,
            test_description="Test for a hidden periodicity (H0: Residuals are Gaussian white noise)",
            additional_stats={
                "dominant_frequency": peak_freq,
                "dominant_period": 1.0 / peak_freq if peak_freq and np.isfinite(peak_freq) else float("nan"),
            },
        )

    def run_comprehensive_diagnostics(self,
                                      residuals: ResidualInput,
                                      model_name: str = "SARIMA",
                                      model_df: int = 0,
                                      seasonal_period: int = 1,
                                      ljung_box_lags: Optional[int] = None,
                                      max_lag: Optional[int] = None) -> DiagnosticReport:
        """Run the full residual diagnostic battery.

        Parameters
        ----------
        residuals : array-like
            Model residuals (NaN entries are ignored)
        model_name : str
            Model name for reporting
        model_df : int
            Number of estimated ARMA coefficients (Ljung-Box df correction)
        seasonal_period : int
            Seasonal period used for the default lag choices
        ljung_box_lags, max_lag : int, optional
            Overrides for the Ljung-Box lag and the correlogram length

        Returns
        -------
        DiagnosticReport
        """
        logger.info("Running residual diagnostics for %s", model_name)
        x = clean_residuals(residuals)
        n = len(x)

        if ljung_box_lags is None:
            ljung_box_lags = get_config_value("diagnostics.ljung_box_lags", None)
        if ljung_box_lags is None:
            ljung_box_lags = default_ljung_box_lags(n, seasonal_period)
        if max_lag is None:
            max_lag = get_config_value("diagnostics.acf_max_lag", None)
        if max_lag is None:
            max_lag = default_acf_lags(n, seasonal_period)

        correlogram = None
        try:
            correlogram = self.compute_acf_pacf(x, min(int(max_lag), max(1, (n - 1) // 2)))
        except ValueError as e:
            logger.warning("Correlogram skipped for %s: %s", model_name, e)

        test_functions = [
            ("ljung_box", lambda r: self.ljung_box_test(r, int(ljung_box_lags), model_df)),
            ("jarque_bera", self.jarque_bera_test),
            ("fisher_g", self.fisher_g_test),
            ("arch_lm", lambda r: self.arch_lm_test(r, lags=max(1, min(seasonal_period, n // 10, 12)))),
        ]
        if n <= 5000:
            test_functions.append(("shapiro_wilk", self.shapiro_wilk_test))

        test_results: Dict[str, DiagnosticResult] = {}
        for test_name, test_func in test_functions:
            try:
                result = test_func(x)
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.warning("Test %s skipped for %s: %s", test_name, model_name, e)
                continue
            test_results[test_name] = result
            logger.debug("%s: %s", result.test_name, result.interpretation)

        summary_statistics = {
            "mean": float(np.mean(x)) if n else float("nan"),
            "std": float(np.std(x, ddof=1)) if n > 1 else float("nan"),
            "skewness": float(stats.skew(x)) if n > 2 else float("nan"),
            "kurtosis": float(stats.kurtosis(x)) if n > 3 else float("nan"),
            "min": float(np.min(x)) if n else float("nan"),
            "max": float(np.max(x)) if n else float("nan"),
        }

        report = DiagnosticReport(
            model_name=model_name,
            n_residuals=n,
            correlogram=correlogram,
            test_results=test_results,
            summary_statistics=summary_statistics,
            overall_assessment=self._assess_model_adequacy(test_results),
        )
        logger.info("Diagnostics for %s: %s", model_name,
                    "adequate" if report.overall_adequate else "issues detected")
        return report

    def _assess_model_adequacy(self, test_results: Dict[str, DiagnosticResult]) -> Dict[str, Any]:
        """Assess overall model adequacy based on test results."""
        assessment = {
            "issues_detected": [],
            "warnings": [],
            "recommendations": [],
            "overall_adequate": "ljung_box" in test_results,
        }

        for result in test_results.values():
            if not result.is_significant:
                continue
            if result.test_type == DiagnosticTest.LJUNG_BOX:
                assessment["issues_detected"].append("Serial correlation in residuals")
                assessment["recommendations"].append("Consider increasing AR or MA order")
                assessment["overall_adequate"] = False
            elif result.test_type == DiagnosticTest.FISHER_G:
                assessment["issues_detected"].append(result.interpretation)
                assessment["recommendations"].append("Check the seasonal period and seasonal orders")
                assessment["overall_adequate"] = False
            elif result.test_type == DiagnosticTest.ARCH_LM:
                assessment["warnings"].append("Heteroskedasticity (ARCH effects)")
                assessment["recommendations"].append("Prediction intervals may be too narrow in volatile periods")
            elif result.test_type in (DiagnosticTest.JARQUE_BERA, DiagnosticTest.SHAPIRO_WILK):
                if "Residuals not normally distributed" not in assessment["warnings"]:
                    assessment["warnings"].append("Residuals not normally distributed")
                    assessment["recommendations"].append(
                        "Interval coverage relies on normality; point forecasts are unaffected")

        if not assessment["issues_detected"] and not assessment["warnings"]:
            assessment["recommendations"].append("Model diagnostics look good - no major issues detected")

        return assessment


def run_comprehensive_diagnostics(target: Union[FittedModel, ResidualInput],
                                  model_name: Optional[str] = None,
                                  significance_level: Optional[float] = None,
                                  **kwargs) -> DiagnosticReport:
    """Convenience function for residual diagnostics.

    Accepts either a FittedModel, in which case the residuals, the ARMA degrees
    of freedom and the seasonal period are taken from the fit, or a plain
    residual series.
    """
    diagnostics = ResidualDiagnostics(significance_level)
    if isinstance(target, FittedModel):
        kwargs.setdefault("model_df", target.spec.n_arma_params)
        kwargs.setdefault("seasonal_period", target.spec.s)
        return diagnostics.run_comprehensive_diagnostics(
            target.residuals, model_name=model_name or target.label, **kwargs
        )
    return diagnostics.run_comprehensive_diagnostics(target, model_name=model_name or "residuals", **kwargs)
