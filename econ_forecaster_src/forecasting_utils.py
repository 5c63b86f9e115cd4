# econ_forecaster_src/forecasting_utils.py

import warnings
import numpy as np
import pandas as pd
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from itertools import product
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from tqdm.auto import tqdm
import logging

from statsmodels.tsa.statespace.sarimax import SARIMAX
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from .config_utils import get_config_value
from .exceptions import InvalidHorizonError, InvalidOrderError, NonConvergenceError
from .series import Coefficient, FittedModel, ForecastResult, ModelSpec, TimeSeries
from .transform_utils import adf_select_D, adf_select_d, difference_series

logger = logging.getLogger(__name__)


def aicc_from_aic(aic: float, k: int, n: int) -> float:
    """
    Small-sample corrected AIC: ``AIC + 2k(k+1)/(n-k-1)``.

    Parameters
    ----------
    aic : float
        Akaike information criterion
    k : int
        Number of estimated parameters, including the innovation variance
    n : int
        Number of observations left after differencing

    Returns
    -------
    float
        AICc, or +inf when ``n - k - 1 <= 0``
    """
    denom = n - k - 1
    if denom <= 0:
        return float("inf")
    return float(aic + 2.0 * k * (k + 1) / denom)


def optimizer_state(retvals: Dict) -> str:
    """Short description of the optimizer's return values for messages."""
    parts = [f"{key}={retvals[key]}" for key in ("converged", "warnflag", "iterations") if key in retvals]
    return ", ".join(parts) or "no optimizer output"


def budget_exhausted(retvals: Dict, maxiter: int, method: str = "lbfgs") -> bool:
    """
    True when the optimizer stopped because it ran out of iterations.

    L-BFGS sets ``warnflag=1`` for an exhausted iteration or evaluation
    budget; ``warnflag=2`` (an abnormal line-search stop, usually at the
    optimum) is not treated as a failure.
    """
    iterations = retvals.get("iterations")
    if iterations is not None and int(iterations) >= maxiter:
        return True
    return method == "lbfgs" and retvals.get("warnflag") == 1


@dataclass(frozen=True)
class OrderBounds:
    """
    Search space for the automatic order search.

    ``d`` and ``D`` are fixed when given and chosen with ADF heuristics when
    left as None. ``max_order`` caps ``p + q + P + Q``.
    """

    max_p: int = 2
    max_q: int = 2
    max_P: int = 1
    max_Q: int = 1
    max_order: Optional[int] = None
    d: Optional[int] = None
    D: Optional[int] = None
    s: int = 1
    include_constant: bool = True

    def __post_init__(self):
        maxima = (self.max_p, self.max_q, self.max_P, self.max_Q)
        if any(m < 0 for m in maxima):
            raise InvalidOrderError(f"Order maxima must be non-negative, got {maxima}")

    def candidate_specs(self, d: int, D: int) -> List[ModelSpec]:
        """Every (p, q, P, Q) combination within the bounds, as ModelSpecs."""
        seasonal = self.s > 1
        P_range = range(self.max_P + 1) if seasonal else [0]
        Q_range = range(self.max_Q + 1) if seasonal else [0]
        specs = []
        for p, q, P, Q in product(range(self.max_p + 1), range(self.max_q + 1), P_range, Q_range):
            if self.max_order is not None and p + q + P + Q > self.max_order:
                continue
            specs.append(ModelSpec(p=p, d=d, q=q, P=P, D=D if seasonal else 0, Q=Q, s=self.s,
                                   include_constant=self.include_constant))
        return specs


def selection_key(model: FittedModel) -> Tuple[float, int, Tuple[int, ...]]:
    """Ranking key: lowest AICc, then fewest parameters, then smallest order."""
    spec = model.spec
    return (model.aicc, model.n_params, (spec.p, spec.q, spec.P, spec.Q))


class Fitter(ABC):
    """
    Maximum-likelihood seasonal ARIMA estimator.

    The rest of the package only depends on this interface, so any correct
    estimator (a different library, a home-grown Kalman filter) can be
    substituted without touching the loader, diagnostics or comparator.
    """

    @abstractmethod
    def fit(self, series: TimeSeries, spec: ModelSpec, log_scale: bool = False) -> FittedModel:
        """Fit ``spec`` to ``series`` (raw, undifferenced)."""

    @abstractmethod
    def auto_fit(self, series: TimeSeries, bounds: OrderBounds, log_scale: bool = False) -> FittedModel:
        """Return the AICc-minimizing fit within ``bounds``."""


class SarimaxFitter(Fitter):
    """
    Fitter backed by statsmodels' state-space SARIMAX.

    Differencing is handled inside the model (``simple_differencing=False``)
    so the likelihood is evaluated on ``n - d - s*D`` effective observations
    and residuals line up with the input periods.

    Parameters
    ----------
    maxiter : int, optional
        Optimizer iteration budget (config ``model.fit.maxiter``, default 200)
    method : str, optional
        scipy optimizer name passed to ``SARIMAX.fit`` (config
        ``model.fit.method``, default 'lbfgs')
    n_jobs : int, default=1
        Worker processes used by ``auto_fit``
    show_progress : bool, default=True
        Display a tqdm progress bar during grid searches
    """

    def __init__(self, maxiter: Optional[int] = None, method: Optional[str] = None,
                 n_jobs: int = 1, show_progress: bool = True):
        self.maxiter = int(maxiter if maxiter is not None else get_config_value("model.fit.maxiter", 200))
        self.method = method or get_config_value("model.fit.method", "lbfgs")
        self.n_jobs = max(1, int(n_jobs))
        self.show_progress = show_progress

    def fit(self, series: TimeSeries, spec: ModelSpec, log_scale: bool = False) -> FittedModel:
        """
        Estimate one seasonal ARIMA model.

        Raises
        ------
        InvalidOrderError
            If the series leaves too few observations after differencing to
            estimate ``k`` parameters (``n_eff - k - 1 <= 0``)
        NonConvergenceError
            If the optimizer uses up its ``maxiter`` iteration budget
            or fails numerically
        """
        n_eff = len(series) - spec.n_lost
        k = spec.n_params
        if n_eff - k - 1 <= 0:
            raise InvalidOrderError(
                f"{len(series)} observations leave {n_eff} after differencing; "
                f"too few to estimate {k} parameters",
                spec,
            )

        model = SARIMAX(
            np.asarray(series.values, dtype=float),
            order=spec.order,
            seasonal_order=spec.seasonal_order,
            trend="c" if spec.has_constant else None,
            simple_differencing=False,
        )
        with warnings.catch_warnings():
            # Convergence is checked explicitly through mle_retvals below
            warnings.simplefilter("ignore", ConvergenceWarning)
            warnings.simplefilter("ignore", RuntimeWarning)
            try:
                res = model.fit(disp=False, maxiter=self.maxiter, method=self.method)
            except (np.linalg.LinAlgError, ValueError) as e:
                raise NonConvergenceError(f"Optimizer failed: {e}", spec) from e

        retvals = getattr(res, "mle_retvals", None) or {}
        if budget_exhausted(retvals, self.maxiter, self.method):
            raise NonConvergenceError(
                f"Optimizer stopped at the iteration limit ({optimizer_state(retvals)}, maxiter={self.maxiter})",
                spec,
            )
        if not bool(retvals.get("converged", True)):
            # Line-search stops near the optimum also report converged=False
            logger.debug("Accepting %s despite optimizer flag: %s", spec.label, optimizer_state(retvals))
        loglik = float(res.llf)
        if not np.isfinite(loglik):
            raise NonConvergenceError("Non-finite log-likelihood", spec)

        names = list(res.model.param_names)
        params = np.asarray(res.params, dtype=float)
        bse = np.asarray(res.bse, dtype=float)
        coefficients: Dict[str, Coefficient] = {}
        sigma2 = float("nan")
        for name, est, se in zip(names, params, bse):
            if name == "sigma2":
                sigma2 = float(est)
                continue
            term = spec.constant_name if name == "intercept" else name
            coefficients[term] = Coefficient(float(est), float(se))

        aic = -2.0 * loglik + 2.0 * k
        aicc = aicc_from_aic(aic, k, n_eff)
        bic = -2.0 * loglik + k * np.log(n_eff)

        resid = np.asarray(res.resid, dtype=float).copy()
        resid[: spec.n_lost] = np.nan

        fitted = FittedModel(
            spec=spec,
            series=series,
            coefficients=coefficients,
            residuals=resid,
            loglik=loglik,
            aic=float(aic),
            aicc=aicc,
            bic=float(bic),
            sigma2=sigma2,
            n_params=k,
            n_effective=n_eff,
            log_scale=log_scale,
            results=res,
        )
        logger.debug("Fitted %s: loglik=%.3f AICc=%.3f", spec.label, loglik, aicc)
        return fitted

    def auto_fit(self, series: TimeSeries, bounds: OrderBounds, log_scale: bool = False) -> FittedModel:
        """
        Bounded automatic order search ranked by AICc.

        Candidates that fail with NonConvergenceError or InvalidOrderError are
        skipped. Ties in AICc go to the model with fewer parameters.

        Raises
        ------
        NonConvergenceError
            If no candidate in the grid could be fitted
        """
        d, D = resolve_differencing(series, bounds)
        specs = bounds.candidate_specs(d, D)
        fits, failures = fit_candidates(series, specs, fitter=self, log_scale=log_scale)
        if not fits:
            raise NonConvergenceError(
                f"Automatic search failed: none of {len(specs)} candidates could be fitted "
                f"(d={d}, D={D}, s={bounds.s})"
            )
        best = min(fits, key=selection_key)
        logger.info("Automatic search selected %s (AICc=%.3f) from %d fitted / %d failed candidates",
                    best.label, best.aicc, len(fits), len(failures))
        return best


def resolve_differencing(series: TimeSeries, bounds: OrderBounds) -> Tuple[int, int]:
    """
    Fill in missing differencing orders with ADF heuristics.

    The seasonal order is chosen first and the non-seasonal order is then
    tested on the seasonally differenced series.
    """
    D = bounds.D
    if D is None:
        D = adf_select_D(series, bounds.s) if bounds.s > 1 else 0
        logger.info("Selected seasonal differencing D=%d by ADF heuristic", D)
    d = bounds.d
    if d is None:
        base = difference_series(series, D=D, s=bounds.s) if D else series
        d = adf_select_d(base)
        logger.info("Selected differencing d=%d by ADF heuristic", d)
    return d, D


def _fit_worker(fitter: "SarimaxFitter", series: TimeSeries, spec: ModelSpec,
                log_scale: bool) -> Tuple[ModelSpec, Optional[FittedModel], Optional[str]]:
    try:
        return spec, fitter.fit(series, spec, log_scale=log_scale), None
    except (NonConvergenceError, InvalidOrderError) as e:
        return spec, None, str(e)


def fit_candidates(series: TimeSeries,
                   specs: Sequence[ModelSpec],
                   fitter: Optional[Fitter] = None,
                   log_scale: bool = False) -> Tuple[List[FittedModel], Dict[str, str]]:
    """
    Fit every candidate specification, skipping the ones that fail.

    Parameters
    ----------
    series : TimeSeries
        Training series
    specs : Sequence[ModelSpec]
        Candidate models
    fitter : Fitter, optional
        Estimator (defaults to SarimaxFitter()); a SarimaxFitter with
        ``n_jobs > 1`` fits candidates in worker processes
    log_scale : bool, default=False
        Whether ``series`` is on log scale (recorded on each fit)

    Returns
    -------
    Tuple[List[FittedModel], Dict[str, str]]
        (successful fits in candidate order, failures as label -> message)

    Notes
    -----
    Each fit is a pure function of (series, spec), so parallel execution does
    not change the outcome; the results are only reordered to match ``specs``.
    """
    fitter = fitter or SarimaxFitter()
    n_jobs = getattr(fitter, "n_jobs", 1)
    show_progress = getattr(fitter, "show_progress", True)
    outcomes: Dict[ModelSpec, Tuple[Optional[FittedModel], Optional[str]]] = {}

    if n_jobs > 1 and len(specs) > 1:
        with ProcessPoolExecutor(max_workers=n_jobs) as pool:
            futures = [pool.submit(_fit_worker, fitter, series, spec, log_scale) for spec in specs]
            for fut in tqdm(as_completed(futures), total=len(futures),
                            desc="Grid search SARIMA", disable=not show_progress):
                spec, fitted, err = fut.result()
                outcomes[spec] = (fitted, err)
    else:
        for spec in tqdm(specs, desc="Grid search SARIMA", disable=not show_progress):
            _, fitted, err = _fit_worker(fitter, series, spec, log_scale)
            outcomes[spec] = (fitted, err)

    fits: List[FittedModel] = []
    failures: Dict[str, str] = {}
    for spec in specs:
        fitted, err = outcomes[spec]
        if fitted is not None:
            fits.append(fitted)
        else:
            logger.debug("Skipping %s: %s", spec.label, err)
            failures[spec.label] = err or "unknown failure"
    return fits, failures


def search_orders(series: TimeSeries,
                  bounds: OrderBounds,
                  fitter: Optional[Fitter] = None,
                  log_scale: bool = False) -> pd.DataFrame:
    """
    Grid-search seasonal ARIMA orders and rank by AICc.

    Returns
    -------
    pd.DataFrame
        Columns ['(p,q,P,Q)', 'model', 'AICc', 'AIC', 'BIC', 'k'] sorted by
        AICc, then k, then order. Failed candidates are omitted.
    """
    d, D = resolve_differencing(series, bounds)
    fits, _ = fit_candidates(series, bounds.candidate_specs(d, D), fitter=fitter, log_scale=log_scale)
    rows = [
        [(m.spec.p, m.spec.q, m.spec.P, m.spec.Q), m.label, m.aicc, m.aic, m.bic, m.n_params]
        for m in sorted(fits, key=selection_key)
    ]
    return pd.DataFrame(rows, columns=["(p,q,P,Q)", "model", "AICc", "AIC", "BIC", "k"])


def _validate_levels(levels: Iterable[float]) -> Tuple[int, ...]:
    out = sorted({int(lvl) for lvl in levels})
    if not out or any(not 0 < lvl < 100 for lvl in out):
        raise ValueError(f"Interval levels must lie strictly between 0 and 100, got {list(levels)}")
    return tuple(out)


def forecast(model: FittedModel,
             horizon: int,
             levels: Sequence[int] = (80, 95),
             log_scale: Optional[bool] = None) -> ForecastResult:
    """
    Produce h-step-ahead point forecasts and prediction intervals.

    Parameters
    ----------
    model : FittedModel
        Fit returned by a Fitter (must carry its estimator results)
    horizon : int
        Number of future periods (h >= 1)
    levels : Sequence[int], default=(80, 95)
        Interval coverages in percent
    log_scale : bool, optional
        Exponentiate point forecasts and bounds; defaults to ``model.log_scale``.
        Back-transformed intervals are asymmetric around the point forecast.

    Returns
    -------
    ForecastResult
        ``horizon`` point forecasts with matching lower/upper arrays per level

    Raises
    ------
    InvalidHorizonError
        If ``horizon`` is not a positive integer
    """
    if isinstance(horizon, bool) or not isinstance(horizon, (int, np.integer)) or horizon <= 0:
        raise InvalidHorizonError(horizon)
    lvls = _validate_levels(levels)
    if model.results is None:
        raise ValueError(f"{model.label} carries no estimator results; refit before forecasting")

    fc = model.results.get_forecast(steps=int(horizon))
    mean = np.asarray(fc.predicted_mean, dtype=float)
    lower: Dict[int, np.ndarray] = {}
    upper: Dict[int, np.ndarray] = {}
    for lvl in lvls:
        ci = np.asarray(fc.conf_int(alpha=1.0 - lvl / 100.0), dtype=float)
        lower[lvl] = ci[:, 0]
        upper[lvl] = ci[:, 1]

    use_log = model.log_scale if log_scale is None else bool(log_scale)
    if use_log:
        mean = np.exp(mean)
        lower = {lvl: np.exp(v) for lvl, v in lower.items()}
        upper = {lvl: np.exp(v) for lvl, v in upper.items()}

    index = pd.period_range(start=model.series.end + 1, periods=int(horizon), freq=model.series.start.freq)
    return ForecastResult(
        model=model,
        index=index,
        mean=mean,
        lower=lower,
        upper=upper,
        levels=lvls,
        log_scale=use_log,
    )
