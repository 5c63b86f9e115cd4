# econ_forecaster_src/series.py

"""
Immutable value types shared by every stage of the pipeline.

- TimeSeries: contiguous observations tagged with a start period and frequency
- ModelSpec: non-seasonal and seasonal ARIMA orders
- Coefficient / FittedModel: the outcome of one maximum-likelihood fit
- ForecastResult: point forecasts and interval bounds for h future periods

Values are stored in read-only numpy arrays so that a series or a fit handed
from one stage to the next cannot be modified in place.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union
import logging

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import InvalidOrderError

logger = logging.getLogger(__name__)

# Observations per year -> pandas period alias
FREQUENCY_ALIASES: Dict[int, str] = {1: "Y", 4: "Q", 12: "M"}
_ALIAS_FREQUENCIES: Dict[str, int] = {"Y": 1, "A": 1, "Q": 4, "M": 12}


def _readonly(values: Union[Sequence[float], np.ndarray]) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.flags.writeable = False
    return arr


def _coerce_start(start: Any, frequency: int) -> pd.Period:
    """Normalize a start specification to a pandas Period at ``frequency``."""
    alias = FREQUENCY_ALIASES[frequency]
    if isinstance(start, pd.Period):
        prefix = start.freqstr.split("-")[0]
        if _ALIAS_FREQUENCIES.get(prefix) != frequency:
            raise ValueError(
                f"Start period {start} (freq {start.freqstr}) does not match frequency {frequency}"
            )
        return start
    if isinstance(start, tuple):
        # R-style (year, sub-period) pair, e.g. (1990, 1)
        year, sub = (start + (1,))[:2]
        if frequency == 12:
            return pd.Period(year=int(year), month=int(sub), freq=alias)
        if frequency == 4:
            return pd.Period(year=int(year), quarter=int(sub), freq=alias)
        return pd.Period(year=int(year), freq=alias)
    return pd.Period(start, freq=alias)


@dataclass(frozen=True, eq=False)
class TimeSeries:
    """
    An ordered, gap-free sequence of observations at a fixed frequency.

    Parameters
    ----------
    values : array-like
        One-dimensional observations, copied into a read-only float array.
    start : pd.Period, str or tuple
        First period. Tuples follow the ``(year, sub_period)`` convention.
    frequency : int
        Observations per year (1, 4 or 12).
    name : str, optional
        Series label used in logs, tables and plots.
    """

    values: np.ndarray
    start: pd.Period
    frequency: int
    name: Optional[str] = None

    def __post_init__(self):
        if self.frequency not in FREQUENCY_ALIASES:
            raise ValueError(
                f"Unsupported frequency {self.frequency}; expected one of {sorted(FREQUENCY_ALIASES)}"
            )
        arr = _readonly(self.values)
        if arr.ndim != 1:
            raise ValueError("TimeSeries values must be one-dimensional")
        object.__setattr__(self, "values", arr)
        object.__setattr__(self, "start", _coerce_start(self.start, self.frequency))

    def __len__(self) -> int:
        return len(self.values)

    @property
    def end(self) -> pd.Period:
        return self.start + (len(self.values) - 1)

    @property
    def index(self) -> pd.PeriodIndex:
        return pd.period_range(start=self.start, periods=len(self.values), freq=self.start.freq)

    def to_series(self) -> pd.Series:
        return pd.Series(np.array(self.values), index=self.index, name=self.name)

    def with_values(self, values: Union[Sequence[float], np.ndarray],
                    start: Optional[pd.Period] = None,
                    name: Optional[str] = None) -> "TimeSeries":
        """Build a derived series at the same frequency."""
        return TimeSeries(
            values=values,
            start=self.start if start is None else start,
            frequency=self.frequency,
            name=self.name if name is None else name,
        )


@dataclass(frozen=True)
class ModelSpec:
    """
    Seasonal ARIMA order ``(p, d, q) x (P, D, Q)[s]``.

    ``include_constant`` adds a mean when the model is not differenced and a
    drift when it is differenced exactly once (d + D == 1). It is ignored for
    higher total differencing.
    """

    p: int = 0
    d: int = 0
    q: int = 0
    P: int = 0
    D: int = 0
    Q: int = 0
    s: int = 1
    include_constant: bool = True

    def __post_init__(self):
        orders = (self.p, self.d, self.q, self.P, self.D, self.Q)
        if any(int(o) != o or o < 0 for o in orders):
            raise InvalidOrderError(f"Orders must be non-negative integers, got {orders}")
        if self.s < 1:
            raise InvalidOrderError(f"Seasonal period must be >= 1, got {self.s}")
        if self.s == 1 and (self.P or self.D or self.Q):
            raise InvalidOrderError("Seasonal orders require a seasonal period s > 1")

    @property
    def order(self) -> Tuple[int, int, int]:
        return (self.p, self.d, self.q)

    @property
    def seasonal_order(self) -> Tuple[int, int, int, int]:
        if self.s == 1 or not (self.P or self.D or self.Q):
            return (0, 0, 0, 0)
        return (self.P, self.D, self.Q, self.s)

    @property
    def n_arma_params(self) -> int:
        return self.p + self.q + self.P + self.Q

    @property
    def n_lost(self) -> int:
        """Observations consumed by differencing."""
        return self.d + self.s * self.D

    @property
    def has_constant(self) -> bool:
        return self.include_constant and (self.d + self.D) <= 1

    @property
    def constant_name(self) -> str:
        return "drift" if (self.d + self.D) == 1 else "intercept"

    @property
    def n_params(self) -> int:
        """Estimated parameters including the innovation variance."""
        return self.n_arma_params + int(self.has_constant) + 1

    @property
    def label(self) -> str:
        text = f"ARIMA({self.p},{self.d},{self.q})"
        if self.s > 1:
            text += f"({self.P},{self.D},{self.Q})[{self.s}]"
        if self.has_constant:
            text += f" with {'drift' if (self.d + self.D) == 1 else 'mean'}"
        return text


@dataclass(frozen=True)
class Coefficient:
    """Point estimate and standard error of one model term."""

    estimate: float
    std_error: float

    @property
    def z_value(self) -> float:
        if not np.isfinite(self.std_error) or self.std_error <= 0:
            return float("nan")
        return self.estimate / self.std_error

    @property
    def p_value(self) -> float:
        z = self.z_value
        if not np.isfinite(z):
            return float("nan")
        return float(2.0 * stats.norm.sf(abs(z)))

    def is_significant(self, alpha: float = 0.05) -> bool:
        p = self.p_value
        return bool(np.isfinite(p) and p < alpha)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Result of fitting one ModelSpec to one TimeSeries.

    ``residuals`` has the same length as the training series; the first
    ``d + s*D`` entries are NaN because differencing leaves them undefined.
    ``results`` keeps the estimator's own results object for forecasting.
    """

    spec: ModelSpec
    series: TimeSeries
    coefficients: Mapping[str, Coefficient]
    residuals: np.ndarray
    loglik: float
    aic: float
    aicc: float
    bic: float
    sigma2: float
    n_params: int
    n_effective: int
    log_scale: bool = False
    results: Any = field(default=None, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "residuals", _readonly(self.residuals))
        object.__setattr__(self, "coefficients", dict(self.coefficients))

    @property
    def label(self) -> str:
        return self.spec.label

    @property
    def residual_series(self) -> TimeSeries:
        return self.series.with_values(self.residuals, name=f"{self.series.name or 'series'} residuals")

    def coefficient_table(self) -> pd.DataFrame:
        rows = [
            {
                "term": term,
                "estimate": c.estimate,
                "std_error": c.std_error,
                "z": c.z_value,
                "p_value": c.p_value,
            }
            for term, c in self.coefficients.items()
        ]
        return pd.DataFrame(rows, columns=["term", "estimate", "std_error", "z", "p_value"])

    def summary_text(self) -> str:
        """One-paragraph textual summary in the spirit of a console fit printout."""
        lines = [f"{self.label} on {self.series.name or 'series'} (n_eff={self.n_effective})"]
        for term, c in self.coefficients.items():
            lines.append(f"  {term:>12s} {c.estimate: .4f} (s.e. {c.std_error:.4f})")
        lines.append(
            f"  sigma^2={self.sigma2:.6g}  log likelihood={self.loglik:.2f}  "
            f"AIC={self.aic:.2f}  AICc={self.aicc:.2f}  BIC={self.bic:.2f}"
        )
        return "\n".join(lines)


@dataclass(frozen=True, eq=False)
class ForecastResult:
    """Point forecasts and per-level interval bounds for ``horizon`` periods."""

    model: FittedModel
    index: pd.PeriodIndex
    mean: np.ndarray
    lower: Mapping[int, np.ndarray]
    upper: Mapping[int, np.ndarray]
    levels: Tuple[int, ...]
    log_scale: bool = False

    def __post_init__(self):
        object.__setattr__(self, "mean", _readonly(self.mean))
        object.__setattr__(self, "lower", {k: _readonly(v) for k, v in self.lower.items()})
        object.__setattr__(self, "upper", {k: _readonly(v) for k, v in self.upper.items()})

    @property
    def horizon(self) -> int:
        return len(self.mean)

    def to_frame(self) -> pd.DataFrame:
        data = {"mean": np.array(self.mean)}
        for lvl in self.levels:
            data[f"lo_{lvl}"] = np.array(self.lower[lvl])
            data[f"hi_{lvl}"] = np.array(self.upper[lvl])
        return pd.DataFrame(data, index=self.index)
