# econ_forecaster_src/comparison_utils.py

import pandas as pd
from typing import Iterable, List, Optional, Tuple
import logging

from .series import FittedModel

logger = logging.getLogger(__name__)

COMPARISON_COLUMNS: List[str] = [
    "model", "order", "seasonal_order", "AICc", "AIC", "BIC", "loglik", "sigma2", "k",
]


def compare_models(models: Iterable[FittedModel]) -> pd.DataFrame:
    """
    Tabulate fitted models ranked by AICc.

    Parameters
    ----------
    models : Iterable[FittedModel]
        Fits to compare; they are only read

    Returns
    -------
    pd.DataFrame
        One row per model with columns ``COMPARISON_COLUMNS``, sorted by AICc
        ascending. The sort is stable, so models with equal AICc keep their
        input order. Empty input gives an empty table with the same columns.

    Notes
    -----
    AICc is only comparable between models with the same differencing orders
    and the same data transform; the table does not check this.
    """
    rows = [
        {
            "model": m.label,
            "order": m.spec.order,
            "seasonal_order": m.spec.seasonal_order[:3],
            "AICc": m.aicc,
            "AIC": m.aic,
            "BIC": m.bic,
            "loglik": m.loglik,
            "sigma2": m.sigma2,
            "k": m.n_params,
        }
        for m in models
    ]
    table = pd.DataFrame(rows, columns=COMPARISON_COLUMNS)
    if table.empty:
        return table
    mixed = {(r[0][1], r[1][1]) for r in zip(table["order"], table["seasonal_order"])}
    if len(mixed) > 1:
        logger.warning("Comparing models with different differencing orders %s; AICc values are not comparable",
                       sorted(mixed))
    return table.sort_values("AICc", kind="mergesort").reset_index(drop=True)


def differencing_groups(models: Iterable[FittedModel]) -> List[Tuple[int, int]]:
    """Distinct ``(d, D)`` pairs in first-seen order."""
    groups: List[Tuple[int, int]] = []
    for m in models:
        key = (m.spec.d, m.spec.D)
        if key not in groups:
            groups.append(key)
    return groups


def best_model(models: Iterable[FittedModel],
               differencing: Optional[Tuple[int, int]] = None) -> FittedModel:
    """
    The first model in ``compare_models`` order.

    Parameters
    ----------
    models : Iterable[FittedModel]
        Fits to choose from
    differencing : Tuple[int, int], optional
        Only consider fits with these ``(d, D)`` orders

    Raises
    ------
    ValueError
        If no model (with the requested differencing) is given
    """
    models = list(models)
    if differencing is not None:
        models = [m for m in models if (m.spec.d, m.spec.D) == tuple(differencing)]
    if not models:
        raise ValueError("No fitted models to choose from")
    # min() keeps the first of equal keys, matching the stable sort
    return min(models, key=lambda m: m.aicc)
