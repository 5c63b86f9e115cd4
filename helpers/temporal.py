# -*- coding: utf-8 -*-
"""
Temporal utilities for frequency aggregation.

Functions
---------
- aggregate_mean(series, target_frequency): Aggregate a series to a lower
  frequency by the arithmetic mean of consecutive, complete windows.
- monthly_to_quarterly_avg(series): Monthly -> quarterly by within-quarter
  mean. This preserves time-causality (uses only months within each quarter).
"""

from __future__ import annotations

import logging

import numpy as np

from econ_forecaster_src.exceptions import IncompleteWindowError
from econ_forecaster_src.series import FREQUENCY_ALIASES, TimeSeries

logger = logging.getLogger(__name__)


def aggregate_mean(series: TimeSeries, target_frequency: int) -> TimeSeries:
    """
    Aggregate a series to ``target_frequency`` by within-window mean.

    Parameters
    ----------
    series : TimeSeries
        Source series; its frequency must be a multiple of ``target_frequency``.
    target_frequency : int
        Observations per year of the output (e.g. 4 for quarterly).

    Returns
    -------
    TimeSeries
        ``len(series) // window`` observations where ``window`` is
        ``series.frequency // target_frequency``.

    Raises
    ------
    ValueError
        If the target frequency is unsupported or does not divide the source.
    IncompleteWindowError
        If the series starts part-way through a window or ends with a partial
        window. Partial windows are never silently truncated.
    """
    if target_frequency not in FREQUENCY_ALIASES:
        raise ValueError(f"Unsupported target frequency {target_frequency}")
    if target_frequency > series.frequency or series.frequency % target_frequency:
        raise ValueError(
            f"Cannot aggregate frequency {series.frequency} to {target_frequency}"
        )
    window = series.frequency // target_frequency

    offset = series.start.ordinal % window
    if offset:
        raise IncompleteWindowError(
            f"{series.name or 'series'} starts at {series.start}, {offset} period(s) into a window of {window}"
        )
    remainder = len(series) % window
    if remainder:
        raise IncompleteWindowError(
            f"{series.name or 'series'} ends with a partial window: {remainder} of {window} observations after {series.end - remainder}"
        )

    means = np.asarray(series.values).reshape(-1, window).mean(axis=1)
    start = series.start.asfreq(FREQUENCY_ALIASES[target_frequency])
    logger.debug("Aggregated %d observations into %d windows of %d", len(series), len(means), window)
    return TimeSeries(means, start=start, frequency=target_frequency, name=series.name)


def monthly_to_quarterly_avg(series: TimeSeries) -> TimeSeries:
    """
    Aggregate a monthly series to quarterly by within-quarter mean.

    Notes
    -----
    - Time-causality: For quarter Q, only months within Q are used (no look-ahead).
    - Each quarter must be complete (Jan-Mar, Apr-Jun, Jul-Sep, Oct-Dec).
    """
    if series.frequency != 12:
        raise ValueError("monthly_to_quarterly_avg expects a monthly series (frequency 12).")
    return aggregate_mean(series, 4)
