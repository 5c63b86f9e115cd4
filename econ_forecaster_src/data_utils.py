# econ_forecaster_src/data_utils.py

import re
import pandas as pd
import numpy as np
from pathlib import Path
from typing import List, Optional, Union
import logging

from .exceptions import DataFormatError
from .series import TimeSeries

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("series_id", "period", "value")

# Period codes that carry an annual aggregate rather than an observation
ANNUAL_PLACEHOLDERS = {("M", 13), ("Q", 5)}

_PERIOD_RE = r"^(?:(?P<year>\d{4})-?)?(?P<kind>[MQ])(?P<num>\d{1,2})$"
_KIND_FREQUENCY = {"M": 12, "Q": 4}


def sniff_delimiter(path: Path) -> Optional[str]:
    """
    Guess the field delimiter from the header line of a flat table.

    Returns ',' or a tab when the header contains one, otherwise None to signal
    that fields are separated by runs of whitespace.
    """
    with path.open("r", encoding="utf-8") as f:
        header = f.readline()
    if "\t" in header:
        return "\t"
    if "," in header:
        return ","
    return None


def available_series_ids(df: pd.DataFrame) -> List[str]:
    """Return the distinct (stripped) series identifiers present in a table."""
    cols = {str(c).strip().lower(): c for c in df.columns}
    if "series_id" not in cols:
        return []
    return sorted(df[cols["series_id"]].astype(str).str.strip().unique().tolist())


def load_series_frame(df: pd.DataFrame, series_id: str) -> TimeSeries:
    """
    Extract one series from a flat table of observations.

    The table follows the layout of statistical-agency flat files: one row per
    observation with ``series_id``, ``period`` and ``value`` columns, plus a
    ``year`` column when periods are written as ``M01``..``M12`` or
    ``Q01``..``Q04``. Periods may instead embed the year (``2019M01``,
    ``2019-M01``, ``2019Q1``).

    Parameters
    ----------
    df : pd.DataFrame
        Raw table; column names and cell values are whitespace-stripped.
    series_id : str
        Identifier of the series to extract.

    Returns
    -------
    TimeSeries
        Chronologically ordered observations, monthly (12) or quarterly (4).

    Raises
    ------
    DataFormatError
        If required columns are missing, no rows match, a period or value
        cannot be parsed, frequencies are mixed, or the periods contain
        duplicates or gaps.

    Notes
    -----
    Annual-average rows (``M13`` and ``Q05``) are dropped before ordering.
    """
    target = str(series_id).strip()
    frame = df.copy()
    frame.columns = [str(c).strip().lower() for c in frame.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise DataFormatError(f"Input table is missing required columns {missing}", target)

    ids = frame["series_id"].astype(str).str.strip()
    rows = frame.loc[ids == target]
    if rows.empty:
        raise DataFormatError("No rows match the requested series", target)
    logger.debug("Matched %d rows for %s", len(rows), target)

    parsed = rows["period"].astype(str).str.strip().str.upper().str.extract(_PERIOD_RE)
    bad = parsed["kind"].isna()
    if bad.any():
        sample = rows.loc[bad, "period"].iloc[0]
        raise DataFormatError(f"Unrecognised period code {sample!r}", target)

    if "year" in frame.columns:
        years = parsed["year"].fillna(rows["year"].astype(str).str.strip())
    else:
        years = parsed["year"]
    years = pd.to_numeric(years, errors="coerce")
    if years.isna().any():
        raise DataFormatError("Rows without a year (add a 'year' column or embed it in 'period')", target)

    kinds = parsed["kind"]
    nums = parsed["num"].astype(int)

    keep = ~pd.Series(
        [(k, n) in ANNUAL_PLACEHOLDERS for k, n in zip(kinds, nums)], index=rows.index
    )
    n_dropped = int((~keep).sum())
    if n_dropped:
        logger.info("Excluded %d annual-average rows for %s", n_dropped, target)
    rows, kinds, nums, years = rows[keep], kinds[keep], nums[keep], years[keep].astype(int)
    if rows.empty:
        raise DataFormatError("Only annual-average rows found", target)

    distinct_kinds = sorted(kinds.unique())
    if len(distinct_kinds) != 1:
        raise DataFormatError(f"Mixed period frequencies {distinct_kinds}", target)
    kind = distinct_kinds[0]
    frequency = _KIND_FREQUENCY[kind]
    if ((nums < 1) | (nums > frequency)).any():
        raise DataFormatError(f"Period numbers outside 1..{frequency}", target)

    values = pd.to_numeric(rows["value"].astype(str).str.strip(), errors="coerce")
    if values.isna().any():
        sample = rows.loc[values.isna(), "value"].iloc[0]
        raise DataFormatError(f"Non-numeric value {sample!r}", target)

    ordinals = years.to_numpy() * frequency + (nums.to_numpy() - 1)
    order = np.argsort(ordinals, kind="mergesort")
    ordinals = ordinals[order]
    diffs = np.diff(ordinals)
    if (diffs == 0).any():
        dup = ordinals[1:][diffs == 0][0]
        raise DataFormatError(
            f"Duplicated period {dup // frequency}{kind}{dup % frequency + 1:02d}", target
        )
    if (diffs != 1).any():
        gap = ordinals[:-1][diffs != 1][0] + 1
        raise DataFormatError(
            f"Periods are not contiguous; first gap at {gap // frequency}{kind}{gap % frequency + 1:02d}",
            target,
        )

    start = (int(ordinals[0] // frequency), int(ordinals[0] % frequency) + 1)
    series = TimeSeries(values.to_numpy(dtype=float)[order], start=start, frequency=frequency, name=target)
    logger.info("Loaded %s: %d observations %s..%s (frequency %d)",
                target, len(series), series.start, series.end, frequency)
    return series


def load_series_table(path: Union[str, Path], series_id: str, delimiter: Optional[str] = None) -> TimeSeries:
    """
    Read a flat table from disk and extract one series.

    Parameters
    ----------
    path : Union[str, Path]
        Table with a header row. Comma, tab and whitespace separated files
        are accepted.
    series_id : str
        Identifier of the series to extract.
    delimiter : str, optional
        Field separator; auto-detected from the header when omitted.

    Returns
    -------
    TimeSeries

    Raises
    ------
    DataFormatError
        If the file is missing or the rows fail validation (see
        ``load_series_frame``).
    """
    path = Path(path)
    if not path.is_file():
        raise DataFormatError(f"Series table not found: {path}", series_id)

    if delimiter is None:
        delimiter = sniff_delimiter(path)

    logger.info("Loading series table from: %s", path)
    if delimiter is None:
        df = pd.read_csv(path, sep=r"\s+", dtype=str)
    else:
        df = pd.read_csv(path, sep=delimiter, dtype=str, skipinitialspace=True)
    return load_series_frame(df, series_id)
