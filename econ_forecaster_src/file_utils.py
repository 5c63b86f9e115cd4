# econ_forecaster_src/file_utils.py

import hashlib
import pandas as pd
import numpy as np
from pathlib import Path
from typing import List, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def resolve_path(path_str: str, base_dir: Path) -> Path:
    """
    Resolve a path string relative to a base directory if not absolute.

    Examples
    --------
    >>> resolve_path("data/file.tsv", Path("/project"))
    PosixPath('/project/data/file.tsv')
    >>> resolve_path("/absolute/path.tsv", Path("/project"))
    PosixPath('/absolute/path.tsv')
    """
    path = Path(path_str)
    return path if path.is_absolute() else (base_dir / path)


def get_report_md_path(args: Optional[object], base_dir: Path, series_id: str) -> Path:
    """
    Get the markdown report path with optional override.

    Parameters
    ----------
    args : Optional[object]
        Arguments object that may contain a ``report_md`` attribute
    base_dir : Path
        Base directory for default path construction
    series_id : str
        Series identifier used in the default file name

    Returns
    -------
    Path
        ``args.report_md`` if set, else ``{base_dir}/analysis/report_{series_id}.md``;
        parent directories are created
    """
    override = getattr(args, "report_md", None) if args is not None else None
    safe_id = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in series_id)
    p = Path(override) if override else (base_dir / "analysis" / f"report_{safe_id}.md")
    ensure_dir(p.parent)
    return p


def start_report_md(report_path: Path, title: str, preamble: str = "") -> None:
    """
    Create (or overwrite) a markdown report with a level-1 title and timestamp.
    """
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds")
    with report_path.open("w", encoding="utf-8") as f:
        f.write(f"# {title}\n\n")
        f.write(f"_generated: {ts}_\n")
        if preamble:
            f.write("\n" + preamble.strip() + "\n")


def append_report_md(report_path: Path, title: str, body: str) -> None:
    """
    Append a level-2 section to the markdown report.

    Parameters
    ----------
    report_path : Path
        Path to markdown file
    title : str
        Section title
    body : str
        Section content
    """
    with report_path.open("a", encoding="utf-8") as f:
        f.write(f"\n## {title}\n\n")
        f.write(body.strip() + "\n")


def _format_cell(value, float_fmt: str) -> str:
    if isinstance(value, (float, np.floating)):
        if not np.isfinite(value):
            return "NA"
        return format(float(value), float_fmt)
    return str(value)


def md_table_from_df(df: pd.DataFrame,
                     max_rows: int = 10,
                     columns: Optional[List[str]] = None,
                     float_fmt: str = ".3f",
                     index: bool = False) -> str:
    """
    Convert a DataFrame to markdown table format.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to convert
    max_rows : int, default=10
        Maximum number of rows to include
    columns : Optional[List[str]]
        Specific columns to include (None for all); unknown names are ignored
    float_fmt : str, default=".3f"
        Format spec for float cells; non-finite floats render as ``NA``
    index : bool, default=False
        Include the index as the first column

    Returns
    -------
    str
        Markdown table string, or empty string when there is nothing to show
    """
    if columns is not None:
        keep = [c for c in columns if c in df.columns]
        if keep:
            df = df.loc[:, keep]

    df_disp = df.head(max_rows).copy()
    if index:
        df_disp = df_disp.reset_index()
    cols = list(df_disp.columns)
    if not cols:
        return ""

    header = "| " + " | ".join(str(c) for c in cols) + " |"
    separator = "| " + " | ".join("---" for _ in cols) + " |"
    rows = []
    for row in df_disp.itertuples(index=False):
        rows.append("| " + " | ".join(_format_cell(v, float_fmt) for v in row) + " |")
    return "\n".join([header, separator] + rows)


def get_file_hash(file_path: Path, algorithm: str = "sha256") -> Optional[str]:
    """
    Calculate hash of file contents, recorded in the report for provenance.

    Returns
    -------
    Optional[str]
        Hex digest of file hash, or None if the file does not exist
    """
    if not file_path.exists():
        return None
    hasher = hashlib.new(algorithm)
    with file_path.open("rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            hasher.update(chunk)
    return hasher.hexdigest()
