# econ_forecaster_src/diagnostics_utils.py

from pathlib import Path
from typing import Optional
import logging

import numpy as np
import pandas as pd

from .file_utils import ensure_dir
from .plotting_utils import MatplotlibRenderer, PlotRenderer, correlogram_plot_data
from .series import FittedModel
from diagnostics import DiagnosticReport, ResidualDiagnostics, run_comprehensive_diagnostics

logger = logging.getLogger(__name__)


def save_residual_diagnostics(model: FittedModel,
                              out_dir: Path,
                              fname_prefix: str = "Residuals",
                              renderer: Optional[PlotRenderer] = None,
                              significance_level: Optional[float] = None) -> DiagnosticReport:
    """
    Run residual diagnostics for a fitted model and write the artifacts.

    Parameters
    ----------
    model : FittedModel
        Fit whose residuals are examined (the model itself is not modified)
    out_dir : Path
        Output directory where diagnostic artifacts will be written
    fname_prefix : str, default="Residuals"
        Prefix for output filenames to distinguish different models
    renderer : PlotRenderer, optional
        Figure backend; defaults to MatplotlibRenderer
    significance_level : float, optional
        Test level (config ``diagnostics.significance_level``)

    Returns
    -------
    DiagnosticReport
        The report the files were written from

    Notes
    -----
    Creates the following files:
    - {prefix}_tests.csv: one row per diagnostic test
    - {prefix}_LjungBox.csv: Ljung-Box statistics for lags 1..max_lag
    - {prefix}_ACF_PACF.png: residual correlogram with +-1.96/sqrt(n) bands
    """
    ensure_dir(out_dir)
    report = run_comprehensive_diagnostics(model, significance_level=significance_level)

    report.to_frame().to_csv(out_dir / f"{fname_prefix}_tests.csv", index=False)

    if report.correlogram is not None:
        engine = ResidualDiagnostics(significance_level)
        try:
            lb = engine.ljung_box_table(model.residual_series, int(report.correlogram.lags[-1]),
                                        model_df=0)
            lb.to_csv(out_dir / f"{fname_prefix}_LjungBox.csv", index=True)
        except ValueError as e:
            logger.debug("Ljung-Box table skipped: %s", e)

        renderer = renderer or MatplotlibRenderer()
        renderer.render_correlogram(
            correlogram_plot_data(report.correlogram, title=f"Residuals of {model.label}"),
            out_dir / f"{fname_prefix}_ACF_PACF.png",
        )
    else:
        logger.warning("Residual correlogram unavailable for %s", model.label)

    logger.info("Residual diagnostics for %s written to %s", model.label, out_dir)
    return report


def diagnostics_markdown(report: DiagnosticReport) -> str:
    """Render a diagnostic report as a markdown section body."""
    lines = []
    frame = report.to_frame()
    if frame.empty:
        lines.append("_No diagnostic tests could be run._")
    else:
        lines.append("| test | statistic | p-value | result |")
        lines.append("| --- | --- | --- | --- |")
        for _, row in frame.iterrows():
            stat = row["statistic"]
            pval = row["p_value"]
            stat_txt = f"{stat:.4f}" if np.isfinite(stat) else "NA"
            p_txt = f"{pval:.4f}" if pd.notna(pval) and np.isfinite(pval) else "NA"
            lines.append(f"| {row['test']} | {stat_txt} | {p_txt} | {row['interpretation']} |")

    if report.correlogram is not None:
        sig = report.correlogram.significant_lags("acf")
        lines.append("")
        lines.append(
            f"Residual ACF lags outside +-{report.correlogram.band:.3f}: "
            + (", ".join(str(l) for l in sig) if sig else "none")
        )

    assessment = report.overall_assessment
    lines.append("")
    lines.append(f"**Overall:** {'adequate' if report.overall_adequate else 'issues detected'}")
    for rec in assessment.get("recommendations", []):
        lines.append(f"- {rec}")
    return "\n".join(lines)
