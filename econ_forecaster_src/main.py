# econ_forecaster_src/main.py

"""
Seasonal ARIMA report for a single economic series.

Purpose
-------
- Load one series from a flat statistical table (series_id / year / period / value)
- Optionally average a monthly series to quarters and take logs
- Plot the series and the correlogram of its differenced form
- Fit user-chosen seasonal ARIMA candidates plus an automatic AICc order search
- Compare the candidates, check the residuals of the best one
- Score the best model on a hold-out tail, then forecast with intervals
- Write figures, CSV tables and a markdown report

Configuration-Driven Workflow
-----------------------------
Defaults live in config/defaults.yaml; a user YAML file can be layered on top
with --config. CLI arguments override configuration values where applicable.
"""

import argparse
import logging
import sys
import warnings
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .comparison_utils import best_model, compare_models, differencing_groups
from .config_utils import initialize_config, get_config_value
from .data_utils import load_series_table
from .diagnostics_utils import diagnostics_markdown, save_residual_diagnostics
from .exceptions import ForecasterError, InvalidOrderError, NonConvergenceError
from .file_utils import (
    append_report_md, ensure_dir, get_file_hash, get_report_md_path, md_table_from_df,
    resolve_path, start_report_md
)
from .forecasting_utils import Fitter, OrderBounds, SarimaxFitter, forecast, resolve_differencing
from .metrics_utils import compute_accuracy, holdout_split
from .parsing_utils import parse_candidates, parse_intervals_arg, validate_log_level
from .plotting_utils import (
    MatplotlibRenderer, PlotRenderer, correlogram_plot_data, forecast_fan_data, series_plot_data
)
from .series import FittedModel, TimeSeries
from .transform_utils import difference_series, log_transform
from diagnostics import ResidualDiagnostics
from helpers.temporal import monthly_to_quarterly_avg

logger = logging.getLogger(__name__)


def prepare_series(series: TimeSeries, quarterly: bool) -> TimeSeries:
    """Apply the optional monthly-to-quarterly aggregation."""
    if not quarterly:
        return series
    if series.frequency == 4:
        logger.info("Series %s is already quarterly; skipping aggregation", series.name)
        return series
    quarterly_series = monthly_to_quarterly_avg(series)
    logger.info("Aggregated %d monthly values to %d quarterly means", len(series), len(quarterly_series))
    return quarterly_series


def _search_bounds(s: int, include_constant: bool, d: Optional[int], D: Optional[int]) -> OrderBounds:
    return OrderBounds(
        max_p=get_config_value("model.search_space.max_p", 2),
        max_q=get_config_value("model.search_space.max_q", 2),
        max_P=get_config_value("model.search_space.max_P", 1),
        max_Q=get_config_value("model.search_space.max_Q", 1),
        max_order=get_config_value("model.search_space.max_order", None),
        d=d,
        D=D,
        s=s,
        include_constant=include_constant,
    )


def fit_candidate_models(series: TimeSeries,
                         candidates: Sequence[str],
                         s: int,
                         fitter: Fitter,
                         log_scale: bool,
                         auto: bool,
                         include_constant: bool = True) -> List[FittedModel]:
    """
    Fit the user candidates and, if requested, the automatic-search winner.

    A candidate that cannot be fitted is logged and skipped. When every
    candidate uses the same differencing orders and the configuration does
    not fix them, the automatic search reuses those orders so that all
    likelihoods are computed on the same differenced data.

    Raises
    ------
    NonConvergenceError
        If no model at all could be fitted
    """
    specs = parse_candidates(candidates, s=s, include_constant=include_constant)
    fits: List[FittedModel] = []
    for spec in specs:
        try:
            fits.append(fitter.fit(series, spec, log_scale=log_scale))
            logger.info("Fitted %s: AICc=%.3f", spec.label, fits[-1].aicc)
        except (InvalidOrderError, NonConvergenceError) as e:
            logger.warning("Skipping candidate: %s", e)

    if auto:
        d = get_config_value("model.search_space.d", None)
        D = get_config_value("model.search_space.D", None)
        shared = {(spec.d, spec.D) for spec in specs}
        if d is None and D is None and len(shared) == 1:
            d, D = shared.pop()
            logger.info("Automatic search uses the candidates' differencing d=%d, D=%d", d, D)
        try:
            auto_fit = fitter.auto_fit(series, _search_bounds(s, include_constant, d, D), log_scale=log_scale)
        except NonConvergenceError as e:
            logger.warning("Automatic order search failed: %s", e)
        else:
            if any(f.spec == auto_fit.spec for f in fits):
                logger.info("Automatic search chose %s, already among the candidates", auto_fit.label)
            else:
                fits.append(auto_fit)

    if not fits:
        raise NonConvergenceError("No candidate model could be fitted")
    return fits


def select_best_model(series: TimeSeries, fits: Sequence[FittedModel], s: int) -> FittedModel:
    """
    Lowest-AICc model, compared only among fits with the same differencing.

    With mixed differencing orders the group matching the configured or
    ADF-selected ``(d, D)`` is used, falling back to the group of the first fit.
    """
    groups = differencing_groups(fits)
    if len(groups) == 1:
        return best_model(fits)
    d, D = resolve_differencing(series, OrderBounds(
        d=get_config_value("model.search_space.d", None),
        D=get_config_value("model.search_space.D", None),
        s=s,
    ))
    differencing = (d, D) if (d, D) in groups else next(iter(groups))
    logger.warning("Fits use differencing orders %s; choosing among d=%d, D=%d only",
                   list(groups), differencing[0], differencing[1])
    return best_model(fits, differencing=differencing)


def run_series_workflow(data_path: Path,
                        series_id: str,
                        figures_dir: Path,
                        args: Optional[argparse.Namespace] = None,
                        fitter: Optional[Fitter] = None,
                        renderer: Optional[PlotRenderer] = None) -> Dict[str, Any]:
    """
    Execute the full report for one series.

    Parameters
    ----------
    data_path : Path
        Flat table containing the series
    series_id : str
        Identifier of the series to analyse
    figures_dir : Path
        Output directory for figures and CSV tables (created if missing)
    args : Optional[argparse.Namespace]
        CLI arguments; values not given fall back to the configuration
    fitter : Fitter, optional
        Model estimator (defaults to SarimaxFitter)
    renderer : PlotRenderer, optional
        Figure backend (defaults to MatplotlibRenderer)

    Returns
    -------
    Dict[str, Any]
        Summary with the comparison table, the best model, its diagnostic
        report, hold-out accuracy (or None) and the final forecast

    Raises
    ------
    ForecasterError
        Loader, transform and fitting errors that leave nothing to report
    """
    logger.info("Starting report for %s from %s", series_id, data_path)
    ensure_dir(figures_dir)
    fitter = fitter or SarimaxFitter(
        n_jobs=get_config_value("model.n_jobs", 1, args, "n_jobs"),
        show_progress=logger.isEnabledFor(logging.INFO),
    )
    renderer = renderer or MatplotlibRenderer(dpi=get_config_value("output.dpi", 300))

    quarterly = bool(get_config_value("data.resample_quarterly", False, args, "quarterly"))
    use_log = not getattr(args, "no_log", False) and bool(get_config_value("data.log_transform", True))
    auto = not getattr(args, "no_auto", False)
    horizon = int(get_config_value("forecast.horizon", 12, args, "horizon"))
    holdout = int(get_config_value("forecast.holdout", 12, args, "holdout"))
    intervals_arg = getattr(args, "intervals", None) if args is not None else None
    levels = (parse_intervals_arg(intervals_arg) if intervals_arg
              else list(get_config_value("forecast.intervals", [80, 95])))
    include_constant = bool(get_config_value("model.include_constant", True))
    candidates = (getattr(args, "candidate", None) if args is not None else None) \
        or get_config_value("model.candidates", [])

    raw = load_series_table(data_path, series_id)
    logger.info("Loaded %s: %d observations from %s to %s (frequency %d)",
                series_id, len(raw), raw.start, raw.end, raw.frequency)
    levels_series = prepare_series(raw, quarterly)
    s = int(get_config_value("model.seasonal_period", levels_series.frequency, args, "seasonal_period"))
    to_model_scale = log_transform if use_log else (lambda x: x)

    model_series = to_model_scale(levels_series)
    renderer.render_series(series_plot_data(levels_series, title=f"{series_id} (levels)"),
                           figures_dir / "Series.png")
    if use_log:
        renderer.render_series(series_plot_data(model_series, title=f"log {series_id}"),
                               figures_dir / "Series_log.png")

    # Correlogram of the differenced series guides the choice of candidates
    D_plot = 1 if s > 1 else 0
    try:
        diffed = difference_series(model_series, d=1, D=D_plot, s=s)
        max_lag = min(max(10, 3 * s), len(diffed) // 2 - 1)
        correlogram = ResidualDiagnostics().compute_acf_pacf(diffed, max_lag)
    except ValueError as e:
        logger.warning("Differenced-series correlogram skipped: %s", e)
    else:
        renderer.render_correlogram(
            correlogram_plot_data(correlogram, title=f"Differenced {series_id} (d=1, D={D_plot}, s={s})"),
            figures_dir / "Differenced_ACF_PACF.png",
        )

    accuracy = None
    if holdout > 0 and len(levels_series) > holdout + 2 * s + 2:
        train_lv, test_lv = holdout_split(levels_series, holdout)
        train_series = to_model_scale(train_lv)
        train_fits = fit_candidate_models(train_series, candidates, s, fitter,
                                          use_log, auto, include_constant)
        train_best = select_best_model(train_series, train_fits, s)
        fc_test = forecast(train_best, holdout, levels=levels)
        accuracy = compute_accuracy(test_lv.values, fc_test.mean, train_lv.values, m=s)
        logger.info("Hold-out accuracy of %s over %d periods: RMSE=%.4f MAPE=%.2f%%",
                    train_best.label, holdout, accuracy["RMSE"], accuracy["MAPE"])
        renderer.render_forecast(
            forecast_fan_data(fc_test, history=train_lv, actuals=test_lv,
                              title=f"Hold-out forecasts from {train_best.label}"),
            figures_dir / "Holdout_Forecast.png",
        )
    elif holdout > 0:
        logger.warning("Series too short for a %d-period hold-out; skipping accuracy check", holdout)

    fits = fit_candidate_models(model_series, candidates, s, fitter, use_log, auto, include_constant)
    comparison = compare_models(fits)
    comparison.to_csv(figures_dir / "Model_Comparison.csv", index=False)
    logger.info("Model comparison:\n%s", comparison.to_string())
    best = select_best_model(model_series, fits, s)
    logger.info("Best model by AICc:\n%s", best.summary_text())

    diag_report = save_residual_diagnostics(best, figures_dir, fname_prefix="Best_Residuals",
                                            renderer=renderer)

    result = forecast(best, horizon, levels=levels)
    result.to_frame().to_csv(figures_dir / "Forecast.csv", index_label="period")
    renderer.render_forecast(
        forecast_fan_data(result, history=levels_series, title=f"Forecasts from {best.label}"),
        figures_dir / "Forecast.png",
    )

    summary = {
        "series": levels_series,
        "comparison": comparison,
        "models": fits,
        "best": best,
        "diagnostics": diag_report,
        "accuracy": accuracy,
        "forecast": result,
    }

    report_path = get_report_md_path(args, Path.cwd(), series_id)
    write_report(report_path, data_path, summary, log_scale=use_log)
    logger.info("Report written to %s", report_path)
    return summary


def write_report(report_path: Path, data_path: Path, summary: Dict[str, Any], log_scale: bool) -> None:
    """Write the markdown report for a completed run."""
    series: TimeSeries = summary["series"]
    best: FittedModel = summary["best"]
    digest = get_file_hash(Path(data_path))
    start_report_md(
        report_path,
        f"Seasonal ARIMA report: {series.name}",
        f"Source: `{data_path}`" + (f" (sha256 `{digest[:12]}`)" if digest else "") + "  \n"
        f"Observations: {len(series)} from {series.start} to {series.end}  \n"
        f"Model scale: {'log' if log_scale else 'levels'}",
    )
    append_report_md(report_path, "Model comparison (ranked by AICc)",
                     md_table_from_df(summary["comparison"], max_rows=50))
    append_report_md(report_path, f"Best model: {best.label}",
                     md_table_from_df(best.coefficient_table(), float_fmt=".4f") + "\n\n"
                     + "```\n" + best.summary_text() + "\n```")
    append_report_md(report_path, "Residual diagnostics", diagnostics_markdown(summary["diagnostics"]))
    if summary["accuracy"] is not None:
        acc = summary["accuracy"]
        body = "\n".join(f"- {k}: {v:.4f}" if np.isfinite(v) else f"- {k}: NA" for k, v in acc.items())
        append_report_md(report_path, "Hold-out accuracy", body)
    append_report_md(report_path, "Forecast",
                     md_table_from_df(summary["forecast"].to_frame(), max_rows=summary["forecast"].horizon,
                                      index=True))


def setup_cli_parser() -> argparse.ArgumentParser:
    """
    Set up the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Seasonal ARIMA modeling, diagnostics and forecasts for one economic series."
    )

    # Data and output arguments
    parser.add_argument(
        "--data", type=str, required=True,
        help="Path to the flat table (series_id, year, period, value), tab, comma or space separated."
    )
    parser.add_argument(
        "--series-id", type=str, required=True,
        help="Identifier of the series to analyse."
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="YAML file overriding config/defaults.yaml."
    )
    parser.add_argument(
        "--figures-dir", type=str, default=None,
        help="Directory to write figure and table files."
    )
    parser.add_argument(
        "--report-md", type=str, default=None,
        help="Markdown report path (default analysis/report_<series-id>.md)."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity level."
    )

    # Preprocessing
    parser.add_argument(
        "--quarterly", action="store_true", default=None,
        help="Average a monthly series to quarterly means before modeling."
    )
    parser.add_argument(
        "--no-log", action="store_true", default=False,
        help="Model the series in levels instead of logs."
    )
    parser.add_argument(
        "--seasonal-period", type=int, default=None,
        help="Seasonal period (default: the series frequency)."
    )

    # Models
    parser.add_argument(
        "--candidate", action="append", default=None,
        help="Candidate order 'p,d,q:P,D,Q' (repeatable). Uses config candidates if not specified."
    )
    parser.add_argument(
        "--no-auto", action="store_true", default=False,
        help="Skip the automatic AICc order search."
    )
    parser.add_argument(
        "--n-jobs", type=int, default=None,
        help="Worker processes for the automatic order search."
    )

    # Forecasting
    parser.add_argument(
        "--horizon", type=int, default=None,
        help="Number of periods to forecast."
    )
    parser.add_argument(
        "--holdout", type=int, default=None,
        help="Trailing periods held out to score forecasts (0 disables)."
    )
    parser.add_argument(
        "--intervals", type=str, default=None,
        help="Comma-separated predictive interval coverages (e.g., '80,95')."
    )

    return parser


def setup_logging(log_level: str) -> None:
    """
    Configure logging with specified level and warning filters.

    Parameters
    ----------
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = validate_log_level(log_level)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Configure warnings based on log level
    if level == "DEBUG":
        warnings.resetwarnings()
        warnings.filterwarnings("default")
    else:
        from statsmodels.tools.sm_exceptions import ConvergenceWarning
        warnings.filterwarnings("ignore", category=ConvergenceWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)
        warnings.filterwarnings("ignore", category=UserWarning, module="statsmodels")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point for the seasonal ARIMA report.

    Returns
    -------
    int
        Process exit status: 0 on success, 1 when the run stopped on an error
    """
    parser = setup_cli_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    from config import ConfigurationError
    try:
        initialize_config(args.config)
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    base_dir = Path.cwd()
    data_path = resolve_path(args.data, base_dir)
    figures_dir = resolve_path(get_config_value("output.figures_dir", "figures", args, "figures_dir"), base_dir)

    try:
        run_series_workflow(data_path, args.series_id, figures_dir, args)
    except ForecasterError as e:
        logger.error("Report for %s failed: %s", args.series_id, e)
        return 1
    except FileNotFoundError as e:
        logger.error("Input file not found: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
