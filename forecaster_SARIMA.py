#!/usr/bin/env python3
"""
Seasonal ARIMA report for a single economic series.

Usage
-----
    python forecaster_SARIMA.py --help
    python forecaster_SARIMA.py --data data/cu.data.tsv --series-id CUUR0000SA0
    python forecaster_SARIMA.py --data data/cu.data.tsv --series-id CUUR0000SA0 \
        --quarterly --candidate "0,1,1:0,1,1" --candidate "1,1,0:1,1,0" --horizon 8

Structure
---------
The code is organized in econ_forecaster_src/ with these modules:
- data_utils.py: Loading a series from a flat table
- transform_utils.py: Logs, differencing and ADF heuristics
- forecasting_utils.py: Seasonal ARIMA fitting, order search and forecasts
- comparison_utils.py: AICc-ranked comparison table
- diagnostics_utils.py: Residual diagnostic artifacts (tests live in diagnostics/)
- metrics_utils.py: Hold-out accuracy
- plotting_utils.py: Figures
- main.py: Main entry point
"""

import sys

from econ_forecaster_src.main import main

if __name__ == "__main__":
    sys.exit(main())
