"""Residual diagnostics for the seasonal ARIMA report.

This package checks fitted models without changing them:
- Sample ACF/PACF with white-noise bands
- Ljung-Box portmanteau test
- Jarque-Bera / Shapiro-Wilk normality tests
- ARCH-LM heteroskedasticity test
- Fisher's g periodicity test
"""

from .residual_diagnostics import (
    Correlogram,
    DiagnosticReport,
    ResidualDiagnostics,
    DiagnosticResult,
    DiagnosticTest,
    fisher_g_pvalue,
    run_comprehensive_diagnostics
)

__all__ = [
    'Correlogram',
    'DiagnosticReport',
    'ResidualDiagnostics',
    'DiagnosticResult',
    'DiagnosticTest',
    'fisher_g_pvalue',
    'run_comprehensive_diagnostics'
]
