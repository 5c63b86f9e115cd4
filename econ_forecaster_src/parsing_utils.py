# econ_forecaster_src/parsing_utils.py

import re
from typing import Optional, List, Sequence
import logging

from .exceptions import InvalidOrderError
from .series import ModelSpec

logger = logging.getLogger(__name__)

_CANDIDATE_RE = re.compile(
    r"^\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?::\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*)?$"
)


def parse_candidate(text: str, s: int = 1, include_constant: bool = True) -> ModelSpec:
    """
    Parse a candidate order string into a ModelSpec.

    The format is ``"p,d,q"`` or ``"p,d,q:P,D,Q"``; the seasonal period comes
    from ``s``. Seasonal orders are dropped with a warning when ``s == 1``.

    Raises
    ------
    InvalidOrderError
        If the string is not in one of the two formats

    Examples
    --------
    >>> parse_candidate("0,1,1:0,1,1", s=12).label
    'ARIMA(0,1,1)(0,1,1)[12]'
    >>> parse_candidate("1,1,0").order
    (1, 1, 0)
    """
    m = _CANDIDATE_RE.match(text or "")
    if m is None:
        raise InvalidOrderError(f"Cannot parse candidate '{text}'; expected 'p,d,q' or 'p,d,q:P,D,Q'")
    p, d, q = (int(m.group(i)) for i in (1, 2, 3))
    P, D, Q = (int(m.group(i)) if m.group(i) is not None else 0 for i in (4, 5, 6))
    if s == 1 and (P or D or Q):
        logger.warning("Ignoring seasonal orders in '%s' for a non-seasonal series", text)
        P = D = Q = 0
    return ModelSpec(p=p, d=d, q=q, P=P, D=D, Q=Q, s=s, include_constant=include_constant)


def parse_candidates(texts: Sequence[str], s: int = 1, include_constant: bool = True) -> List[ModelSpec]:
    """Parse several candidate strings, dropping duplicates while keeping order."""
    specs: List[ModelSpec] = []
    for text in texts:
        spec = parse_candidate(text, s=s, include_constant=include_constant)
        if spec not in specs:
            specs.append(spec)
    return specs


def parse_intervals_arg(s: Optional[str], default: str = "80,95") -> List[int]:
    """
    Parse a CLI intervals argument like '80,95' into sorted unique integer coverage levels.

    Values outside 1..99 are dropped; an empty result falls back to [80, 95].

    Examples
    --------
    >>> parse_intervals_arg("80,95")
    [80, 95]
    >>> parse_intervals_arg("90")
    [90]
    """
    txt = (s or default).strip()
    try:
        vals = sorted({int(x.strip()) for x in txt.split(",") if x.strip() != ""})
    except ValueError:
        logger.warning("Cannot parse intervals '%s'; using 80,95", txt)
        return [80, 95]
    vals = [v for v in vals if 1 <= v < 100]
    return vals or [80, 95]


def validate_log_level(log_level: str) -> str:
    """
    Validate and normalize logging level specification.

    Raises
    ------
    ValueError
        If the logging level is not supported
    """
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = log_level.upper()
    if level_upper not in valid_levels:
        raise ValueError(f"Invalid log level '{log_level}'. Must be one of: {valid_levels}")
    return level_upper
