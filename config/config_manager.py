"""Configuration manager for the seasonal ARIMA report.

Settings live in YAML files. ``defaults.yaml`` ships with the package and a
user file can be layered on top; nested mappings are merged key by key.

Features:
- Dot-notation access (``get('model.fit.maxiter')``)
- Deep merge of user overrides onto defaults
- Validation returning per-section problem lists
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("defaults.yaml")


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be read or has the wrong shape."""


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping at top level")
    return data


class ConfigurationManager:
    """Layered YAML configuration with dot-notation lookups."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None,
                 defaults_path: Path = DEFAULT_CONFIG_PATH):
        """Load defaults and an optional user file.

        Parameters
        ----------
        config_path : str or Path, optional
            User configuration merged over the defaults
        defaults_path : Path
            Packaged defaults file
        """
        self.defaults_path = Path(defaults_path)
        self.config_path = Path(config_path) if config_path else None
        self._config = _read_yaml(self.defaults_path)
        self.loaded_configs: List[str] = [str(self.defaults_path)]
        if self.config_path is not None:
            self._config = _deep_merge(self._config, _read_yaml(self.config_path))
            self.loaded_configs.append(str(self.config_path))
        logger.debug("Loaded configuration from %s", self.loaded_configs)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``'forecast.horizon'``."""
        node: Any = self._config
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def get_configuration_summary(self) -> Dict[str, Any]:
        return {
            "loaded_configs": list(self.loaded_configs),
            "sections": sorted(self._config.keys()),
        }

    def validate_configuration(self) -> Dict[str, List[str]]:
        """Check value types and ranges.

        Returns
        -------
        dict
            Section name -> list of problems; empty when the configuration is valid
        """
        errors: Dict[str, List[str]] = {}

        def _add(section: str, message: str) -> None:
            errors.setdefault(section, []).append(message)

        def _is_int(value: Any) -> bool:
            return isinstance(value, int) and not isinstance(value, bool)

        maxiter = self.get("model.fit.maxiter")
        if maxiter is not None and (not _is_int(maxiter) or maxiter < 1):
            _add("model", f"fit.maxiter must be a positive integer, got {maxiter!r}")

        for key in ("max_p", "max_q", "max_P", "max_Q", "max_order"):
            value = self.get(f"model.search_space.{key}")
            if value is not None and (not _is_int(value) or value < 0):
                _add("model", f"search_space.{key} must be a non-negative integer, got {value!r}")

        period = self.get("model.seasonal_period")
        if period is not None and (not _is_int(period) or period < 1):
            _add("model", f"seasonal_period must be a positive integer, got {period!r}")

        candidates = self.get("model.candidates", [])
        if not isinstance(candidates, list) or not all(isinstance(c, str) for c in candidates):
            _add("model", "candidates must be a list of 'p,d,q:P,D,Q' strings")

        alpha = self.get("diagnostics.significance_level")
        if alpha is not None and not (isinstance(alpha, (int, float)) and 0 < alpha < 1):
            _add("diagnostics", f"significance_level must lie in (0, 1), got {alpha!r}")

        for key in ("ljung_box_lags", "acf_max_lag"):
            value = self.get(f"diagnostics.{key}")
            if value is not None and (not _is_int(value) or value < 1):
                _add("diagnostics", f"{key} must be a positive integer, got {value!r}")

        horizon = self.get("forecast.horizon")
        if horizon is not None and (not _is_int(horizon) or horizon < 1):
            _add("forecast", f"horizon must be a positive integer, got {horizon!r}")

        holdout = self.get("forecast.holdout")
        if holdout is not None and (not _is_int(holdout) or holdout < 0):
            _add("forecast", f"holdout must be a non-negative integer, got {holdout!r}")

        intervals = self.get("forecast.intervals", [])
        if not isinstance(intervals, list) or not all(_is_int(v) and 0 < v < 100 for v in intervals):
            _add("forecast", f"intervals must be integers between 1 and 99, got {intervals!r}")

        return errors


_config_instance: Optional[ConfigurationManager] = None


def get_config(config_path: Optional[Union[str, Path]] = None, reload: bool = False) -> ConfigurationManager:
    """Return the shared ConfigurationManager, creating it on first use."""
    global _config_instance
    if _config_instance is None or reload or config_path is not None:
        _config_instance = ConfigurationManager(config_path)
    return _config_instance
