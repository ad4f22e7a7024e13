"""Configuration loading and management for Plugin Doctor.

Configuration sources are merged in priority order:
    1. Defaults (defined in DoctorConfig)
    2. Global config (~/.plugin-doctor.toml)
    3. Project config (./plugin-doctor.toml)
    4. Explicit config file
    5. Environment variables (PLUGIN_DOCTOR_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(site_root="/srv/site", verbose=True)
    >>> config.verbosity
    'verbose'
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]

MIB = 1024 * 1024


def _check_weights(group: str, weights: dict[str, float]) -> None:
    """Weights must be non-negative and sum to 1.0 so weighted scores stay in [0, 1]."""
    for key, value in weights.items():
        if value < 0:
            raise InvalidConfigError(key, value, f"{group} must be non-negative")
    total = sum(weights.values())
    if not math.isclose(total, 1.0):
        raise InvalidConfigError(
            " + ".join(weights), round(total, 6), f"{group} must sum to 1.0"
        )


def _check_minimum(key: str, value: int, minimum: int) -> None:
    if value < minimum:
        raise InvalidConfigError(key, value, f"must be at least {minimum}")


@dataclass(frozen=True)
class Thresholds:
    """Estimation, classification and scoring constants.

    Attributes:
        Load classification:
            load_time_weight / load_queries_weight / load_memory_weight:
                weights of the normalized dimensions (sum = 1.0)
            load_high_cutoff: weighted score strictly above this is HIGH
            load_medium_cutoff: weighted score strictly above this is MEDIUM

        Recommendations:
            slow_execution_seconds: estimated time above this is a CPU issue
            max_db_queries: query hits above this is a database issue
            max_memory_bytes: memory above this is a memory issue

        Conflicts:
            extreme_priority: |priority| above this is an override attempt
            log_tail_lines: error-log lines inspected per pass

        Scoring (weights sum = 1.0):
            score_*_weight: contribution of each sub-score to the overall score

        History and backups:
            history_limit: snapshots kept in the rolling history
            trend_window: snapshots considered by the trend
            trend_delta: score change needed to leave "stable"
            max_backups: backup records kept
            backup_retention_days: backup records older than this are pruned
    """

    # === Load classification ===
    load_time_weight: float = 0.5
    load_queries_weight: float = 0.3
    load_memory_weight: float = 0.2
    load_high_cutoff: float = 0.7
    load_medium_cutoff: float = 0.4

    # === Recommendations ===
    slow_execution_seconds: float = 0.5
    max_db_queries: int = 50
    max_memory_bytes: int = 10 * MIB

    # === Conflicts ===
    extreme_priority: int = 1000
    log_tail_lines: int = 1000

    # === Score weights (sum = 1.0) ===
    score_plugin_load_weight: float = 0.30
    score_conflicts_weight: float = 0.25
    score_database_weight: float = 0.20
    score_memory_weight: float = 0.15
    score_hooks_weight: float = 0.10

    # === History and backups ===
    history_limit: int = 30
    trend_window: int = 5
    trend_delta: int = 5
    max_backups: int = 50
    backup_retention_days: int = 30

    def __post_init__(self) -> None:
        """Validate threshold configuration."""
        _check_weights(
            "load weights",
            {
                "load_time_weight": self.load_time_weight,
                "load_queries_weight": self.load_queries_weight,
                "load_memory_weight": self.load_memory_weight,
            },
        )

        if not 0.0 <= self.load_medium_cutoff < self.load_high_cutoff <= 1.0:
            raise InvalidConfigError(
                "load_medium_cutoff",
                self.load_medium_cutoff,
                f"load cutoffs must satisfy 0 <= medium < high ({self.load_high_cutoff}) <= 1",
            )

        _check_weights(
            "score weights", {f"score_{k}_weight": v for k, v in self.score_weights.items()}
        )

        _check_minimum("history_limit", self.history_limit, 1)
        _check_minimum("trend_window", self.trend_window, 2)
        _check_minimum("max_backups", self.max_backups, 1)
        _check_minimum("backup_retention_days", self.backup_retention_days, 0)
        _check_minimum("log_tail_lines", self.log_tail_lines, 1)

    @property
    def score_weights(self) -> dict[str, float]:
        """Sub-score key -> weight, in display order."""
        return {
            "plugin_load": self.score_plugin_load_weight,
            "conflicts": self.score_conflicts_weight,
            "database": self.score_database_weight,
            "memory": self.score_memory_weight,
            "hooks": self.score_hooks_weight,
        }


DEFAULT_THRESHOLDS = Thresholds()


@dataclass(frozen=True)
class DoctorConfig:
    """Configuration for one doctor session.

    Attributes:
        site_root: Root directory of the plugin host site
        store_dir: Option store directory (relative paths resolve under site_root)
        error_log: Preferred error log; falls back to content/debug.log
        host_version: Version string reported in exports
        boot_plugins: Import active plugins before analysis (CLI only)
        verbosity: Logging verbosity level
        thresholds: Estimation and scoring constants
    """

    site_root: str = "."
    store_dir: str = ".plugin-doctor"
    error_log: Optional[str] = None
    host_version: str = "unknown"
    boot_plugins: bool = True
    verbosity: Verbosity = "normal"

    thresholds: Thresholds = field(default_factory=Thresholds)

    def __post_init__(self) -> None:
        if not self.site_root:
            raise InvalidConfigError("site_root", self.site_root, "must not be empty")
        if not self.store_dir:
            raise InvalidConfigError("store_dir", self.store_dir, "must not be empty")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError(
                "verbosity", self.verbosity, "must be one of quiet, normal, verbose"
            )

    @property
    def site_path(self) -> Path:
        return Path(self.site_root).expanduser().resolve()

    @property
    def store_path(self) -> Path:
        store = Path(self.store_dir).expanduser()
        return store if store.is_absolute() else self.site_path / store

    @property
    def error_log_path(self) -> Optional[Path]:
        return Path(self.error_log).expanduser() if self.error_log else None


def load_config(config_file: Optional[Path] = None, **overrides) -> DoctorConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated DoctorConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".plugin-doctor.toml"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "plugin-doctor.toml"
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    # Verbosity booleans from the CLI map onto the literal field
    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    thresholds_dict = merged.pop("thresholds", None)
    if thresholds_dict is not None:
        if isinstance(thresholds_dict, dict):
            try:
                merged["thresholds"] = Thresholds(**thresholds_dict)
            except InvalidConfigError as e:
                raise InvalidConfigError(f"thresholds.{e.key}", e.value, e.reason) from e
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid [thresholds] config: {e}")
        elif isinstance(thresholds_dict, Thresholds):
            merged["thresholds"] = thresholds_dict

    try:
        return DoctorConfig(**merged)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from PLUGIN_DOCTOR_* environment variables.

    Supported environment variables:
        PLUGIN_DOCTOR_SITE_ROOT: str
        PLUGIN_DOCTOR_STORE_DIR: str
        PLUGIN_DOCTOR_ERROR_LOG: str
        PLUGIN_DOCTOR_HOST_VERSION: str
        PLUGIN_DOCTOR_BOOT_PLUGINS: bool (true/false/1/0)
        PLUGIN_DOCTOR_VERBOSITY: quiet/normal/verbose
    """
    type_hints = get_type_hints(DoctorConfig)

    result: dict[str, Any] = {}

    for field_name in DoctorConfig.__dataclass_fields__:
        env_key = f"PLUGIN_DOCTOR_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the annotated type."""
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
