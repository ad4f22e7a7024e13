"""Configuration exceptions."""

from typing import Any

from .base import PluginDoctorError


class ConfigurationError(PluginDoctorError):
    """Base class for configuration-related errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a threshold or setting fails validation.

    ``key`` is the setting name; threshold keys loaded from a file are
    prefixed with ``thresholds.``.
    """

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "reason": reason},
            hint=f"Check {key} in plugin-doctor.toml and the PLUGIN_DOCTOR_* environment.",
        )
        self.key = key
        self.value = value
        self.reason = reason
