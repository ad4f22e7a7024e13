"""Exception hierarchy for Plugin Doctor."""

from .base import PluginDoctorError
from .config import ConfigurationError, InvalidConfigError
from .host import (
    HostError,
    IntrospectionError,
    OptionStoreError,
    PluginLoadError,
)

__all__ = [
    "PluginDoctorError",
    "ConfigurationError",
    "InvalidConfigError",
    "HostError",
    "IntrospectionError",
    "OptionStoreError",
    "PluginLoadError",
]
