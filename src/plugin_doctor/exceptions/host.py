"""Host collaborator exceptions: introspection, option storage, plugin loading."""

from pathlib import Path
from typing import Any, Optional

from .base import PluginDoctorError


class HostError(PluginDoctorError):
    """Base class for errors raised by host collaborators."""

    pass


class IntrospectionError(HostError):
    """Raised when a callback's source cannot be read back."""

    def __init__(self, callback: Any, reason: str, filepath: Optional[Path] = None):
        details = {"callback": repr(callback), "reason": reason}
        if filepath is not None:
            details["filepath"] = str(filepath)

        super().__init__("Cannot introspect callback", details=details)
        self.callback = callback
        self.reason = reason
        self.filepath = filepath


class OptionStoreError(HostError):
    """Raised when the option store cannot complete a read or write."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Option store failure for {key}",
            details={"key": key, "reason": reason},
            hint="Check that the store directory is writable and not locked by another run.",
        )
        self.key = key
        self.reason = reason


class PluginLoadError(HostError):
    """Raised when a plugin entry module cannot be imported."""

    def __init__(self, slug: str, filepath: Path, reason: str):
        super().__init__(
            f"Failed to load plugin {slug}",
            details={"slug": slug, "filepath": str(filepath), "reason": reason},
            hint=f"Fix {filepath.name} or remove {slug} from active_plugins.",
        )
        self.slug = slug
        self.filepath = filepath
        self.reason = reason
