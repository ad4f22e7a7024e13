"""Base exception for Plugin Doctor."""

from typing import Any, Dict, Optional


class PluginDoctorError(Exception):
    """Base exception for all Plugin Doctor errors.

    ``details`` holds the structured context (option key, plugin slug, file,
    reason). ``hint`` is an optional next step the CLI prints under the error.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.hint = hint

    def __str__(self) -> str:
        if not self.details:
            return self.message
        # reason last, it is the longest and most useful part
        items = sorted(self.details.items(), key=lambda item: item[0] == "reason")
        return f"{self.message} ({', '.join(f'{k}={v}' for k, v in items)})"
