"""Directory layout of a plugin host site."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

_SEPARATORS = re.compile(r"/+")


def normalize_path(path: Union[str, Path]) -> str:
    """Forward slashes only, no duplicate separators, no trailing slash."""
    normalized = _SEPARATORS.sub("/", str(path).replace("\\", "/"))
    if len(normalized) > 1:
        normalized = normalized.rstrip("/")
    return normalized


def is_within(path: Union[str, Path], directory: Union[str, Path]) -> bool:
    """True when *path* is *directory* itself or lies beneath it."""
    path_s = normalize_path(path)
    dir_s = normalize_path(directory)
    return path_s == dir_s or path_s.startswith(dir_s + "/")


@dataclass(frozen=True)
class HostLayout:
    """
    Site tree::

        <root>/
            includes/          host core
            admin/             host core (admin screens)
            content/
                plugins/<slug>/
                debug.log
    """

    root: Path

    @property
    def includes_dir(self) -> Path:
        return self.root / "includes"

    @property
    def admin_dir(self) -> Path:
        return self.root / "admin"

    @property
    def content_dir(self) -> Path:
        return self.root / "content"

    @property
    def plugins_dir(self) -> Path:
        return self.content_dir / "plugins"

    @property
    def debug_log(self) -> Path:
        return self.content_dir / "debug.log"

    @property
    def core_dirs(self) -> Tuple[Path, ...]:
        return (self.includes_dir, self.admin_dir)

    def relative_to_plugins(self, path: Union[str, Path]) -> str:
        """Path relative to the plugins directory, or unchanged if outside it."""
        path_s = normalize_path(path)
        prefix = normalize_path(self.plugins_dir) + "/"
        return path_s[len(prefix):] if path_s.startswith(prefix) else path_s
