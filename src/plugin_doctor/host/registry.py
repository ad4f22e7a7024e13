"""Discovery of active plugins and their header metadata."""

import re
from pathlib import Path
from typing import Dict, List, Protocol

from ..logging_config import get_logger
from ..models import ComponentRecord
from .layout import HostLayout, normalize_path
from .options import ACTIVE_PLUGINS, OptionStore

logger = get_logger(__name__)

# Only the head of the entry file is scanned for header fields
_HEADER_BYTES = 8192

_HEADER_FIELDS = {
    "name": "Plugin Name",
    "version": "Version",
    "author": "Author",
    "description": "Description",
}


class ComponentRegistry(Protocol):
    def active_components(self) -> List[ComponentRecord]:
        ...


def read_plugin_header(path: Path) -> Dict[str, str]:
    """Parse ``Field: value`` header lines from the top of a plugin entry file.

    Header lines may sit inside a docstring or comments; leading ``#`` and
    ``*`` decoration is ignored. Missing fields come back as empty strings.
    """
    with open(path, "rb") as f:
        head = f.read(_HEADER_BYTES).decode("utf-8", errors="replace")

    header = {}
    for key, label in _HEADER_FIELDS.items():
        match = re.search(
            rf"^[ \t#*/]*{re.escape(label)}:(.*)$", head, re.MULTILINE | re.IGNORECASE
        )
        header[key] = match.group(1).strip() if match else ""
    return header


def plugin_slug(plugin_file: str) -> str:
    """``"seo-pack/seo_pack.py"`` -> ``"seo-pack"``; ``"hello.py"`` -> ``"hello"``."""
    parts = normalize_path(plugin_file).split("/")
    if len(parts) > 1:
        return parts[0]
    return Path(parts[0]).stem


class PluginDirectoryRegistry:
    """Active plugins listed in the ``active_plugins`` option, read from disk."""

    def __init__(self, layout: HostLayout, store: OptionStore):
        self.layout = layout
        self.store = store

    def active_components(self) -> List[ComponentRecord]:
        records = []
        for plugin_file in self.store.get(ACTIVE_PLUGINS, []) or []:
            path = self.layout.plugins_dir / plugin_file
            if not path.is_file():
                logger.debug(f"Active plugin {plugin_file} has no entry file, skipping")
                continue

            header = read_plugin_header(path)
            slug = plugin_slug(plugin_file)
            records.append(
                ComponentRecord(
                    slug=slug,
                    name=header["name"] or slug,
                    version=header["version"],
                    author=header["author"],
                    description=header["description"],
                    file=normalize_path(plugin_file),
                    path=path,
                    directory=path.parent,
                )
            )
        return records
