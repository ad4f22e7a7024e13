"""The set of host collaborators handed to every core component."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .hooks import HookRegistry, ScriptRegistry
from .layout import HostLayout
from .options import OptionStore
from .registry import ComponentRegistry, PluginDirectoryRegistry


@dataclass
class HostEnvironment:
    layout: HostLayout
    store: OptionStore
    registry: ComponentRegistry
    hooks: HookRegistry = field(default_factory=HookRegistry)
    scripts: ScriptRegistry = field(default_factory=ScriptRegistry)
    error_log: Optional[Path] = None
    host_version: str = "unknown"

    @classmethod
    def for_site(
        cls,
        root: Path,
        store: OptionStore,
        error_log: Optional[Path] = None,
        host_version: str = "unknown",
    ) -> "HostEnvironment":
        """Environment for a site on disk, with plugins listed in *store*."""
        layout = HostLayout(Path(root))
        return cls(
            layout=layout,
            store=store,
            registry=PluginDirectoryRegistry(layout, store),
            error_log=error_log,
            host_version=host_version,
        )
