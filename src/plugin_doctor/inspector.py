"""Component Inspector: enumerate active plugins and map code back to its owner."""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from .host.introspection import defining_file
from .host.layout import HostLayout, is_within, normalize_path
from .host.registry import ComponentRegistry
from .logging_config import get_logger
from .models import ComponentRecord

logger = get_logger(__name__)


class ComponentInspector:
    """Cached view of the active components of one site."""

    def __init__(self, registry: ComponentRegistry, layout: HostLayout):
        self.registry = registry
        self.layout = layout
        self._cache: Dict[str, ComponentRecord] = {}

    def list_active(self) -> Dict[str, ComponentRecord]:
        """All active components keyed by slug; cached until :meth:`clear_cache`."""
        if self._cache:
            return self._cache

        components: Dict[str, ComponentRecord] = {}
        for record in self.registry.active_components():
            if record.slug in components:
                logger.debug(f"Duplicate slug {record.slug} ({record.file}), keeping first")
                continue
            components[record.slug] = record

        self._cache = components
        return components

    def clear_cache(self) -> None:
        self._cache = {}

    def get_component(self, slug: str) -> Optional[ComponentRecord]:
        return self.list_active().get(slug)

    def resolve_slug_from_file(self, path: Union[str, Path, None]) -> Optional[str]:
        """Slug of the component whose directory contains *path*.

        When directories nest (a single-file plugin lives directly in the
        plugins directory), the deepest match wins.
        """
        if not path:
            return None

        best: Optional[str] = None
        best_len = -1
        for slug, record in self.list_active().items():
            directory = normalize_path(record.directory)
            if is_within(path, directory) and len(directory) > best_len:
                best, best_len = slug, len(directory)
        return best

    def resolve_slug_from_callback(self, callback: Any) -> Optional[str]:
        """Owning component of a hook callback, or None if it cannot be told."""
        filename = defining_file(callback)
        if filename is None:
            return None
        return self.resolve_slug_from_file(filename)

    def is_host_core(self, path: Union[str, Path]) -> bool:
        """True for host core files, False for anything third-party.

        The content directory wins over every core prefix: a path under it
        is never core. Files elsewhere under the site root (the host's own
        bootstrap files) count as core; paths outside the site do not.
        """
        if is_within(path, self.layout.content_dir):
            return False
        if any(is_within(path, core) for core in self.layout.core_dirs):
            return True
        return is_within(path, self.layout.root)
