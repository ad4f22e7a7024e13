"""Host collaborators: options, hooks, scripts, component discovery, introspection."""

from .environment import HostEnvironment
from .hooks import HookEntry, HookRegistry, ScriptEntry, ScriptRegistry
from .introspection import (
    BoundMethod,
    Invokable,
    NamedFunction,
    SourceLocation,
    classify_callback,
    defining_file,
    source_location_of,
)
from .layout import HostLayout, is_within, normalize_path
from .options import DiskOptionStore, MemoryOptionStore, OptionStore
from .registry import ComponentRegistry, PluginDirectoryRegistry

__all__ = [
    "HostEnvironment",
    "HookEntry",
    "HookRegistry",
    "ScriptEntry",
    "ScriptRegistry",
    "BoundMethod",
    "Invokable",
    "NamedFunction",
    "SourceLocation",
    "classify_callback",
    "defining_file",
    "source_location_of",
    "HostLayout",
    "is_within",
    "normalize_path",
    "DiskOptionStore",
    "MemoryOptionStore",
    "OptionStore",
    "ComponentRegistry",
    "PluginDirectoryRegistry",
]
