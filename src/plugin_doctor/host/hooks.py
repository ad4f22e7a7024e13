"""Checkpoint (hook) and script registries of the plugin host."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

DEFAULT_PRIORITY = 10


@dataclass
class HookEntry:
    callback: Any
    accepted_args: int = 1


class HookRegistry:
    """Callbacks registered per checkpoint, grouped by integer priority.

    Lower priorities run first; callbacks sharing a priority run in
    registration order.
    """

    def __init__(self) -> None:
        self._hooks: Dict[str, Dict[int, List[HookEntry]]] = {}

    def add(
        self,
        checkpoint: str,
        callback: Any,
        priority: int = DEFAULT_PRIORITY,
        accepted_args: int = 1,
    ) -> None:
        by_priority = self._hooks.setdefault(checkpoint, {})
        by_priority.setdefault(priority, []).append(HookEntry(callback, accepted_args))

    def remove(self, checkpoint: str, callback: Any, priority: int = DEFAULT_PRIORITY) -> bool:
        entries = self._hooks.get(checkpoint, {}).get(priority, [])
        for i, entry in enumerate(entries):
            if entry.callback == callback:
                del entries[i]
                self._prune(checkpoint, priority)
                return True
        return False

    def remove_named(self, checkpoint: str, name: str) -> int:
        """Remove every callback whose ``__name__`` is *name*. Returns the count."""
        removed = 0
        for priority in list(self._hooks.get(checkpoint, {})):
            entries = self._hooks[checkpoint][priority]
            kept = [e for e in entries if getattr(e.callback, "__name__", None) != name]
            removed += len(entries) - len(kept)
            self._hooks[checkpoint][priority] = kept
            self._prune(checkpoint, priority)
        return removed

    def _prune(self, checkpoint: str, priority: int) -> None:
        by_priority = self._hooks.get(checkpoint)
        if by_priority is None:
            return
        if not by_priority.get(priority):
            by_priority.pop(priority, None)
        if not by_priority:
            del self._hooks[checkpoint]

    def has(self, checkpoint: str) -> bool:
        return checkpoint in self._hooks

    def checkpoints(self) -> List[str]:
        return list(self._hooks)

    def callbacks(self, checkpoint: str) -> Dict[int, List[HookEntry]]:
        """Priority -> entries for *checkpoint*, ordered by ascending priority."""
        by_priority = self._hooks.get(checkpoint, {})
        return {p: list(by_priority[p]) for p in sorted(by_priority)}

    def _ordered(self, checkpoint: str) -> Iterable[HookEntry]:
        for entries in self.callbacks(checkpoint).values():
            yield from entries

    def apply_filters(self, checkpoint: str, value: Any, *args: Any) -> Any:
        for entry in self._ordered(checkpoint):
            call_args = (value,) + args
            value = as_callable(entry.callback)(*call_args[: max(1, entry.accepted_args)])
        return value

    def do_action(self, checkpoint: str, *args: Any) -> None:
        for entry in self._ordered(checkpoint):
            as_callable(entry.callback)(*args[: entry.accepted_args])


@dataclass
class ScriptEntry:
    handle: str
    src: Optional[str]
    version: Optional[str] = None
    deps: Tuple[str, ...] = field(default_factory=tuple)


class ScriptRegistry:
    """Registered front-end assets keyed by handle, plus the enqueued subset."""

    def __init__(self) -> None:
        self.registered: Dict[str, ScriptEntry] = {}
        self.queue: List[str] = []

    def register(
        self,
        handle: str,
        src: Optional[str],
        version: Optional[str] = None,
        deps: Iterable[str] = (),
    ) -> bool:
        if handle in self.registered:
            return False
        self.registered[handle] = ScriptEntry(handle, src, version, tuple(deps))
        return True

    def deregister(self, handle: str) -> None:
        self.registered.pop(handle, None)
        self.dequeue(handle)

    def enqueue(self, handle: str) -> None:
        if handle not in self.queue:
            self.queue.append(handle)

    def dequeue(self, handle: str) -> None:
        if handle in self.queue:
            self.queue.remove(handle)

    def entries(self) -> List[ScriptEntry]:
        return list(self.registered.values())


def as_callable(callback: Any) -> Callable:
    """Turn a ``(receiver, "method")`` pair into the bound callable."""
    if isinstance(callback, tuple) and len(callback) == 2 and isinstance(callback[1], str):
        return getattr(callback[0], callback[1])
    return callback


def callback_name(callback: Any) -> str:
    """Human-readable name for log messages."""
    name = getattr(callback, "__qualname__", None) or getattr(callback, "__name__", None)
    if name:
        return name
    if isinstance(callback, tuple) and len(callback) == 2:
        receiver, method = callback
        owner = receiver if isinstance(receiver, type) else type(receiver)
        return f"{owner.__name__}.{method}"
    return type(callback).__name__
