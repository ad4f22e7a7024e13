"""
Callable introspection.

Hook callbacks come in three shapes, classified into a closed set of
variants:

    NamedFunction   plain functions, lambdas, static methods, builtins
    BoundMethod     bound method objects and ``(receiver, "name")`` pairs
    Invokable       any other object implementing ``__call__``

Ownership is decided by the file that defines the function or the receiver's
class; cost estimation uses the exact source span of the code that runs.
"""

import functools
import inspect
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

from ..exceptions import IntrospectionError


@dataclass(frozen=True)
class NamedFunction:
    function: Callable


@dataclass(frozen=True)
class BoundMethod:
    receiver: Any  # instance or class
    name: str


@dataclass(frozen=True)
class Invokable:
    target: Any


CallbackRef = Union[NamedFunction, BoundMethod, Invokable]


@dataclass(frozen=True)
class SourceLocation:
    file: Path
    start_line: int
    end_line: int

    @property
    def lines(self) -> int:
        return self.end_line - self.start_line + 1


def classify_callback(callback: Any) -> Optional[CallbackRef]:
    """Map a registered callback onto one of the three variants."""
    if isinstance(callback, functools.partial):
        return classify_callback(callback.func)
    if isinstance(callback, tuple):
        if len(callback) == 2 and isinstance(callback[1], str):
            return BoundMethod(callback[0], callback[1])
        return None
    if inspect.ismethod(callback):
        return BoundMethod(callback.__self__, callback.__name__)
    if inspect.isfunction(callback) or inspect.isbuiltin(callback):
        return NamedFunction(callback)
    if isinstance(callback, type):
        return None
    if callable(callback):
        return Invokable(callback)
    return None


def _owner_class(receiver: Any) -> type:
    return receiver if isinstance(receiver, type) else type(receiver)


def defining_file(callback: Any) -> Optional[Path]:
    """File that defines the callback (the class file for methods and invokables)."""
    ref = classify_callback(callback)
    if ref is None:
        return None

    try:
        if isinstance(ref, NamedFunction):
            filename = inspect.getsourcefile(ref.function)
        elif isinstance(ref, BoundMethod):
            filename = inspect.getsourcefile(_owner_class(ref.receiver))
        else:
            filename = inspect.getsourcefile(type(ref.target))
    except (TypeError, OSError):
        return None

    return Path(filename) if filename else None


def _code_object(ref: CallbackRef) -> Any:
    if isinstance(ref, NamedFunction):
        return ref.function
    if isinstance(ref, BoundMethod):
        return getattr(ref.receiver, ref.name, None)
    return getattr(type(ref.target), "__call__", None)


def source_location_of(callback: Any) -> Optional[SourceLocation]:
    """Source file and line span of the code the callback runs, if known."""
    ref = classify_callback(callback)
    if ref is None:
        return None

    target = _code_object(ref)
    if target is None:
        return None

    try:
        filename = inspect.getsourcefile(target)
        lines, start = inspect.getsourcelines(target)
    except (TypeError, OSError):
        return None

    if not filename or not lines:
        return None

    start = max(1, start)
    return SourceLocation(Path(filename), start, start + len(lines) - 1)


def read_source(location: SourceLocation, callback: Any = None) -> str:
    """Return the text of *location*.

    Raises:
        IntrospectionError: If the file has vanished or cannot be decoded.
    """
    try:
        content = location.file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IntrospectionError(callback, str(e), filepath=location.file) from e

    source_lines = content.splitlines(keepends=True)
    if location.start_line > len(source_lines):
        raise IntrospectionError(
            callback, "source span is past end of file", filepath=location.file
        )
    return "".join(source_lines[location.start_line - 1 : location.end_line])
