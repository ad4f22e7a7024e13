"""
Key-value option storage.

The core only ever talks to an :class:`OptionStore`. Two implementations ship:
an in-process dict for tests and embedding, and a diskcache-backed store that
persists options between CLI runs.
"""

import copy
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Protocol, Union

from diskcache import Cache, Timeout

from ..exceptions import OptionStoreError
from ..logging_config import get_logger

logger = get_logger(__name__)

# Fixed option keys
ACTIVE_PLUGINS = "active_plugins"
HOME_URL = "home"
HISTORY_KEY = "doctor_performance_history"
BACKUPS_KEY = "doctor_backups"
ACTIVE_OPTIMIZATIONS_KEY = "doctor_active_optimizations"
DISABLED_SCRIPTS_KEY = "doctor_disabled_scripts"
PRELOAD_FONTS_KEY = "doctor_preload_fonts"
DOCTOR_PREFIX = "doctor_"


class OptionStore(Protocol):
    """Host option storage: get/set/delete by string key."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> bool:
        ...

    def keys(self) -> List[str]:
        ...


class MemoryOptionStore:
    """Dict-backed option store. Values are deep-copied in and out."""

    def __init__(self, initial: Union[Dict[str, Any], None] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        del self._data[key]
        return True

    def keys(self) -> List[str]:
        return list(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))


class DiskOptionStore:
    """
    SQLite-backed option store on top of diskcache.

    Usage::

        with DiskOptionStore("/srv/site/.plugin-doctor") as store:
            store.set("active_plugins", ["seo/seo.py"])
    """

    def __init__(self, directory: Union[str, Path], timeout: float = 5.0):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._cache = Cache(str(self.directory), timeout=timeout)
        logger.debug(f"Option store opened at {self.directory}")

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self._cache.get(key, default=default)
        except (Timeout, sqlite3.Error) as e:
            raise OptionStoreError(key, str(e)) from e

    def set(self, key: str, value: Any) -> None:
        try:
            self._cache.set(key, value)
        except (Timeout, sqlite3.Error, OSError) as e:
            raise OptionStoreError(key, str(e)) from e

    def delete(self, key: str) -> bool:
        try:
            return bool(self._cache.delete(key))
        except (Timeout, sqlite3.Error) as e:
            raise OptionStoreError(key, str(e)) from e

    def keys(self) -> List[str]:
        return [k for k in self._cache.iterkeys() if isinstance(k, str)]

    def close(self) -> None:
        self._cache.close()

    def __enter__(self) -> "DiskOptionStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def purge_doctor_options(store: OptionStore) -> int:
    """Delete every option this tool owns. Returns the number removed."""
    removed = 0
    for key in store.keys():
        if key.startswith(DOCTOR_PREFIX) and store.delete(key):
            removed += 1
    logger.info(f"Purged {removed} doctor options")
    return removed
