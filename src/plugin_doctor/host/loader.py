"""Boot a site: import each active plugin and let it register callbacks.

A plugin entry module may define ``setup(host)``; it receives the
:class:`HostEnvironment` and registers hooks and scripts on it. Modules are
kept in ``sys.modules`` so class-level introspection can find their files.
"""

import hashlib
import importlib.util
import re
import sys
from types import ModuleType
from typing import Iterable, List

from ..exceptions import PluginLoadError
from ..logging_config import PLUGIN_MODULE_PREFIX, get_logger, log_error
from ..models import ComponentRecord
from .environment import HostEnvironment

logger = get_logger(__name__)


def _module_name(record: ComponentRecord) -> str:
    ident = re.sub(r"\W", "_", record.slug)
    digest = hashlib.md5(str(record.path).encode()).hexdigest()[:8]
    return f"{PLUGIN_MODULE_PREFIX}.{ident}_{digest}"


def load_plugin(host: HostEnvironment, record: ComponentRecord) -> ModuleType:
    """Import one plugin entry module and run its ``setup`` hook.

    Raises:
        PluginLoadError: If the module cannot be imported or ``setup`` fails.
    """
    module_name = _module_name(record)
    spec = importlib.util.spec_from_file_location(module_name, record.path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(record.slug, record.path, "not an importable module")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        sys.modules.pop(module_name, None)
        raise PluginLoadError(record.slug, record.path, f"{type(e).__name__}: {e}") from e

    setup = getattr(module, "setup", None)
    if callable(setup):
        try:
            setup(host)
        except Exception as e:
            raise PluginLoadError(
                record.slug, record.path, f"setup() raised {type(e).__name__}: {e}"
            ) from e

    logger.debug(f"Loaded plugin {record.slug} from {record.path}")
    return module


def boot(host: HostEnvironment, components: Iterable[ComponentRecord]) -> List[str]:
    """Load every component; a broken plugin is logged and left out.

    Returns:
        Slugs that loaded successfully, in load order.
    """
    loaded = []
    for record in components:
        try:
            load_plugin(host, record)
        except PluginLoadError as e:
            log_error(logger, e)
            continue
        loaded.append(record.slug)
    return loaded
