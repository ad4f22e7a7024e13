"""
Conflict detection between active plugins.

Four independent scans feed one deduplicated list:

    checkpoints     shared priorities on critical checkpoints, extreme priorities
    scripts         several jQuery copies, one source registered under many handles
    categories      two or more plugins doing the same job
    error log       log lines that mention a plugin
"""

import hashlib
import json
import re
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import DEFAULT_THRESHOLDS, Thresholds
from ..host.hooks import HookRegistry, ScriptRegistry
from ..host.layout import HostLayout
from ..inspector import ComponentInspector
from ..logging_config import get_logger
from ..models import Conflict, ConflictType, Severity

logger = get_logger(__name__)

CRITICAL_CHECKPOINTS = (
    "init",
    "wp_head",
    "wp_footer",
    "the_content",
    "the_title",
    "wp_enqueue_scripts",
)

# Category -> keywords; the first keyword that matches a plugin wins
PLUGIN_CATEGORIES: Dict[str, List[str]] = {
    "seo": ["yoast", "seo", "all-in-one-seo", "rank-math", "seopress"],
    "cache": ["cache", "w3-total-cache", "wp-super-cache", "wp-rocket", "litespeed"],
    "security": ["security", "wordfence", "sucuri", "ithemes-security", "all-in-one-wp-security"],
    "backup": ["backup", "updraftplus", "backupbuddy", "duplicator", "backwpup"],
    "forms": ["contact-form", "gravity-forms", "wpforms", "ninja-forms", "formidable"],
    "slider": ["slider", "revolution-slider", "layer-slider", "meta-slider"],
}

CATEGORY_LABELS = {
    "seo": "SEO",
    "cache": "Cache",
    "security": "Security",
    "backup": "Backup",
    "forms": "Forms",
    "slider": "Slider",
}

_PLUGIN_URL = re.compile(r"/content/plugins/([^/]+)/")


def conflict_key(conflict_type: ConflictType, components: List[str], details: Dict[str, Any]) -> str:
    """Stable identity of a conflict: type plus a digest of components and details."""
    payload = "_".join(sorted(components)) + "_" + json.dumps(details, sort_keys=True, default=str)
    return f"{conflict_type.value}_{hashlib.md5(payload.encode('utf-8')).hexdigest()}"


def _unique(items: List[str]) -> List[str]:
    return list(dict.fromkeys(items))


class ConflictDetector:
    """Detect conflicts between the active components of one site."""

    def __init__(
        self,
        inspector: ComponentInspector,
        hooks: HookRegistry,
        scripts: ScriptRegistry,
        layout: HostLayout,
        error_log: Optional[Path] = None,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
    ):
        self.inspector = inspector
        self.hooks = hooks
        self.scripts = scripts
        self.layout = layout
        self.error_log = error_log
        self.thresholds = thresholds
        self.conflicts: List[Conflict] = []
        self._keys: set = set()

    def detect_conflicts(self) -> List[Conflict]:
        """Run every scan and return the deduplicated conflicts."""
        self.conflicts = []
        self._keys = set()

        self._detect_hook_conflicts()
        self._detect_script_conflicts()
        self._detect_duplicate_functionality()
        self._detect_error_log_mentions()

        logger.debug(f"Detected {len(self.conflicts)} conflicts")
        return self.conflicts

    def conflicts_by_severity(self, severity: Severity) -> List[Conflict]:
        return [c for c in self.conflicts if c.severity is severity]

    # ------------------------------------------------------------------
    # scans
    # ------------------------------------------------------------------

    def _detect_hook_conflicts(self) -> None:
        for checkpoint in CRITICAL_CHECKPOINTS:
            if not self.hooks.has(checkpoint):
                continue

            callbacks = self.hooks.callbacks(checkpoint)

            for priority, entries in callbacks.items():
                if len(entries) < 2:
                    continue

                slugs = _unique(
                    [
                        slug
                        for slug in (
                            self.inspector.resolve_slug_from_callback(e.callback) for e in entries
                        )
                        if slug
                    ]
                )
                if len(slugs) > 1:
                    self._add_conflict(
                        ConflictType.HOOK_PRIORITY,
                        slugs,
                        f'Several plugins use the same priority ({priority}) on checkpoint '
                        f'"{checkpoint}", which may cause unexpected behavior.',
                        {"hook": checkpoint, "priority": priority},
                    )

            for priority, entries in callbacks.items():
                if abs(priority) <= self.thresholds.extreme_priority:
                    continue
                for entry in entries:
                    slug = self.inspector.resolve_slug_from_callback(entry.callback)
                    if not slug:
                        continue
                    self._add_conflict(
                        ConflictType.EXTREME_PRIORITY,
                        [slug],
                        f'Plugin "{slug}" uses an extreme priority ({priority}) on checkpoint '
                        f'"{checkpoint}", which may override other plugins.',
                        {"hook": checkpoint, "priority": priority},
                    )

    def _detect_script_conflicts(self) -> None:
        jquery_scripts = []
        for entry in self.scripts.entries():
            if entry.src is None:
                continue
            if entry.handle != "jquery" and "jquery" not in entry.src:
                continue

            match = _PLUGIN_URL.search(entry.src)
            jquery_scripts.append(
                {
                    "handle": entry.handle,
                    "src": entry.src,
                    "version": entry.version if entry.version is not None else "unknown",
                    "plugin": match.group(1) if match else "",
                }
            )

        if len(jquery_scripts) > 1:
            versions = _unique([s["version"] for s in jquery_scripts if s["version"]])
            plugins = _unique([s["plugin"] for s in jquery_scripts if s["plugin"]])

            noun = "version" if len(versions) == 1 else "versions"
            description = (
                f"Found {len(jquery_scripts)} jQuery scripts with {len(versions)} different {noun}."
            )
            if plugins:
                description += f" Plugins involved: {', '.join(plugins)}"

            self._add_conflict(
                ConflictType.JQUERY_CONFLICT,
                plugins,
                description,
                {"jquery_scripts": jquery_scripts, "versions": versions},
            )

        sources: Dict[str, List[str]] = {}
        for entry in self.scripts.entries():
            if not entry.src:
                continue
            src = entry.src.split("?", 1)[0]
            sources.setdefault(src, []).append(entry.handle)

        for src, handles in sources.items():
            if len(handles) < 2:
                continue
            self._add_conflict(
                ConflictType.DUPLICATE_SCRIPT,
                [],
                f'Script "{src.rsplit("/", 1)[-1]}" is registered {len(handles)} times '
                f"under different handles ({', '.join(handles)}).",
                {"src": src, "handles": handles},
            )

    def _detect_duplicate_functionality(self) -> None:
        by_category: Dict[str, List[str]] = {}

        for slug, record in self.inspector.list_active().items():
            name_lower = record.name.lower()
            slug_lower = slug.lower()
            for category, keywords in PLUGIN_CATEGORIES.items():
                if any(k in name_lower or k in slug_lower for k in keywords):
                    by_category.setdefault(category, []).append(slug)

        for category, slugs in by_category.items():
            if len(slugs) < 2:
                continue
            self._add_conflict(
                ConflictType.DUPLICATE_FUNCTIONALITY,
                slugs,
                f"Several {CATEGORY_LABELS.get(category, category)} plugins are active. "
                "This can cause conflicts and performance problems. Keep only one active.",
                {"category": category},
            )

    def _resolve_error_log(self) -> Optional[Path]:
        if self.error_log is not None and self.error_log.is_file():
            return self.error_log
        if self.layout.debug_log.is_file():
            return self.layout.debug_log
        return None

    def _tail_error_log(self) -> Optional[List[str]]:
        log_path = self._resolve_error_log()
        if log_path is None:
            logger.debug("No error log found, skipping error-log scan")
            return None

        try:
            with open(log_path, encoding="utf-8", errors="replace") as f:
                return list(deque(f, maxlen=self.thresholds.log_tail_lines))
        except OSError as e:
            logger.debug(f"Cannot read error log {log_path}: {e}")
            return None

    def _detect_error_log_mentions(self) -> None:
        lines = self._tail_error_log()
        if not lines:
            return

        lowered = [line.lower() for line in lines]
        for slug, record in self.inspector.list_active().items():
            directory = record.directory.name.lower()
            slug_lower = slug.lower()
            error_count = sum(1 for line in lowered if directory in line or slug_lower in line)
            if error_count == 0:
                continue

            noun = "error" if error_count == 1 else "errors"
            self._add_conflict(
                ConflictType.PHP_ERROR,
                [slug],
                f"{error_count} {noun} related to this plugin found in the error log.",
                {"error_count": error_count},
            )

    # ------------------------------------------------------------------

    def _add_conflict(
        self,
        conflict_type: ConflictType,
        components: List[str],
        description: str,
        details: Dict[str, Any],
    ) -> None:
        key = conflict_key(conflict_type, components, details)
        if key in self._keys:
            return
        self._keys.add(key)

        locations = {}
        for slug in components:
            record = self.inspector.get_component(slug)
            if record is None:
                continue
            locations[slug] = {
                "name": record.name,
                "file": self.layout.relative_to_plugins(record.path),
                "dir": self.layout.relative_to_plugins(record.directory),
            }

        self.conflicts.append(
            Conflict(
                type=conflict_type,
                severity=conflict_type.severity,
                components=list(components),
                description=description,
                details=details,
                key=key,
                locations=locations,
            )
        )
