"""
Runtime behavior of active optimizations.

Applying an optimization only writes its ``doctor_opt_<id>`` option. When a
site boots, :func:`install_active_optimizations` reads those options and
registers the matching callbacks on the host's checkpoints.
"""

import re
from typing import Any, Callable, Dict, List
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..host.hooks import HookRegistry, ScriptRegistry
from ..host.options import HOME_URL, PRELOAD_FONTS_KEY, OptionStore
from ..logging_config import get_logger
from .catalog import CATALOG

logger = get_logger(__name__)

DEFER_EXCLUDED_HANDLES = ("jquery", "jquery-core", "jquery-migrate")
EMOJI_SVG_URL = "https://s.w.org/images/core/emoji/2/svg/"
HEARTBEAT_INTERVAL = 60

_EMOJI_CALLBACKS = {
    "wp_head": ("print_emoji_detection_script",),
    "admin_print_scripts": ("print_emoji_detection_script",),
    "wp_print_styles": ("print_emoji_styles",),
    "admin_print_styles": ("print_emoji_styles",),
    "the_content_feed": ("wp_staticize_emoji",),
    "comment_text_rss": ("wp_staticize_emoji",),
    "wp_mail": ("wp_staticize_emoji_for_email",),
}

_HEAD_CLUTTER = (
    "rsd_link",
    "wlwmanifest_link",
    "wp_generator",
    "wp_shortlink_wp_head",
    "start_post_rel_link",
    "index_rel_link",
    "adjacent_posts_rel_link_wp_head",
)

_IMG_SRC = re.compile(r"<img(.*?)src=", re.IGNORECASE)
_HTML_COMMENT = re.compile(r"<!--(?!\s*(?:\[if [^\]]+]|<!|>))(?:(?!-->).)*-->", re.DOTALL)
_WHITESPACE = re.compile(r"\s+")
_BETWEEN_TAGS = re.compile(r">\s+<")


# ── Filter callbacks ─────────────────────────────────────────────────


def return_true(*_: Any) -> bool:
    return True


def return_false(*_: Any) -> bool:
    return False


def add_lazy_loading_to_images(content: str) -> str:
    return _IMG_SRC.sub(r'<img\1loading="lazy" src=', content)


def defer_scripts(tag: str, handle: str) -> str:
    if handle in DEFER_EXCLUDED_HANDLES:
        return tag
    return tag.replace(" src", " defer src")


def minify_html_output(html: str) -> str:
    """Drop comments (conditional comments survive) and collapse whitespace."""
    html = _HTML_COMMENT.sub("", html)
    html = _WHITESPACE.sub(" ", html)
    html = _BETWEEN_TAGS.sub("><", html)
    return html.strip()


def strip_version_query(src: str) -> str:
    """Remove the ``ver`` query argument from an asset URL."""
    if "?ver=" not in src:
        return src
    parts = urlsplit(src)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "ver"]
    return urlunsplit(parts._replace(query=urlencode(query)))


def disable_emoji_tinymce(plugins: Any) -> List[str]:
    if isinstance(plugins, list):
        return [p for p in plugins if p != "wpemoji"]
    return []


def disable_emoji_dns_prefetch(urls: List[str], relation_type: str) -> List[str]:
    if relation_type == "dns-prefetch":
        return [u for u in urls if u != EMOJI_SVG_URL]
    return urls


def disable_embeds_rewrites(rules: Dict[str, str]) -> Dict[str, str]:
    return {rule: rewrite for rule, rewrite in rules.items() if "embed=true" not in rewrite}


def disable_embeds_query_vars(query_vars: List[str]) -> List[str]:
    return [v for v in query_vars if v != "embed"]


def heartbeat_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    settings = dict(settings)
    settings["interval"] = HEARTBEAT_INTERVAL
    return settings


def disable_xmlrpc_methods(methods: Dict[str, Any]) -> Dict[str, Any]:
    return {name: method for name, method in methods.items() if name != "pingback.ping"}


def preload_font_links(fonts: List[str]) -> List[str]:
    return [
        f'<link rel="preload" href="{font}" as="font" type="font/woff2" crossorigin>'
        for font in fonts
    ]


# ── Installers ───────────────────────────────────────────────────────


class _Installer:
    """Registers the callbacks of each active optimization on one host."""

    def __init__(self, store: OptionStore, hooks: HookRegistry, scripts: ScriptRegistry):
        self.store = store
        self.hooks = hooks
        self.scripts = scripts

    def lazy_loading(self, value: Any) -> None:
        self.hooks.add("wp_lazy_loading_enabled", return_true)
        self.hooks.add("the_content", add_lazy_loading_to_images)

    def defer_js(self, value: Any) -> None:
        self.hooks.add("script_loader_tag", defer_scripts, 10, 2)

    def disable_emoji(self, value: Any) -> None:
        for checkpoint, names in _EMOJI_CALLBACKS.items():
            for name in names:
                self.hooks.remove_named(checkpoint, name)
        self.hooks.add("tiny_mce_plugins", disable_emoji_tinymce)
        self.hooks.add("wp_resource_hints", disable_emoji_dns_prefetch, 10, 2)

    def minify_html(self, value: Any) -> None:
        self.hooks.add("final_output", minify_html_output)

    def preload_fonts(self, value: Any) -> None:
        self.hooks.add("wp_head", self.print_preload_links, 1)

    def print_preload_links(self, output: List[str]) -> None:
        fonts = self.hooks.apply_filters(
            "doctor_preload_fonts", list(self.store.get(PRELOAD_FONTS_KEY, []) or [])
        )
        output.extend(preload_font_links(fonts))

    def disable_embeds(self, value: Any) -> None:
        self.hooks.remove_named("wp_head", "wp_oembed_add_discovery_links")
        self.hooks.remove_named("wp_head", "wp_oembed_add_host_js")
        self.hooks.add("rewrite_rules_array", disable_embeds_rewrites)
        self.hooks.add("query_vars", disable_embeds_query_vars)

    def limit_revisions(self, value: Any) -> None:
        limit = int(value)
        self.hooks.add("wp_revisions_to_keep", lambda _keep: limit)

    def disable_heartbeat(self, value: Any) -> None:
        self.hooks.add("init", self.optimize_heartbeat)

    def optimize_heartbeat(self, is_admin: bool = False) -> None:
        if not is_admin:
            self.scripts.deregister("heartbeat")
        self.hooks.add("heartbeat_settings", heartbeat_settings)

    def disable_xmlrpc(self, value: Any) -> None:
        self.hooks.add("xmlrpc_enabled", return_false)
        self.hooks.add("xmlrpc_methods", disable_xmlrpc_methods)

    def remove_query_strings(self, value: Any) -> None:
        self.hooks.add("script_loader_src", strip_version_query, 15)
        self.hooks.add("style_loader_src", strip_version_query, 15)

    def disable_self_pingbacks(self, value: Any) -> None:
        self.hooks.add("pre_ping", self.drop_self_pingbacks)

    def drop_self_pingbacks(self, links: List[str]) -> None:
        home = self.store.get(HOME_URL, "") or ""
        if home:
            links[:] = [link for link in links if not link.startswith(home)]

    def disable_dashicons(self, value: Any) -> None:
        self.hooks.add("wp_enqueue_scripts", self.dequeue_dashicons)

    def dequeue_dashicons(self, logged_in: bool = False) -> None:
        if not logged_in:
            self.scripts.dequeue("dashicons")

    def cleanup_head(self, value: Any) -> None:
        for name in _HEAD_CLUTTER:
            self.hooks.remove_named("wp_head", name)


def install_active_optimizations(
    store: OptionStore, hooks: HookRegistry, scripts: ScriptRegistry
) -> List[str]:
    """Register callbacks for every optimization whose option is set.

    Returns:
        Ids of the installed optimizations, in catalog order.
    """
    installer = _Installer(store, hooks, scripts)
    installed = []

    for opt_id, opt in CATALOG.items():
        value = store.get(opt.option_name)
        if not value:
            continue
        install: Callable[[Any], None] = getattr(installer, opt_id)
        install(value)
        installed.append(opt_id)

    if installed:
        logger.debug(f"Installed optimizations: {', '.join(installed)}")
    return installed
