"""The fixed catalog of one-click optimizations."""

from typing import Dict

from ..models import Optimization, Severity

# Expected score improvement per impact level
IMPACT_SCORES: Dict[Severity, int] = {
    Severity.HIGH: 15,
    Severity.MEDIUM: 8,
    Severity.LOW: 3,
}

REVISION_LIMIT = 5

OPTIMIZATIONS = (
    Optimization(
        id="lazy_loading",
        name="Lazy-load images",
        description="Load images only when they scroll into the viewport",
        impact=Severity.HIGH,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Image lazy loading enabled.",
    ),
    Optimization(
        id="defer_js",
        name="Defer JavaScript",
        description="Postpone loading of non-critical JavaScript",
        impact=Severity.HIGH,
        difficulty="medium",
        reversible=True,
        value=True,
        applied_message="JavaScript defer enabled.",
    ),
    Optimization(
        id="disable_emoji",
        name="Disable emoji scripts",
        description="Remove the host's emoji scripts and styles when they are not needed",
        impact=Severity.LOW,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Emoji scripts disabled.",
    ),
    Optimization(
        id="minify_html",
        name="Minify HTML",
        description="Strip whitespace and comments from the HTML output",
        impact=Severity.MEDIUM,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="HTML minification enabled.",
    ),
    Optimization(
        id="preload_fonts",
        name="Preload fonts",
        description="Preload web fonts to shorten rendering time",
        impact=Severity.MEDIUM,
        difficulty="medium",
        reversible=True,
        value=True,
        applied_message="Font preloading enabled.",
    ),
    Optimization(
        id="disable_embeds",
        name="Disable embeds",
        description="Remove the host's embed discovery and embed endpoints",
        impact=Severity.LOW,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Embeds disabled.",
    ),
    Optimization(
        id="limit_revisions",
        name="Limit post revisions",
        description="Cap the number of revisions stored per post",
        impact=Severity.LOW,
        difficulty="easy",
        reversible=True,
        value=REVISION_LIMIT,
        applied_message=f"Post revisions limited to {REVISION_LIMIT}.",
    ),
    Optimization(
        id="disable_heartbeat",
        name="Tune heartbeat",
        description="Lower the frequency of background heartbeat requests",
        impact=Severity.MEDIUM,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Heartbeat tuned.",
    ),
    Optimization(
        id="disable_xmlrpc",
        name="Disable XML-RPC",
        description="Improve security and performance by blocking XML-RPC requests",
        impact=Severity.MEDIUM,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="XML-RPC disabled.",
    ),
    Optimization(
        id="remove_query_strings",
        name="Remove query strings",
        description="Strip version query strings from static assets to improve caching",
        impact=Severity.MEDIUM,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Query string removal enabled.",
    ),
    Optimization(
        id="disable_self_pingbacks",
        name="Disable self pingbacks",
        description="Stop the site from sending pingbacks to itself",
        impact=Severity.LOW,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Self pingbacks disabled.",
    ),
    Optimization(
        id="disable_dashicons",
        name="Disable front-end dashicons",
        description="Drop the dashicons stylesheet for visitors who are not logged in",
        impact=Severity.LOW,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Front-end dashicons disabled.",
    ),
    Optimization(
        id="cleanup_head",
        name="Clean up page head",
        description="Remove unneeded links (RSD, WLW, shortlink, generator) from the page head",
        impact=Severity.LOW,
        difficulty="easy",
        reversible=True,
        value=True,
        applied_message="Page head cleanup enabled.",
    ),
)

CATALOG: Dict[str, Optimization] = {opt.id: opt for opt in OPTIMIZATIONS}
