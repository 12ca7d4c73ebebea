"""Route-proxy table synthesis for classified pages.

Azure Functions proxies route by first textual match, so the table must be
ordered most-specific-first. Ordering is an explicit specificity comparison
rather than a sort on the pattern strings. Routes are compared segment by
segment; at the first position where they differ, a literal beats a
parameter, a parameter beats a catch-all, and a catch-all beats an optional
catch-all:

* ``/docs/[...path]`` comes before ``/[section]/[slug]``, so ``/docs/intro``
  reaches the docs page;
* ``/blog/[slug]`` comes before ``/[section]/[slug]``;
* ``/[id]`` comes before ``/[...all]``, and ``/[a]/[b]`` before
  ``/[a]/[...rest]``;
* a route that is a prefix of another sorts first, so ``/shop`` is served by
  ``shop.js`` before ``/shop/[[...filters]]`` sees it.

Anything still tied is ordered by literal text and finally by page path, so
the result never depends on the order pages were discovered in.
"""

from __future__ import annotations

import json
import logging
import re
import typing as typ
from urllib.parse import quote

from nextfunc.build.models import Page, PageKind, RouteEntry, RouteSegment, SegmentKind
from nextfunc.errors import AmbiguousRouteError

logger = logging.getLogger(__name__)

DEFAULT_FUNCTION_BASE_URL = "https://localhost/api/"
PROXIES_SCHEMA = "http://json.schemastore.org/proxies"
REQUIRED_CATCH_ALL_CONSTRAINT = "minlength(1)"

_SEGMENT_RANK = {
    SegmentKind.LITERAL: 0,
    SegmentKind.PARAMETER: 1,
    SegmentKind.CATCH_ALL: 2,
    SegmentKind.OPTIONAL_CATCH_ALL: 3,
}

SpecificityKey = tuple[typ.Any, ...]


def build_route_table(
    pages: typ.Iterable[Page],
    asset_base_url: str,
    *,
    function_base_url: str = DEFAULT_FUNCTION_BASE_URL,
) -> tuple[RouteEntry, ...]:
    """Return the ordered proxy entries for every routable page.

    Parameters
    ----------
    pages : Iterable[Page]
        Classified pages; special pages are skipped.
    asset_base_url : str
        URL prefix under which pre-rendered pages are served from blob
        storage. Static targets are this prefix plus the page's file name.
    function_base_url : str, optional
        URL prefix of the local function invocation path.

    Returns
    -------
    tuple[RouteEntry, ...]
        Entries ordered most-specific-first.

    Raises
    ------
    AmbiguousRouteError
        If two pages resolve to the same route shape.
    """
    routable = [page for page in pages if page.kind is not PageKind.SPECIAL]
    _ensure_unambiguous(routable)
    ordered = sorted(routable, key=specificity_key)
    entries = tuple(
        _build_entry(page, asset_base_url, function_base_url) for page in ordered
    )
    logger.info("Generated %d proxy routes", len(entries))
    return entries


def specificity_key(page: Page) -> SpecificityKey:
    """Return the sort key placing more specific routes first.

    The leading element holds one rank per segment, so tuples compare
    position by position and a proper prefix sorts before its extensions.

    Examples
    --------
    >>> from nextfunc.build.classifier import classify_page
    >>> from pathlib import Path
    >>> pages = [classify_page(Path(p), p) for p in ("[a]/[b].js", "docs/[...p].js")]
    >>> [page.relative_path for page in sorted(pages, key=specificity_key)]
    ['docs/[...p].js', '[a]/[b].js']
    """
    ranks = tuple(_SEGMENT_RANK[segment.kind] for segment in page.segments)
    return (ranks, _shape(page.segments), page.relative_path)


def synthesize_pattern(segments: typ.Sequence[RouteSegment]) -> str:
    """Return an anchored regular expression with named groups for ``segments``.

    Examples
    --------
    >>> from nextfunc.build.models import RouteSegment, SegmentKind
    >>> synthesize_pattern(
    ...     [RouteSegment(SegmentKind.LITERAL, "blog"),
    ...      RouteSegment(SegmentKind.PARAMETER, "slug")]
    ... )
    '^/blog/(?P<slug>[^/]+)$'
    """
    if not segments:
        return "^/$"
    parts: list[str] = []
    for position, segment in enumerate(segments):
        match segment.kind:
            case SegmentKind.LITERAL:
                parts.append("/" + re.escape(segment.value))
            case SegmentKind.PARAMETER:
                parts.append(f"/(?P<{segment.value}>[^/]+)")
            case SegmentKind.CATCH_ALL:
                parts.append(f"/(?P<{segment.value}>.+)")
            case SegmentKind.OPTIONAL_CATCH_ALL if position == 0:
                parts.append(f"/(?P<{segment.value}>.+)?")
            case SegmentKind.OPTIONAL_CATCH_ALL:
                parts.append(f"(?:/(?P<{segment.value}>.+))?")
    return "^" + "".join(parts) + "$"


def synthesize_route(segments: typ.Sequence[RouteSegment]) -> str:
    """Return the Azure route template for ``segments`` (``/blog/{slug}``).

    A host catch-all ``{*name}`` also matches the bare prefix, which is right
    for ``[[...name]]``. A required ``[...name]`` carries a ``minlength(1)``
    constraint so the bare prefix falls through to later entries.

    Examples
    --------
    >>> from nextfunc.build.models import RouteSegment, SegmentKind
    >>> synthesize_route(
    ...     [RouteSegment(SegmentKind.LITERAL, "docs"),
    ...      RouteSegment(SegmentKind.CATCH_ALL, "path")]
    ... )
    '/docs/{*path:minlength(1)}'
    """
    parts: list[str] = []
    for segment in segments:
        match segment.kind:
            case SegmentKind.LITERAL:
                parts.append(segment.value)
            case SegmentKind.PARAMETER:
                parts.append(f"{{{segment.value}}}")
            case SegmentKind.CATCH_ALL:
                parts.append(f"{{*{segment.value}:{REQUIRED_CATCH_ALL_CONSTRAINT}}}")
            case SegmentKind.OPTIONAL_CATCH_ALL:
                parts.append(f"{{*{segment.value}}}")
    return "/" + "/".join(parts)


def render_proxies(entries: typ.Sequence[RouteEntry]) -> str:
    """Serialize the route table as an Azure Functions ``proxies.json``."""
    proxies: dict[str, typ.Any] = {}
    for entry in entries:
        proxies[entry.name] = {
            "matchCondition": {
                "route": entry.route,
                "methods": [method.upper() for method in entry.page.methods],
            },
            "backendUri": entry.target,
        }
    document = {"$schema": PROXIES_SCHEMA, "proxies": proxies}
    return json.dumps(document, indent=2) + "\n"


def _build_entry(page: Page, asset_base_url: str, function_base_url: str) -> RouteEntry:
    if page.kind is PageKind.STATIC:
        target = asset_base_url + quote(page.target_page_file_name)
    else:
        target = function_base_url + page.target_identifier
        query = "&".join(f"{name}={{{name}}}" for name in page.parameter_names)
        if query:
            target = f"{target}?{query}"
    return RouteEntry(
        name=page.target_identifier,
        route=synthesize_route(page.segments),
        pattern=synthesize_pattern(page.segments),
        target=target,
        page=page,
    )


def _shape(segments: typ.Sequence[RouteSegment]) -> tuple[tuple[int, str], ...]:
    return tuple(
        (_SEGMENT_RANK[segment.kind], segment.value if segment.is_literal else "")
        for segment in segments
    )


def _ensure_unambiguous(pages: typ.Sequence[Page]) -> None:
    seen: dict[tuple[tuple[int, str], ...], Page] = {}
    for page in sorted(pages, key=lambda p: p.relative_path):
        shape = _shape(page.segments)
        existing = seen.get(shape)
        if existing is not None:
            raise AmbiguousRouteError(
                synthesize_route(page.segments),
                existing.relative_path,
                page.relative_path,
            )
        seen[shape] = page


__all__ = [
    "DEFAULT_FUNCTION_BASE_URL",
    "PROXIES_SCHEMA",
    "REQUIRED_CATCH_ALL_CONSTRAINT",
    "build_route_table",
    "render_proxies",
    "specificity_key",
    "synthesize_pattern",
    "synthesize_route",
]
