"""Filesystem page discovery for the compiled Next.js pages directory.

Walks the serverless build output (``.next/serverless/pages``) and turns every
compiled page into an immutable :class:`~nextfunc.build.models.Page`:

- ``*.html`` files are pre-rendered and become ``STATIC`` pages.
- ``*.js`` files need a server-side handler and become ``DYNAMIC`` pages.
- Top-level ``_app``, ``_document`` and ``_error`` entries are ``SPECIAL``.

Bracketed path segments become route parameters: ``[id]`` matches one
segment, ``[...all]`` one or more, ``[[...all]]`` zero or more. Problems are
collected across the whole tree and raised together so a partially classified
build never reaches the route table.
"""

from __future__ import annotations

import logging
import re
import typing as typ
from pathlib import Path, PurePosixPath

from nextfunc._constants import RESERVED_PAGES
from nextfunc.build.models import (
    Page,
    PageKind,
    RouteSegment,
    SegmentKind,
    derive_target_identifier,
)
from nextfunc.errors import (
    ClassificationError,
    ConflictingPageKindError,
    MalformedRouteError,
)

logger = logging.getLogger(__name__)

_PAGE_SUFFIXES = frozenset({".js", ".html"})
_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_OPTIONAL_CATCH_ALL_RE = re.compile(rf"^\[\[\.\.\.({_NAME})\]\]$")
_CATCH_ALL_RE = re.compile(rf"^\[\.\.\.({_NAME})\]$")
_PARAMETER_RE = re.compile(rf"^\[({_NAME})\]$")


def classify(pages_dir: Path) -> tuple[Page, ...]:
    """Scan ``pages_dir`` and classify every compiled page.

    Parameters
    ----------
    pages_dir : Path
        Root of the compiled pages tree produced by the upstream compiler.

    Returns
    -------
    tuple[Page, ...]
        Pages ordered by their relative path.

    Raises
    ------
    FileNotFoundError
        If ``pages_dir`` does not exist.
    ClassificationError
        If any page has a malformed route, a conflicting kind, or an identifier
        that collides with another page. Every problem is reported at once.
    """
    root = Path(pages_dir)
    if not root.is_dir():
        msg = f"Pages directory not found: {root}"
        raise FileNotFoundError(msg)

    pages: list[Page] = []
    errors: list[Exception] = []
    for path in sorted(_iter_page_files(root)):
        relative = path.relative_to(root).as_posix()
        try:
            pages.append(classify_page(path, relative))
        except (MalformedRouteError, ConflictingPageKindError) as exc:
            errors.append(exc)

    errors.extend(_find_identifier_collisions(pages))
    if errors:
        raise ClassificationError(errors)

    counts = {kind: sum(1 for page in pages if page.kind is kind) for kind in PageKind}
    logger.info(
        "Classified %d pages (%d static, %d dynamic, %d special)",
        len(pages),
        counts[PageKind.STATIC],
        counts[PageKind.DYNAMIC],
        counts[PageKind.SPECIAL],
    )
    return tuple(pages)


def classify_page(source_path: Path, relative_path: str) -> Page:
    """Build a :class:`Page` for one compiled output file."""
    posix = PurePosixPath(relative_path)
    is_html = posix.suffix == ".html"
    stem_parts = [*posix.parent.parts, posix.stem]
    is_reserved = len(stem_parts) == 1 and posix.stem in RESERVED_PAGES

    if is_reserved and is_html:
        raise ConflictingPageKindError(relative_path)
    if is_reserved:
        kind = PageKind.SPECIAL
        segments: tuple[RouteSegment, ...] = (
            RouteSegment(SegmentKind.LITERAL, posix.stem),
        )
    else:
        kind = PageKind.STATIC if is_html else PageKind.DYNAMIC
        segments = parse_segments(relative_path, stem_parts)

    return Page(
        source_path=source_path,
        relative_path=relative_path,
        segments=segments,
        kind=kind,
        target_identifier=derive_target_identifier(segments),
        is_api=bool(stem_parts) and stem_parts[0] == "api" and len(stem_parts) > 1,
    )


def parse_segments(relative_path: str, parts: typ.Sequence[str]) -> tuple[RouteSegment, ...]:
    """Parse path parts into route segments.

    A trailing ``index`` part maps to its directory URL. Catch-all segments
    must come last and parameter names must be unique within the route.
    """
    names = list(parts)
    if names and names[-1] == "index":
        names.pop()

    segments: list[RouteSegment] = []
    seen: set[str] = set()
    for position, name in enumerate(names):
        segment = _parse_segment(relative_path, name)
        if segment.is_catch_all and position != len(names) - 1:
            raise MalformedRouteError(
                relative_path, f"catch-all segment '{name}' must be the last segment"
            )
        if not segment.is_literal:
            if segment.value in seen:
                raise MalformedRouteError(
                    relative_path, f"parameter '{segment.value}' is declared twice"
                )
            seen.add(segment.value)
        segments.append(segment)
    return tuple(segments)


def _parse_segment(relative_path: str, name: str) -> RouteSegment:
    if match := _OPTIONAL_CATCH_ALL_RE.match(name):
        return RouteSegment(SegmentKind.OPTIONAL_CATCH_ALL, match.group(1))
    if match := _CATCH_ALL_RE.match(name):
        return RouteSegment(SegmentKind.CATCH_ALL, match.group(1))
    if match := _PARAMETER_RE.match(name):
        return RouteSegment(SegmentKind.PARAMETER, match.group(1))
    if "[" in name or "]" in name:
        raise MalformedRouteError(relative_path, f"invalid dynamic segment '{name}'")
    if not name:
        raise MalformedRouteError(relative_path, "empty path segment")
    return RouteSegment(SegmentKind.LITERAL, name)


def _iter_page_files(root: Path) -> typ.Iterator[Path]:
    for path in root.rglob("*"):
        if not path.is_file() or path.suffix not in _PAGE_SUFFIXES:
            continue
        if any(part.startswith(".") for part in path.relative_to(root).parts):
            continue
        yield path


def _find_identifier_collisions(pages: typ.Sequence[Page]) -> list[Exception]:
    owners: dict[str, Page] = {}
    collisions: list[Exception] = []
    for page in pages:
        existing = owners.get(page.target_identifier)
        if existing is None:
            owners[page.target_identifier] = page
            continue
        if existing.route_path == page.route_path:
            # Same route emitted twice; the route table reports the clash.
            continue
        collisions.append(
            MalformedRouteError(
                page.relative_path,
                f"identifier '{page.target_identifier}' collides with "
                f"'{existing.relative_path}'",
            )
        )
    return collisions


__all__ = ["classify", "classify_page", "parse_segments"]
