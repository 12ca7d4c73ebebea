"""Value objects shared by the classification and route-mapping pipeline."""

from __future__ import annotations

import dataclasses as dc
import enum
import hashlib
import re
from pathlib import Path, PurePosixPath

# Azure Functions names allow up to 127 characters; keep well below.
MAX_IDENTIFIER_LENGTH = 64
PAGE_METHODS = ("get", "head")
API_METHODS = ("get", "head", "post", "put", "patch", "delete", "options")
PAGE_MODULE_STEM = "page"
_DIGEST_LENGTH = 8
_UNSAFE_IDENTIFIER_CHARS = re.compile(r"[^a-z0-9]+")


class SegmentKind(enum.Enum):
    """Shape of a single path segment in a file-system route."""

    LITERAL = "literal"
    PARAMETER = "parameter"
    CATCH_ALL = "catch-all"
    OPTIONAL_CATCH_ALL = "optional-catch-all"


class PageKind(enum.Enum):
    """How a compiled page is served once deployed."""

    STATIC = "static"
    SPECIAL = "special"
    DYNAMIC = "dynamic"


@dc.dataclass(frozen=True, slots=True)
class RouteSegment:
    """One path segment; ``value`` is literal text or a parameter name."""

    kind: SegmentKind
    value: str

    @property
    def is_literal(self) -> bool:
        return self.kind is SegmentKind.LITERAL

    @property
    def is_catch_all(self) -> bool:
        return self.kind in (SegmentKind.CATCH_ALL, SegmentKind.OPTIONAL_CATCH_ALL)

    @property
    def source(self) -> str:
        """Return the segment as written in the pages directory."""
        match self.kind:
            case SegmentKind.PARAMETER:
                return f"[{self.value}]"
            case SegmentKind.CATCH_ALL:
                return f"[...{self.value}]"
            case SegmentKind.OPTIONAL_CATCH_ALL:
                return f"[[...{self.value}]]"
            case _:
                return self.value


@dc.dataclass(frozen=True, slots=True)
class Page:
    """A compiled page module discovered in the build output.

    Attributes
    ----------
    source_path : Path
        Location of the compiled module or pre-rendered HTML file.
    relative_path : str
        POSIX path of ``source_path`` relative to the pages directory.
    segments : tuple[RouteSegment, ...]
        Parsed route segments; empty for the root page.
    kind : PageKind
        Static, special, or dynamic classification.
    target_identifier : str
        Host-safe name used for the function directory and proxy entry.
    is_api : bool
        ``True`` for API routes living under ``api/``.
    """

    source_path: Path
    relative_path: str
    segments: tuple[RouteSegment, ...]
    kind: PageKind
    target_identifier: str
    is_api: bool = False

    @property
    def route_path(self) -> str:
        """Return the route as written in the pages tree, e.g. ``/blog/[slug]``."""
        return "/" + "/".join(segment.source for segment in self.segments)

    @property
    def target_page_file_name(self) -> str:
        """Return the compiled output path relative to the pages directory."""
        return self.relative_path

    @property
    def module_file_name(self) -> str:
        """Return the file name the compiled module gets inside its function.

        The name is fixed so a compiled ``index.js`` never shadows the
        generated handler of the same name.
        """
        return f"{PAGE_MODULE_STEM}{PurePosixPath(self.relative_path).suffix}"

    @property
    def has_catch_all(self) -> bool:
        return bool(self.segments) and self.segments[-1].is_catch_all

    @property
    def methods(self) -> tuple[str, ...]:
        """Return the HTTP methods the page answers, lowercase."""
        return API_METHODS if self.is_api else PAGE_METHODS

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(s.value for s in self.segments if not s.is_literal)


@dc.dataclass(frozen=True, slots=True)
class RouteEntry:
    """One row of the generated proxy table.

    ``route`` uses the host's template syntax (``/blog/{slug}``), ``pattern``
    is the equivalent anchored regular expression with named groups.
    """

    name: str
    route: str
    pattern: str
    target: str
    page: Page

    def match(self, path: str) -> dict[str, str] | None:
        """Return the captured parameters when ``path`` matches, else ``None``."""
        found = re.fullmatch(self.pattern, path)
        if found is None:
            return None
        return {key: value for key, value in found.groupdict().items() if value is not None}


def derive_target_identifier(segments: tuple[RouteSegment, ...]) -> str:
    """Return a stable, host-safe identifier for a route.

    The readable part is a sanitized slug of the route; the suffix is a short
    MD5 digest of the route as written, which keeps ``/blog/[slug]`` and
    ``/blog/slug`` apart.

    Examples
    --------
    >>> derive_target_identifier(())
    'index_6666cd76'
    """
    words = [_sanitize_word(segment.value) for segment in segments]
    readable = "_".join(word for word in words if word) or "index"
    if not readable[0].isalpha():
        readable = f"p_{readable}"
    route = "/" + "/".join(segment.source for segment in segments)
    digest = hashlib.md5(route.encode("utf-8"), usedforsecurity=False).hexdigest()
    budget = MAX_IDENTIFIER_LENGTH - _DIGEST_LENGTH - 1
    readable = readable[:budget].rstrip("_")
    return f"{readable}_{digest[:_DIGEST_LENGTH]}"


def _sanitize_word(value: str) -> str:
    return _UNSAFE_IDENTIFIER_CHARS.sub("_", value.lower()).strip("_")


__all__ = [
    "API_METHODS",
    "MAX_IDENTIFIER_LENGTH",
    "PAGE_METHODS",
    "Page",
    "PageKind",
    "RouteEntry",
    "RouteSegment",
    "SegmentKind",
    "derive_target_identifier",
]
