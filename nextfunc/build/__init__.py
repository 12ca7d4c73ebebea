"""Classification, route mapping, handler synthesis and packaging."""

from .classifier import classify
from .handlers import HandlerSynthesizer, SynthesizedHandler
from .models import Page, PageKind, RouteEntry, RouteSegment, SegmentKind
from .packager import PackageResult, Packager, read_package_manifest
from .routes import build_route_table, render_proxies

__all__ = [
    "HandlerSynthesizer",
    "PackageResult",
    "Packager",
    "Page",
    "PageKind",
    "RouteEntry",
    "RouteSegment",
    "SegmentKind",
    "SynthesizedHandler",
    "build_route_table",
    "classify",
    "read_package_manifest",
    "render_proxies",
]
