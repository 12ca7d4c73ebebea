"""Azure Functions entry points for dynamic pages.

Every dynamic page becomes one function: a small Node adapter that forwards
the HTTP trigger payload into the compiled page's server entry point, and a
``function.json`` binding descriptor declaring an anonymous HTTP trigger plus
an HTTP output binding. Output is a pure function of the page so repeated
builds produce byte-identical files.

Typical usage mirrors the packaging pipeline:

>>> synthesizer = HandlerSynthesizer()  # doctest: +SKIP
>>> handler = synthesizer.synthesize(page)  # doctest: +SKIP
>>> render_binding(handler.binding)  # doctest: +SKIP
"""

from __future__ import annotations

import dataclasses as dc
import json
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from nextfunc.build.models import Page, PageKind

HOST_RUNTIME_VERSION = "2.0"
EXTENSION_BUNDLE = {
    "id": "Microsoft.Azure.Functions.ExtensionBundle",
    "version": "[1.*, 2.0.0)",
}


@dc.dataclass(frozen=True, slots=True)
class SynthesizedHandler:
    """Handler source and binding descriptor generated for one page."""

    page: Page
    handler_source: str
    binding: dict[str, typ.Any]

    @property
    def binding_source(self) -> str:
        return render_binding(self.binding)


class HandlerSynthesizer:
    """Render invocation wrappers and bindings for dynamic pages."""

    def __init__(self, *, templates_dir: Path | None = None) -> None:
        """Initialize the synthesizer and its Jinja environment.

        Parameters
        ----------
        templates_dir : Path, optional
            Directory containing ``handler.js.jinja``. Defaults to the
            templates shipped with the package.
        """
        self.templates_dir = templates_dir or Path(__file__).resolve().parents[1] / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.template = self.env.get_template("handler.js.jinja")

    def synthesize(self, page: Page) -> SynthesizedHandler:
        """Return the handler and binding for a dynamic ``page``.

        Raises
        ------
        ValueError
            If ``page`` is not dynamic; static and special pages never get a
            function.
        """
        if page.kind is not PageKind.DYNAMIC:
            msg = f"Page '{page.relative_path}' is {page.kind.value}, not dynamic"
            raise ValueError(msg)
        source = self.template.render(
            route_path=page.route_path,
            module_request=f"./{page.module_file_name}",
            entry_point="default" if page.is_api else "render",
        )
        return SynthesizedHandler(page=page, handler_source=source, binding=build_binding(page))

    def synthesize_all(self, pages: typ.Iterable[Page]) -> tuple[SynthesizedHandler, ...]:
        """Synthesize handlers for every dynamic page in ``pages``."""
        return tuple(self.synthesize(page) for page in pages if page.kind is PageKind.DYNAMIC)


def build_binding(page: Page) -> dict[str, typ.Any]:
    """Return the ``function.json`` document for ``page``."""
    return {
        "bindings": [
            {
                "authLevel": "anonymous",
                "type": "httpTrigger",
                "direction": "in",
                "name": "req",
                "methods": list(page.methods),
            },
            {"type": "http", "direction": "out", "name": "res"},
        ]
    }


def render_binding(binding: typ.Mapping[str, typ.Any]) -> str:
    return json.dumps(binding, indent=2) + "\n"


def render_host_config() -> str:
    """Return the ``host.json`` declaring the Functions runtime contract."""
    document = {"version": HOST_RUNTIME_VERSION, "extensionBundle": EXTENSION_BUNDLE}
    return json.dumps(document, indent=2) + "\n"


__all__ = [
    "HandlerSynthesizer",
    "SynthesizedHandler",
    "build_binding",
    "render_binding",
    "render_host_config",
]
