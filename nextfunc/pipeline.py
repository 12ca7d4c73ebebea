"""High-level orchestration of the packaging phase.

Coordinates the upstream build (optional), page classification, route table
and handler synthesis, and packaging for one workspace. Every input comes in
through :class:`~nextfunc.config.BuildContext`, :class:`DeployConfig` and
:class:`DeploymentTarget`, so the result depends only on the arguments and the
files on disk.

Example
-------
>>> from nextfunc.config import load_build_context, load_config, resolve_target
>>> context = load_build_context(os.environ)  # doctest: +SKIP
>>> config = load_config(configuration=raw)  # doctest: +SKIP
>>> artifacts = build_artifacts(context, config, resolve_target(config))  # doctest: +SKIP
>>> artifacts.package.function_package  # doctest: +SKIP
PosixPath('/github/workspace/build/package.zip')
"""

from __future__ import annotations

import dataclasses as dc
import logging
import shlex
import subprocess
import typing as typ

from nextfunc._constants import BUILD_ASSETS_PREFIX
from nextfunc.build import (
    HandlerSynthesizer,
    Packager,
    PageKind,
    build_route_table,
    classify,
)
from nextfunc.errors import PackagingError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from nextfunc.build import PackageResult, Page, RouteEntry, SynthesizedHandler
    from nextfunc.config import BuildContext, DeployConfig, DeploymentTarget

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class BuildArtifacts:
    """Everything the packaging phase produced for one build."""

    pages: tuple[Page, ...]
    route_table: tuple[RouteEntry, ...]
    handlers: tuple[SynthesizedHandler, ...]
    package: PackageResult


def asset_base_url(target: DeploymentTarget) -> str:
    """Return the URL prefix under which pre-rendered pages are served."""
    return f"{target.asset_container_url}{BUILD_ASSETS_PREFIX}/pages/"


def run_upstream_build(command: str, workspace: Path) -> None:
    """Run the framework build ``command`` inside ``workspace``.

    Raises
    ------
    PackagingError
        If the command exits with a non-zero status.
    """
    logger.info("Building next application: %s", command)
    try:
        subprocess.run(  # noqa: S603
            shlex.split(command),
            check=True,
            cwd=workspace,
            text=True,
        )
    except subprocess.CalledProcessError as exc:
        msg = f"Build command '{command}' failed with exit status {exc.returncode}"
        raise PackagingError(msg) from exc


def build_artifacts(
    context: BuildContext,
    config: DeployConfig,
    target: DeploymentTarget,
    *,
    synthesizer: HandlerSynthesizer | None = None,
) -> BuildArtifacts:
    """Classify the compiled pages and package them for ``target``.

    Returns
    -------
    BuildArtifacts
        Classified pages, ordered route table, synthesized handlers and the
        packaged artefact locations.

    Raises
    ------
    ClassificationError
        If any page is malformed; nothing is packaged.
    AmbiguousRouteError
        If two pages resolve to the same route.
    """
    logger.info("Scanning next build output in %s", context.compiled_pages_dir)
    pages = classify(context.compiled_pages_dir)

    logger.info("Generating proxy configuration...")
    route_table = build_route_table(pages, asset_base_url(target))

    synthesizer = synthesizer or HandlerSynthesizer()
    handlers = synthesizer.synthesize_all(pages)

    logger.info("Packaging next application")
    static_pages = [page for page in pages if page.kind is PageKind.STATIC]
    packager = Packager(context.build_output_path(config))
    package = packager.package(
        handlers, route_table, static_pages, context.compiled_static_dir
    )
    return BuildArtifacts(
        pages=pages, route_table=route_table, handlers=handlers, package=package
    )


__all__ = ["BuildArtifacts", "asset_base_url", "build_artifacts", "run_upstream_build"]
