"""Lay out and archive the deployable units.

The packager turns synthesized handlers and the route table into the two
artefacts the orchestrator uploads:

* ``<build>/package.zip``: one directory per dynamic page (``index.js``,
  ``function.json`` and the compiled page module) plus ``proxies.json`` and
  ``host.json`` at the archive root. Entries are stored uncompressed, sorted,
  and stamped with a fixed timestamp so identical inputs produce identical
  archives.
* ``<build>/assets``: framework static output under ``static/`` and the
  pre-rendered pages under ``pages/``, mirrored into blob storage below the
  ``_next`` prefix.

``<build>/packagename.txt`` names the archive so the deploy step can locate
it without re-deriving the name. The per-page working tree is deleted once
archived.
"""

from __future__ import annotations

import dataclasses as dc
import logging
import shutil
import typing as typ
import zipfile
from pathlib import Path

from nextfunc._constants import (
    ASSETS_WORKDIR,
    BINDING_FILENAME,
    HANDLER_FILENAME,
    HOST_FILENAME,
    PACKAGE_FILENAME,
    PACKAGE_MANIFEST_FILENAME,
    PAGES_WORKDIR,
    PROXIES_FILENAME,
)
from nextfunc.build.handlers import render_host_config
from nextfunc.build.models import Page, PageKind
from nextfunc.build.routes import render_proxies
from nextfunc.errors import PackagingError

if typ.TYPE_CHECKING:
    from nextfunc.build.handlers import SynthesizedHandler
    from nextfunc.build.models import RouteEntry

logger = logging.getLogger(__name__)

_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o644 << 16


@dc.dataclass(frozen=True, slots=True)
class PackageResult:
    """Locations of the packaged artefacts."""

    function_package: Path
    asset_bundle: Path
    manifest: Path


class Packager:
    """Write the function package and asset tree into a build directory."""

    def __init__(self, build_output_dir: Path) -> None:
        self.build_output_dir = build_output_dir
        self.pages_dir = build_output_dir / PAGES_WORKDIR
        self.assets_dir = build_output_dir / ASSETS_WORKDIR

    def package(
        self,
        handlers: typ.Sequence[SynthesizedHandler],
        route_table: typ.Sequence[RouteEntry],
        static_pages: typ.Sequence[Page],
        static_assets_dir: Path | None = None,
    ) -> PackageResult:
        """Produce the function archive, the asset tree and the manifest.

        Parameters
        ----------
        handlers : Sequence[SynthesizedHandler]
            One synthesized handler per dynamic page.
        route_table : Sequence[RouteEntry]
            Ordered proxy entries written to ``proxies.json``.
        static_pages : Sequence[Page]
            Pre-rendered pages copied into the asset tree.
        static_assets_dir : Path, optional
            Framework static output (``.next/static``); skipped when absent.

        Returns
        -------
        PackageResult
            Paths of the archive, the asset tree and the manifest file.

        Raises
        ------
        PackagingError
            If a handler or static page would be written outside its slot, or
            the compiled module it wraps is missing.
        """
        archive = self.build_output_dir / PACKAGE_FILENAME
        manifest = self.build_output_dir / PACKAGE_MANIFEST_FILENAME
        self._reset()
        try:
            self._write_functions(handlers)
            _write_text(self.pages_dir / PROXIES_FILENAME, render_proxies(route_table))
            _write_text(self.pages_dir / HOST_FILENAME, render_host_config())
            self._copy_assets(static_pages, static_assets_dir)

            logger.info("Building Azure Functions package %s", archive)
            _write_archive(self.pages_dir, archive)
            manifest.write_text(PACKAGE_FILENAME, encoding="utf-8")
        except BaseException:
            # A half-written archive must never be picked up by ``deploy``.
            archive.unlink(missing_ok=True)
            manifest.unlink(missing_ok=True)
            raise
        finally:
            shutil.rmtree(self.pages_dir, ignore_errors=True)
        return PackageResult(
            function_package=archive, asset_bundle=self.assets_dir, manifest=manifest
        )

    def _reset(self) -> None:
        for path in (self.pages_dir, self.assets_dir):
            if path.exists():
                shutil.rmtree(path)
        for name in (PACKAGE_FILENAME, PACKAGE_MANIFEST_FILENAME):
            (self.build_output_dir / name).unlink(missing_ok=True)
        self.pages_dir.mkdir(parents=True)
        self.assets_dir.mkdir(parents=True)

    def _write_functions(self, handlers: typ.Sequence[SynthesizedHandler]) -> None:
        logger.info("Processing %d server-rendered pages", len(handlers))
        for handler in handlers:
            page = handler.page
            if page.kind is not PageKind.DYNAMIC:
                msg = f"Refusing to package non-dynamic page '{page.relative_path}'"
                raise PackagingError(msg)
            if not page.source_path.is_file():
                msg = f"Compiled page module not found: {page.source_path}"
                raise PackagingError(msg)
            folder = self.pages_dir / page.target_identifier
            if folder.exists():
                msg = f"Duplicate function directory '{page.target_identifier}'"
                raise PackagingError(msg)
            folder.mkdir()
            shutil.copyfile(page.source_path, folder / page.module_file_name)
            _write_text(folder / HANDLER_FILENAME, handler.handler_source)
            _write_text(folder / BINDING_FILENAME, handler.binding_source)

    def _copy_assets(
        self, static_pages: typ.Sequence[Page], static_assets_dir: Path | None
    ) -> None:
        logger.info("Copying static assets")
        if static_assets_dir is not None and static_assets_dir.is_dir():
            shutil.copytree(static_assets_dir, self.assets_dir / "static")
        elif static_assets_dir is not None:
            logger.warning("Static asset directory %s not found; skipping", static_assets_dir)
        pages_root = self.assets_dir / "pages"
        for page in static_pages:
            if page.kind is not PageKind.STATIC:
                msg = f"Refusing to publish non-static page '{page.relative_path}'"
                raise PackagingError(msg)
            destination = pages_root / page.target_page_file_name
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(page.source_path, destination)


def read_package_manifest(build_output_dir: Path) -> Path:
    """Return the archive named by ``packagename.txt`` in ``build_output_dir``."""
    manifest = build_output_dir / PACKAGE_MANIFEST_FILENAME
    try:
        name = manifest.read_text(encoding="utf-8").strip()
    except FileNotFoundError as exc:
        msg = f"Package manifest not found: {manifest}. Run 'nextfunc package' first."
        raise PackagingError(msg) from exc
    archive = build_output_dir / name
    if not name or not archive.is_file():
        msg = f"Package '{name}' named in {manifest} does not exist"
        raise PackagingError(msg)
    return archive


def _write_text(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def _write_archive(source_dir: Path, archive: Path) -> None:
    files = sorted(p for p in source_dir.rglob("*") if p.is_file())
    with zipfile.ZipFile(archive, "w", compression=zipfile.ZIP_STORED) as handle:
        for path in files:
            info = zipfile.ZipInfo(path.relative_to(source_dir).as_posix(), _ZIP_EPOCH)
            info.compress_type = zipfile.ZIP_STORED
            info.external_attr = _FILE_MODE
            handle.writestr(info, path.read_bytes())


__all__ = ["PackageResult", "Packager", "read_package_manifest"]
