"""Provision Azure resources and upload the packaged build.

This module powers the ``nextfunc deploy|publish|teardown`` sub-commands by:

* Running the provisioning steps in a fixed order against a
  :class:`~nextfunc.azure.CloudProvider`. Every "ensure" step is a
  create-or-update, so a failed run is recovered by running it again.
* Retrying the function package upload, the only step prone to transient
  failures, with a fixed backoff; every other step fails on first error.
* Tearing down pull-request deployments, attempting every deletion even when
  an earlier one fails.
"""

from __future__ import annotations

import logging
import time
import typing as typ

from nextfunc._constants import BUILD_ASSETS_PREFIX, PUBLIC_ASSETS_PREFIX
from nextfunc.errors import (
    AzureCommandError,
    DeploymentError,
    PackageUploadError,
    TeardownError,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from nextfunc.azure import CloudProvider
    from nextfunc.build.packager import PackageResult
    from nextfunc.config import DeploymentTarget

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 5.0


class DeploymentOrchestrator:
    """Drive the ordered provisioning and upload steps for one target."""

    def __init__(
        self,
        provider: CloudProvider,
        *,
        sleep: typ.Callable[[float], None] = time.sleep,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
    ) -> None:
        if max_attempts < 1:
            msg = "max_attempts must be at least 1"
            raise ValueError(msg)
        self.provider = provider
        self._sleep = sleep
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds

    def deploy(
        self,
        target: DeploymentTarget,
        package: PackageResult,
        *,
        public_dir: Path | None = None,
        app_settings: typ.Mapping[str, str] | None = None,
    ) -> str:
        """Provision ``target`` and upload ``package``; return the endpoint URL.

        Parameters
        ----------
        target : DeploymentTarget
            Resolved resource names.
        package : PackageResult
            Function archive and asset tree produced by the packager.
        public_dir : Path, optional
            Author-supplied public assets, uploaded below ``public``; skipped
            when missing.
        app_settings : Mapping[str, str], optional
            Extra application settings applied verbatim to the function app.

        Raises
        ------
        DeploymentError
            When a provisioning or upload step fails. The package upload
            raises :class:`PackageUploadError` once its attempts are exhausted.
        """
        provider = self.provider
        logger.info("Deploying next application to %s", target.app_name)
        self._step("create resource group", lambda: provider.ensure_resource_group(target))
        self._step("create storage account", lambda: provider.ensure_storage_account(target))
        self._step("create storage container", lambda: provider.ensure_container(target))
        self._step(
            "set storage container permissions",
            lambda: provider.set_container_public_read(target),
        )
        self._step("create function app", lambda: provider.ensure_function_app(target))
        self._step("enable package deployment", lambda: provider.enable_run_from_package(target))

        self.upload_package(target, package.function_package)

        self._step(
            "upload assets to blob storage",
            lambda: provider.upload_tree(target, package.asset_bundle, BUILD_ASSETS_PREFIX),
        )
        if public_dir is not None and public_dir.is_dir():
            self._step(
                "upload public assets to blob storage",
                lambda: provider.upload_tree(target, public_dir, PUBLIC_ASSETS_PREFIX),
            )
        else:
            logger.info("No public directory found; skipping public asset upload")

        if app_settings:
            settings = dict(app_settings)
            self._step(
                "configure app settings",
                lambda: provider.apply_app_settings(target, settings),
            )

        logger.info("Successfully deployed to %s", target.endpoint_url)
        return target.endpoint_url

    def upload_package(self, target: DeploymentTarget, archive: Path) -> None:
        """Upload the function archive, retrying with a fixed backoff."""
        for attempt in range(1, self.max_attempts + 1):
            logger.info(
                "Attempting to upload package (%d/%d)...", attempt, self.max_attempts
            )
            try:
                self.provider.upload_archive(target, archive)
            except AzureCommandError as exc:
                if attempt == self.max_attempts:
                    raise PackageUploadError(attempt, exc) from exc
                logger.warning(
                    "Could not deploy package to Azure function app, waiting %ss "
                    "and then retrying... %s",
                    self.backoff_seconds,
                    exc,
                )
                self._sleep(self.backoff_seconds)
            else:
                logger.info("Upload successful")
                return

    def teardown(self, target: DeploymentTarget) -> None:
        """Delete the function app, asset container and telemetry component.

        Raises
        ------
        TeardownError
            After every deletion has been attempted, if any of them failed.
        """
        provider = self.provider
        steps: list[tuple[str, typ.Callable[[], None]]] = [
            ("delete function app", lambda: provider.delete_function_app(target)),
            ("delete storage container", lambda: provider.delete_container(target)),
            ("delete telemetry", lambda: provider.delete_telemetry(target)),
        ]
        failures: dict[str, Exception] = {}
        for name, action in steps:
            logger.info("Running teardown step: %s", name)
            try:
                action()
            except AzureCommandError as exc:
                logger.warning("Teardown step '%s' failed: %s", name, exc)
                failures[name] = exc
        if failures:
            raise TeardownError(failures)
        logger.info("Removed deployment %s", target.app_name)

    @staticmethod
    def _step(name: str, action: typ.Callable[[], None]) -> None:
        logger.info("%s...", name.capitalize())
        try:
            action()
        except AzureCommandError as exc:
            raise DeploymentError(name, exc) from exc


__all__ = ["DEFAULT_BACKOFF_SECONDS", "DEFAULT_MAX_ATTEMPTS", "DeploymentOrchestrator"]
