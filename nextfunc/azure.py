"""Narrow capability interface over the Azure control plane.

The orchestrator only talks to :class:`CloudProvider`. :class:`AzureCli`
implements it by shelling out to the ``az`` CLI, which is expected to be
installed and already authenticated by the CI host. Every provisioning call is
a create-or-update, so re-running against existing resources converges instead
of failing. Command failures surface as :class:`AzureCommandError` carrying
the command's stderr verbatim.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import typing as typ
from pathlib import Path

from nextfunc.errors import AzureCommandError

if typ.TYPE_CHECKING:
    from nextfunc.config import DeploymentTarget

logger = logging.getLogger(__name__)

FUNCTIONS_RUNTIME = "node"
FUNCTIONS_VERSION = "3"
STORAGE_SKU = "Standard_LRS"


class CloudProvider(typ.Protocol):
    """Operations the deployment orchestrator needs from the cloud."""

    def check_available(self) -> None: ...

    def ensure_resource_group(self, target: DeploymentTarget) -> None: ...

    def ensure_storage_account(self, target: DeploymentTarget) -> None: ...

    def ensure_container(self, target: DeploymentTarget) -> None: ...

    def set_container_public_read(self, target: DeploymentTarget) -> None: ...

    def ensure_function_app(self, target: DeploymentTarget) -> None: ...

    def enable_run_from_package(self, target: DeploymentTarget) -> None: ...

    def upload_archive(self, target: DeploymentTarget, archive: Path) -> None: ...

    def upload_tree(
        self, target: DeploymentTarget, source: Path, destination_path: str
    ) -> None: ...

    def apply_app_settings(
        self, target: DeploymentTarget, settings: typ.Mapping[str, str]
    ) -> None: ...

    def delete_function_app(self, target: DeploymentTarget) -> None: ...

    def delete_container(self, target: DeploymentTarget) -> None: ...

    def delete_telemetry(self, target: DeploymentTarget) -> None: ...


class AzureCli:
    """:class:`CloudProvider` backed by the ``az`` command line."""

    def __init__(self, *, az_exe: str | None = None, env: dict[str, str] | None = None) -> None:
        self._az_exe = az_exe
        self._env = env

    @property
    def executable(self) -> str:
        cmd = self._az_exe or shutil.which("az")
        if not cmd:
            msg = "Azure CLI ('az') is required but was not found on PATH"
            raise FileNotFoundError(msg)
        return cmd

    def run(self, description: str, args: list[str]) -> subprocess.CompletedProcess[str]:
        """Run ``az <args>`` and raise :class:`AzureCommandError` on failure."""
        logger.debug("az %s", " ".join(args))
        try:
            return subprocess.run(  # noqa: S603
                [self.executable, *args],
                check=True,
                env=self._env,
                text=True,
                capture_output=True,
            )
        except subprocess.CalledProcessError as exc:
            raise AzureCommandError(description, exc.stderr or exc.stdout) from exc

    def check_available(self) -> None:
        try:
            self.run("run the Azure CLI", ["--version"])
        except FileNotFoundError as exc:
            raise AzureCommandError("find the Azure CLI", str(exc)) from exc

    def ensure_resource_group(self, target: DeploymentTarget) -> None:
        self.run(
            "create resource group",
            [
                "group",
                "create",
                *_subscription(target),
                "--name",
                target.resource_group,
                "--location",
                target.location,
            ],
        )

    def ensure_storage_account(self, target: DeploymentTarget) -> None:
        self.run(
            "create storage account",
            [
                "storage",
                "account",
                "create",
                *_subscription(target),
                "--name",
                target.storage_account,
                "--location",
                target.location,
                "--resource-group",
                target.resource_group,
                "--sku",
                STORAGE_SKU,
            ],
        )

    def ensure_container(self, target: DeploymentTarget) -> None:
        self.run(
            "create storage container",
            [
                "storage",
                "container",
                "create",
                *_subscription(target),
                "--name",
                target.container_name,
                "--account-name",
                target.storage_account,
            ],
        )

    def set_container_public_read(self, target: DeploymentTarget) -> None:
        self.run(
            "set storage container permissions",
            [
                "storage",
                "container",
                "set-permission",
                "--public-access",
                "blob",
                *_subscription(target),
                "--account-name",
                target.storage_account,
                "--name",
                target.container_name,
            ],
        )

    def ensure_function_app(self, target: DeploymentTarget) -> None:
        if target.plan:
            placement = ["--plan", target.plan]
        else:
            placement = ["--consumption-plan-location", target.location]
        self.run(
            "create function app",
            [
                "functionapp",
                "create",
                *_subscription(target),
                "--resource-group",
                target.resource_group,
                *placement,
                "--name",
                target.app_name,
                "--storage-account",
                target.storage_account,
                "--runtime",
                FUNCTIONS_RUNTIME,
                "--functions-version",
                FUNCTIONS_VERSION,
            ],
        )

    def enable_run_from_package(self, target: DeploymentTarget) -> None:
        self.apply_app_settings(target, {"WEBSITE_RUN_FROM_PACKAGE": "1"})

    def upload_archive(self, target: DeploymentTarget, archive: Path) -> None:
        self.run(
            "deploy package to Azure function app",
            [
                "functionapp",
                "deployment",
                "source",
                "config-zip",
                *_subscription(target),
                "--name",
                target.app_name,
                "--resource-group",
                target.resource_group,
                "--src",
                str(archive),
            ],
        )

    def upload_tree(self, target: DeploymentTarget, source: Path, destination_path: str) -> None:
        self.run(
            f"upload {source} to Azure blob storage",
            [
                "storage",
                "blob",
                "upload-batch",
                *_subscription(target),
                "--account-name",
                target.storage_account,
                "--destination",
                target.container_name,
                "--destination-path",
                destination_path,
                "--source",
                str(source),
            ],
        )

    def apply_app_settings(
        self, target: DeploymentTarget, settings: typ.Mapping[str, str]
    ) -> None:
        pairs = [f"{key}={value}" for key, value in settings.items()]
        self.run(
            "configure app settings",
            [
                "functionapp",
                "config",
                "appsettings",
                "set",
                *_subscription(target),
                "--resource-group",
                target.resource_group,
                "--name",
                target.app_name,
                "--settings",
                *pairs,
            ],
        )

    def delete_function_app(self, target: DeploymentTarget) -> None:
        self.run(
            "delete function app",
            [
                "functionapp",
                "delete",
                *_subscription(target),
                "--resource-group",
                target.resource_group,
                "--name",
                target.app_name,
            ],
        )

    def delete_container(self, target: DeploymentTarget) -> None:
        self.run(
            "delete storage container",
            [
                "storage",
                "container",
                "delete",
                *_subscription(target),
                "--account-name",
                target.storage_account,
                "--name",
                target.container_name,
            ],
        )

    def delete_telemetry(self, target: DeploymentTarget) -> None:
        self.run(
            "delete Application Insights component",
            [
                "monitor",
                "app-insights",
                "component",
                "delete",
                *_subscription(target),
                "--resource-group",
                target.resource_group,
                "--app",
                target.telemetry_name,
            ],
        )


def _subscription(target: DeploymentTarget) -> list[str]:
    return ["--subscription", target.subscription_id]


__all__ = ["AzureCli", "CloudProvider"]
