"""Shared fixtures: fake compiled build trees and an in-memory cloud provider."""

from __future__ import annotations

import json
import typing as typ
from collections import defaultdict

import pytest

from nextfunc._constants import COMPILED_PAGES_DIR, COMPILED_STATIC_DIR
from nextfunc.errors import AzureCommandError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from nextfunc.config import DeploymentTarget

BuildWriter = typ.Callable[..., "Path"]

CONFIG_JSON = json.dumps(
    {
        "subscriptionId": "00000000-0000-0000-0000-000000000000",
        "resourceGroup": "web-rg",
        "location": "westeurope",
        "name": "my-app",
        "storageAccount": "mystore",
    }
)

DEFAULT_PAGES: dict[str, str] = {
    "index.html": "<html>home</html>",
    "about.html": "<html>about</html>",
    "blog/[slug].js": "module.exports.render = () => {};",
    "api/users/[id].js": "module.exports.default = () => {};",
    "_app.js": "module.exports = {};",
    "_document.js": "module.exports = {};",
}


@pytest.fixture
def config_json() -> str:
    """Return a minimal valid ``configuration`` input."""
    return CONFIG_JSON


@pytest.fixture
def write_build() -> BuildWriter:
    """Return a helper that lays out a compiled Next.js build in a workspace.

    The helper writes ``pages`` below ``.next/serverless/pages`` and, unless
    disabled, a single framework chunk under ``.next/static``.
    """

    def _write(
        workspace: Path,
        pages: typ.Mapping[str, str] | None = None,
        *,
        static_assets: bool = True,
        public: bool = False,
    ) -> Path:
        pages_dir = workspace / COMPILED_PAGES_DIR
        for relative, content in (DEFAULT_PAGES if pages is None else pages).items():
            path = pages_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        pages_dir.mkdir(parents=True, exist_ok=True)
        if static_assets:
            chunk = workspace / COMPILED_STATIC_DIR / "chunks" / "main.js"
            chunk.parent.mkdir(parents=True, exist_ok=True)
            chunk.write_text("console.log('main');", encoding="utf-8")
        if public:
            favicon = workspace / "public" / "favicon.ico"
            favicon.parent.mkdir(parents=True, exist_ok=True)
            favicon.write_bytes(b"\x00\x01")
        return pages_dir

    return _write


class FakeProvider:
    """In-memory ``CloudProvider`` recording every call.

    ``failures`` maps a method name to the number of times it should raise
    :class:`AzureCommandError` before succeeding. Provisioning calls are
    idempotent: repeating them leaves ``resources`` unchanged.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.failures: dict[str, int] = defaultdict(int)
        self.resources: set[tuple[str, str]] = set()
        self.uploads: list[tuple[str, str]] = []
        self.settings: dict[str, str] = {}

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.failures[name] > 0:
            self.failures[name] -= 1
            raise AzureCommandError(name.replace("_", " "), f"{name} failed")

    def check_available(self) -> None:
        self._record("check_available")

    def ensure_resource_group(self, target: DeploymentTarget) -> None:
        self._record("ensure_resource_group")
        self.resources.add(("group", target.resource_group))

    def ensure_storage_account(self, target: DeploymentTarget) -> None:
        self._record("ensure_storage_account")
        self.resources.add(("storage", target.storage_account))

    def ensure_container(self, target: DeploymentTarget) -> None:
        self._record("ensure_container")
        self.resources.add(("container", target.container_name))

    def set_container_public_read(self, target: DeploymentTarget) -> None:
        self._record("set_container_public_read")

    def ensure_function_app(self, target: DeploymentTarget) -> None:
        self._record("ensure_function_app")
        self.resources.add(("app", target.app_name))
        self.resources.add(("telemetry", target.telemetry_name))

    def enable_run_from_package(self, target: DeploymentTarget) -> None:
        self._record("enable_run_from_package")
        self.settings["WEBSITE_RUN_FROM_PACKAGE"] = "1"

    def upload_archive(self, target: DeploymentTarget, archive: Path) -> None:
        self._record("upload_archive")
        self.uploads.append(("archive", archive.name))

    def upload_tree(self, target: DeploymentTarget, source: Path, destination_path: str) -> None:
        self._record("upload_tree")
        self.uploads.append((destination_path, source.name))

    def apply_app_settings(
        self, target: DeploymentTarget, settings: typ.Mapping[str, str]
    ) -> None:
        self._record("apply_app_settings")
        self.settings.update(settings)

    def delete_function_app(self, target: DeploymentTarget) -> None:
        self._record("delete_function_app")
        self.resources.discard(("app", target.app_name))

    def delete_container(self, target: DeploymentTarget) -> None:
        self._record("delete_container")
        self.resources.discard(("container", target.container_name))

    def delete_telemetry(self, target: DeploymentTarget) -> None:
        self._record("delete_telemetry")
        self.resources.discard(("telemetry", target.telemetry_name))


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Return a fresh in-memory provider."""
    return FakeProvider()
