"""Typed dataclasses describing deployment configuration."""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from nextfunc._constants import COMPILED_PAGES_DIR, COMPILED_STATIC_DIR, PUBLIC_DIR
from nextfunc.errors import ConfigError

DEFAULT_ASSETS_CONTAINER = "assets"
DEFAULT_BUILD_OUTPUT_DIR = "build"
DEFAULT_GITHUB_API_URL = "https://api.github.com"

# Accepted spellings per field: the Action's camelCase keys and snake_case.
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "subscription_id": ("subscriptionId", "subscription_id"),
    "resource_group": ("resourceGroup", "resource_group"),
    "location": ("location",),
    "name": ("name",),
    "storage_account": ("storageAccount", "storage_account"),
    "plan": ("plan",),
    "assets_container_name": ("assetsContainerName", "assets_container_name"),
    "build_output_dir": ("buildOutputDir", "build_output_dir"),
}
_REQUIRED_FIELDS = ("subscription_id", "resource_group", "location", "name", "storage_account")


@dc.dataclass(slots=True)
class DeployConfig:
    """Caller-supplied resource names and build settings."""

    subscription_id: str
    resource_group: str
    location: str
    name: str
    storage_account: str
    plan: str | None = None
    assets_container_name: str = DEFAULT_ASSETS_CONTAINER
    build_output_dir: str = DEFAULT_BUILD_OUTPUT_DIR

    @classmethod
    def from_mapping(cls, data: typ.Mapping[str, typ.Any]) -> DeployConfig:
        """Build a config from a mapping using either key spelling.

        Raises
        ------
        ConfigError
            If a required field is missing, empty, or not a string.
        """
        values: dict[str, str | None] = {}
        for field, aliases in _FIELD_ALIASES.items():
            raw = next((data[key] for key in aliases if key in data), None)
            if raw is not None and not isinstance(raw, str):
                msg = f"Configuration value must be a string: {aliases[0]}"
                raise ConfigError(msg)
            values[field] = raw.strip() if raw else None
        for field in _REQUIRED_FIELDS:
            if not values[field]:
                msg = f"Configuration value is missing: {_FIELD_ALIASES[field][0]}"
                raise ConfigError(msg)
        return cls(
            subscription_id=typ.cast(str, values["subscription_id"]),
            resource_group=typ.cast(str, values["resource_group"]),
            location=typ.cast(str, values["location"]),
            name=typ.cast(str, values["name"]),
            storage_account=typ.cast(str, values["storage_account"]),
            plan=values["plan"],
            assets_container_name=values["assets_container_name"] or DEFAULT_ASSETS_CONTAINER,
            build_output_dir=values["build_output_dir"] or DEFAULT_BUILD_OUTPUT_DIR,
        )


@dc.dataclass(slots=True)
class BuildContext:
    """Ambient CI state handed explicitly to the pipeline."""

    workspace: Path
    repository: str | None = None
    pull_request_number: int | None = None
    github_token: str | None = None
    github_api_url: str = DEFAULT_GITHUB_API_URL

    @property
    def compiled_pages_dir(self) -> Path:
        return self.workspace / COMPILED_PAGES_DIR

    @property
    def compiled_static_dir(self) -> Path:
        return self.workspace / COMPILED_STATIC_DIR

    @property
    def public_dir(self) -> Path:
        return self.workspace / PUBLIC_DIR

    def build_output_path(self, config: DeployConfig) -> Path:
        return self.workspace / config.build_output_dir


@dc.dataclass(frozen=True, slots=True)
class DeploymentTarget:
    """Resolved Azure resource identifiers for one deployment."""

    subscription_id: str
    resource_group: str
    location: str
    app_name: str
    storage_account: str
    container_name: str
    plan: str | None = None
    ephemeral: bool = False

    @property
    def telemetry_name(self) -> str:
        """Application Insights component created alongside the function app."""
        return self.app_name

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.app_name}.azurewebsites.net/"

    @property
    def asset_container_url(self) -> str:
        return f"https://{self.storage_account}.blob.core.windows.net/{self.container_name}/"


__all__ = [
    "DEFAULT_ASSETS_CONTAINER",
    "DEFAULT_BUILD_OUTPUT_DIR",
    "DEFAULT_GITHUB_API_URL",
    "BuildContext",
    "ConfigError",
    "DeployConfig",
    "DeploymentTarget",
]
