"""Load deployment configuration, app settings and CI context."""

from __future__ import annotations

import json
import typing as typ
from pathlib import Path

import tomlkit

from nextfunc.errors import ConfigError

from .models import DEFAULT_GITHUB_API_URL, BuildContext, DeployConfig


def load_config(
    *, configuration: str | None = None, config_file: Path | None = None
) -> DeployConfig:
    """Load the deployment configuration from JSON text or a TOML file.

    Parameters
    ----------
    configuration : str, optional
        JSON object as passed to the GitHub Action ``configuration`` input.
        Keys use the Action's camelCase spelling (``subscriptionId``).
    config_file : Path, optional
        TOML file with a ``[deploy]`` table (or top-level keys). Values from
        ``configuration`` take precedence over the file.

    Returns
    -------
    DeployConfig
        Validated configuration with defaults applied.

    Raises
    ------
    ConfigError
        If neither source is provided, either cannot be parsed, or a required
        value is missing.

    Examples
    --------
    >>> cfg = load_config(configuration='{"subscriptionId": "sub", '
    ...     '"resourceGroup": "rg", "location": "westeurope", "name": "app", '
    ...     '"storageAccount": "store"}')
    >>> cfg.assets_container_name, cfg.build_output_dir
    ('assets', 'build')
    """
    if not configuration and config_file is None:
        msg = "Configuration is missing"
        raise ConfigError(msg)

    merged: dict[str, typ.Any] = {}
    if config_file is not None:
        merged.update(_load_toml(config_file))
    if configuration:
        merged.update(_load_json_object(configuration, label="configuration"))
    return DeployConfig.from_mapping(merged)


def parse_app_settings(raw: str | None) -> dict[str, str]:
    """Parse the ``app-settings`` JSON object into string pairs.

    Scalar values are converted to strings; nested objects and lists are
    rejected because Azure app settings are flat.
    """
    if not raw or not raw.strip():
        return {}
    data = _load_json_object(raw, label="app-settings")
    settings: dict[str, str] = {}
    for key, value in data.items():
        match value:
            case bool():
                settings[key] = "true" if value else "false"
            case str() | int() | float():
                settings[key] = str(value)
            case None:
                settings[key] = ""
            case _:
                msg = f"App setting '{key}' must be a scalar value"
                raise ConfigError(msg)
    return settings


def load_build_context(
    environ: typ.Mapping[str, str], *, workspace: Path | None = None
) -> BuildContext:
    """Build a :class:`BuildContext` from a GitHub Actions style environment.

    The mapping is passed in explicitly so the pipeline never reads process
    state on its own. The pull request number comes from the event payload at
    ``GITHUB_EVENT_PATH`` when the run was triggered by a pull request.
    """
    root = workspace or Path(environ.get("GITHUB_WORKSPACE") or Path.cwd())
    return BuildContext(
        workspace=root,
        repository=environ.get("GITHUB_REPOSITORY") or None,
        pull_request_number=_pull_request_number(environ.get("GITHUB_EVENT_PATH")),
        github_token=environ.get("GITHUB_TOKEN") or None,
        github_api_url=environ.get("GITHUB_API_URL") or DEFAULT_GITHUB_API_URL,
    )


def _load_json_object(raw: str, *, label: str) -> dict[str, typ.Any]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Unable to parse {label} JSON: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"The {label} input must be a JSON object"
        raise ConfigError(msg)
    return data


def _load_toml(path: Path) -> dict[str, typ.Any]:
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise ConfigError(msg)
    try:
        document = tomlkit.parse(path.read_text(encoding="utf-8"))
    except tomlkit.exceptions.ParseError as exc:
        msg = f"Unable to parse config TOML at {path}"
        raise ConfigError(msg) from exc

    table = document.get("deploy", document)
    return {key: _plain(value) for key, value in table.items() if key != "deploy"}


def _plain(value: typ.Any) -> typ.Any:
    return value.unwrap() if hasattr(value, "unwrap") else value


def _pull_request_number(event_path: str | None) -> int | None:
    if not event_path:
        return None
    path = Path(event_path)
    if not path.is_file():
        return None
    try:
        event = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Unable to parse GitHub event payload at {path}"
        raise ConfigError(msg) from exc
    pull_request = event.get("pull_request") if isinstance(event, dict) else None
    if not isinstance(pull_request, dict):
        return None
    number = pull_request.get("number", event.get("number"))
    if number is None:
        return None
    try:
        return int(number)
    except (TypeError, ValueError) as exc:
        msg = f"Pull request number in {path} is not an integer: {number!r}"
        raise ConfigError(msg) from exc


__all__ = ["load_build_context", "load_config", "parse_app_settings"]
