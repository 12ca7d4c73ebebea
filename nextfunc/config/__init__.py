"""Load and validate deployment configuration for nextfunc.

This subpackage parses the Action's ``configuration`` JSON (or a TOML file),
applies defaults, parses ``app-settings``, captures the CI context, and
resolves the Azure resource names for a deployment. The primary entry points
are :func:`load_config` and :func:`resolve_target`.

Examples
--------
>>> from nextfunc.config import load_config, resolve_target
>>> cfg = load_config(configuration=raw_json)  # doctest: +SKIP
>>> resolve_target(cfg, pull_request=42).app_name  # doctest: +SKIP
'my-app-42'
"""

from .helpers import resolve_target
from .loader import load_build_context, load_config, parse_app_settings
from .models import BuildContext, ConfigError, DeployConfig, DeploymentTarget

__all__ = [
    "BuildContext",
    "ConfigError",
    "DeployConfig",
    "DeploymentTarget",
    "load_build_context",
    "load_config",
    "parse_app_settings",
    "resolve_target",
]
