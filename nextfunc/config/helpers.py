"""Resource naming helpers shared by the configuration loader."""

from __future__ import annotations

import re

from nextfunc.errors import ConfigError

from .models import DeployConfig, DeploymentTarget

MAX_APP_NAME_LENGTH = 60
MAX_STORAGE_ACCOUNT_LENGTH = 24
MAX_CONTAINER_NAME_LENGTH = 63
STORAGE_ACCOUNT_PREFIX = "pr"

_TRAILING_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+$")
_STORAGE_UNSAFE = re.compile(r"[^a-z0-9]")


def _suffixed_name(base: str, suffix: str, limit: int) -> str:
    """Truncate ``base`` so ``base + suffix`` fits ``limit``; never cut ``suffix``.

    Trailing non-alphanumeric characters left by truncation are stripped
    before the suffix is appended.

    Examples
    --------
    >>> _suffixed_name("my-app", "-42", 60)
    'my-app-42'
    >>> _suffixed_name("abc-def", "-1", 6)
    'abc-1'
    """
    budget = limit - len(suffix)
    if budget < 1:
        msg = f"Suffix '{suffix}' leaves no room within {limit} characters"
        raise ConfigError(msg)
    truncated = _TRAILING_NON_ALNUM.sub("", base[:budget])
    if not truncated:
        msg = f"Resource name '{base}' has no alphanumeric prefix to suffix with '{suffix}'"
        raise ConfigError(msg)
    return f"{truncated}{suffix}"


def _storage_account_name(base: str) -> str:
    """Return the shared pull-request storage account name for ``base``."""
    name = _STORAGE_UNSAFE.sub("", f"{STORAGE_ACCOUNT_PREFIX}{base}".lower())
    return name[:MAX_STORAGE_ACCOUNT_LENGTH]


def resolve_target(config: DeployConfig, *, pull_request: int | None = None) -> DeploymentTarget:
    """Derive the resource names for ``config``.

    When ``pull_request`` is given the function app and asset container get a
    ``-<id>`` suffix and the storage account becomes the shared ``pr<base>``
    account, so concurrent pull requests never share a target.
    """
    if pull_request is None:
        return DeploymentTarget(
            subscription_id=config.subscription_id,
            resource_group=config.resource_group,
            location=config.location,
            app_name=config.name,
            storage_account=config.storage_account,
            container_name=config.assets_container_name,
            plan=config.plan,
        )
    if pull_request < 0:
        msg = f"Pull request number must be positive, got {pull_request}"
        raise ConfigError(msg)
    suffix = f"-{pull_request}"
    return DeploymentTarget(
        subscription_id=config.subscription_id,
        resource_group=config.resource_group,
        location=config.location,
        app_name=_suffixed_name(config.name, suffix, MAX_APP_NAME_LENGTH),
        storage_account=_storage_account_name(config.storage_account),
        container_name=_suffixed_name(
            config.assets_container_name, suffix, MAX_CONTAINER_NAME_LENGTH
        ),
        plan=config.plan,
        ephemeral=True,
    )


__all__ = [
    "MAX_APP_NAME_LENGTH",
    "MAX_CONTAINER_NAME_LENGTH",
    "MAX_STORAGE_ACCOUNT_LENGTH",
    "STORAGE_ACCOUNT_PREFIX",
    "_storage_account_name",
    "_suffixed_name",
    "resolve_target",
]
