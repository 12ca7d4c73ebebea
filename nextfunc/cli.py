"""Cyclopts CLI entrypoint for packaging and deploying Next.js builds to Azure.

The ``nextfunc`` console script turns a compiled Next.js serverless build into
an Azure Functions package plus a blob-storage asset tree, provisions the
Azure resources, and uploads both. Inside the bundled GitHub Action every
parameter can also arrive as an ``INPUT_*`` environment variable
(``INPUT_CONFIGURATION``, ``INPUT_APP_SETTINGS``, ``INPUT_PULL_REQUEST``).

Examples
--------
Package and deploy the current workspace:

>>> from nextfunc.cli import app
>>> app(["publish", "--configuration", config_json])  # doctest: +SKIP

Remove the preview deployment for the current pull request:

>>> app(["teardown", "--configuration", config_json, "--pull-request"])  # doctest: +SKIP
"""

from __future__ import annotations

import logging
import os
import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App, Parameter

from ._constants import ASSETS_WORKDIR, PACKAGE_MANIFEST_FILENAME
from .azure import AzureCli
from .build import PackageResult, read_package_manifest
from .config import (
    BuildContext,
    ConfigError,
    DeployConfig,
    DeploymentTarget,
    load_build_context,
    load_config,
    parse_app_settings,
    resolve_target,
)
from .deploy import DeploymentOrchestrator
from .errors import GitHubCommentError, NextFuncError
from .github import PullRequestCommenter
from .pipeline import build_artifacts, run_upstream_build

logger = logging.getLogger(__name__)

app = App(name="nextfunc", config=cyclopts.config.Env("INPUT_", command=False))  # type: ignore[unknown-argument]

ConfigurationOption = typ.Annotated[
    str | None,
    Parameter(
        help="Deployment configuration as a JSON object",
        env_var="INPUT_CONFIGURATION",
    ),
]
ConfigFileOption = typ.Annotated[
    Path | None, Parameter(help="TOML file with a [deploy] table")
]
WorkspaceOption = typ.Annotated[
    Path | None,
    Parameter(help="Next.js project root (defaults to GITHUB_WORKSPACE or cwd)"),
]
PullRequestOption = typ.Annotated[
    bool,
    Parameter(
        help="Target the ephemeral deployment for the current pull request",
        env_var="INPUT_PULL_REQUEST",
    ),
]
AppSettingsOption = typ.Annotated[
    str | None,
    Parameter(
        help="JSON object of app settings for the function app",
        env_var="INPUT_APP_SETTINGS",
    ),
]
BuildCommandOption = typ.Annotated[
    str | None,
    Parameter(
        help="Run this framework build command first",
        env_var="INPUT_BUILD_COMMAND",
    ),
]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:  # pragma: no cover - fallback for different roots
            return str(path)
    return str(path)


def _prepare(
    *,
    configuration: str | None,
    config_file: Path | None,
    workspace: Path | None,
    pull_request: bool,
) -> tuple[BuildContext, DeployConfig, DeploymentTarget]:
    context = load_build_context(os.environ, workspace=workspace)
    config = load_config(configuration=configuration, config_file=config_file)
    number: int | None = None
    if pull_request:
        if context.pull_request_number is None:
            msg = "Pull request mode requires a pull_request event payload"
            raise ConfigError(msg)
        number = context.pull_request_number
    return context, config, resolve_target(config, pull_request=number)


@app.command(help="Classify the compiled pages and build the deployable units.")
def package(
    *,
    configuration: ConfigurationOption = None,
    config_file: ConfigFileOption = None,
    workspace: WorkspaceOption = None,
    pull_request: PullRequestOption = False,
    build_command: BuildCommandOption = None,
) -> None:
    """Write ``package.zip``, ``packagename.txt`` and the asset tree.

    Parameters
    ----------
    configuration : str or None, optional
        JSON configuration (``INPUT_CONFIGURATION``).
    config_file : Path or None, optional
        TOML configuration file; JSON values take precedence.
    workspace : Path or None, optional
        Project root containing ``.next/`` and ``public/``.
    pull_request : bool, optional
        Resolve the pull request target so static routes point at its
        container.
    build_command : str or None, optional
        Upstream build command such as ``npx next build``.
    """
    context, config, target = _prepare(
        configuration=configuration,
        config_file=config_file,
        workspace=workspace,
        pull_request=pull_request,
    )
    if build_command:
        run_upstream_build(build_command, context.workspace)
    artifacts = build_artifacts(context, config, target)
    print(f"wrote {_format_path(artifacts.package.function_package)}")
    print(f"wrote {_format_path(artifacts.package.manifest)}")
    print(f"wrote {_format_path(artifacts.package.asset_bundle)}")


@app.command(help="Provision Azure resources and upload a packaged build.")
def deploy(
    *,
    configuration: ConfigurationOption = None,
    config_file: ConfigFileOption = None,
    workspace: WorkspaceOption = None,
    pull_request: PullRequestOption = False,
    app_settings: AppSettingsOption = None,
) -> None:
    """Upload the artefacts written by ``nextfunc package``."""
    context, config, target = _prepare(
        configuration=configuration,
        config_file=config_file,
        workspace=workspace,
        pull_request=pull_request,
    )
    settings = parse_app_settings(app_settings)
    build_dir = context.build_output_path(config)
    package_result = PackageResult(
        function_package=read_package_manifest(build_dir),
        asset_bundle=build_dir / ASSETS_WORKDIR,
        manifest=build_dir / PACKAGE_MANIFEST_FILENAME,
    )
    provider = AzureCli()
    provider.check_available()
    url = DeploymentOrchestrator(provider).deploy(
        target, package_result, public_dir=context.public_dir, app_settings=settings
    )
    print(url)


@app.command(help="Build, package and deploy in one run (the GitHub Action entry).")
def publish(
    *,
    configuration: ConfigurationOption = None,
    config_file: ConfigFileOption = None,
    workspace: WorkspaceOption = None,
    pull_request: PullRequestOption = False,
    app_settings: AppSettingsOption = None,
    github_token: typ.Annotated[
        str | None,
        Parameter(
            help="Token used to comment the preview URL on the pull request",
            env_var="INPUT_GITHUB_TOKEN",
        ),
    ] = None,
    build_command: BuildCommandOption = None,
) -> None:
    """Package the workspace, deploy it, and report the endpoint URL.

    In pull request mode the deployment gets its own function app and asset
    container, and the URL is posted on the pull request when a token is
    available. A failed comment is logged and does not fail the run.
    """
    context, config, target = _prepare(
        configuration=configuration,
        config_file=config_file,
        workspace=workspace,
        pull_request=pull_request,
    )
    settings = parse_app_settings(app_settings)
    provider = AzureCli()
    provider.check_available()
    if build_command:
        run_upstream_build(build_command, context.workspace)
    artifacts = build_artifacts(context, config, target)
    url = DeploymentOrchestrator(provider).deploy(
        target, artifacts.package, public_dir=context.public_dir, app_settings=settings
    )
    print(url)
    token = github_token or context.github_token
    if target.ephemeral and token and context.repository:
        commenter = PullRequestCommenter(token=token, api_base=context.github_api_url)
        try:
            commenter.post_deployment(
                context.repository, typ.cast(int, context.pull_request_number), url
            )
        except GitHubCommentError as exc:
            logger.warning(
                "Deployed %s but could not comment on the pull request: %s", url, exc
            )


@app.command(help="Delete the ephemeral deployment for the current pull request.")
def teardown(
    *,
    configuration: ConfigurationOption = None,
    config_file: ConfigFileOption = None,
    workspace: WorkspaceOption = None,
) -> None:
    """Remove the pull request's function app, container and telemetry."""
    _context, _config, target = _prepare(
        configuration=configuration,
        config_file=config_file,
        workspace=workspace,
        pull_request=True,
    )
    provider = AzureCli()
    provider.check_available()
    DeploymentOrchestrator(provider).teardown(target)
    print(f"removed {target.app_name}")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``nextfunc`` command.

    Log verbosity follows ``NEXTFUNC_LOG_LEVEL`` (default ``INFO``). Pipeline
    failures are reported as ``<phase> failed: <cause>`` on stderr with exit
    status 1.
    """
    logging.basicConfig(
        level=os.getenv("NEXTFUNC_LOG_LEVEL", "INFO").upper(),
        format="%(message)s",
    )
    try:
        app()
    except NextFuncError as exc:
        print(f"{exc.phase} failed: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    except FileNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
