"""Behaviour tests for the package upload retry policy.

The orchestrator runs against the in-memory provider from ``conftest.py``
with a recording ``sleep`` so the fixed backoff never actually waits.
"""

from __future__ import annotations

import typing as typ
from pathlib import Path

from pytest_bdd import given, parsers, scenarios, then, when

from nextfunc.build import PackageResult
from nextfunc.config import DeploymentTarget
from nextfunc.deploy import DeploymentOrchestrator
from nextfunc.errors import PackageUploadError

if typ.TYPE_CHECKING:
    from conftest import FakeProvider

FEATURE_FILE = Path(__file__).resolve().parents[2] / "features" / "deployment.feature"
scenarios(FEATURE_FILE)

ScenarioState = dict[str, typ.Any]


@given(
    parsers.parse("a packaged build and a cloud that rejects the upload {count:d} times"),
    target_fixture="scenario_state",
)
def given_flaky_cloud(
    tmp_path: Path, fake_provider: FakeProvider, count: int
) -> ScenarioState:
    """Prepare a package and a provider whose first ``count`` uploads fail."""
    (tmp_path / "assets").mkdir()
    archive = tmp_path / "package.zip"
    archive.write_bytes(b"PK")
    fake_provider.failures["upload_archive"] = count
    return {
        "provider": fake_provider,
        "package": PackageResult(
            function_package=archive,
            asset_bundle=tmp_path / "assets",
            manifest=tmp_path / "packagename.txt",
        ),
        "target": DeploymentTarget(
            subscription_id="sub",
            resource_group="rg",
            location="westeurope",
            app_name="my-app",
            storage_account="mystore",
            container_name="assets",
        ),
        "sleeps": [],
    }


@when("the build is deployed")
def when_deployed(scenario_state: ScenarioState) -> None:
    sleeps = typ.cast("list[float]", scenario_state["sleeps"])
    orchestrator = DeploymentOrchestrator(
        scenario_state["provider"], sleep=sleeps.append
    )
    try:
        scenario_state["url"] = orchestrator.deploy(
            scenario_state["target"], scenario_state["package"]
        )
    except PackageUploadError as exc:
        scenario_state["error"] = exc


@then(parsers.parse("the upload was attempted {count:d} times"))
def then_attempts(scenario_state: ScenarioState, count: int) -> None:
    provider = typ.cast("FakeProvider", scenario_state["provider"])
    attempts = provider.calls.count("upload_archive")
    assert attempts == count, f"expected {count} upload attempts, got {attempts}"
    assert scenario_state["sleeps"] == [5.0] * (count - 1), (
        "expected a fixed 5 second wait between attempts only"
    )


@then("the deployment reports the endpoint URL")
def then_endpoint(scenario_state: ScenarioState) -> None:
    assert scenario_state.get("url") == "https://my-app.azurewebsites.net/"


@then("the deployment fails with an upload error")
def then_upload_error(scenario_state: ScenarioState) -> None:
    error = scenario_state.get("error")
    assert isinstance(error, PackageUploadError), (
        f"expected PackageUploadError, got {error!r}"
    )
    assert error.attempts == 3
