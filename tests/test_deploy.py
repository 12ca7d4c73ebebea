"""Unit tests for the deployment orchestrator against an in-memory provider."""

from __future__ import annotations

import typing as typ

import pytest

from nextfunc.build import PackageResult
from nextfunc.config import DeploymentTarget
from nextfunc.deploy import DeploymentOrchestrator
from nextfunc.errors import DeploymentError, PackageUploadError, TeardownError

if typ.TYPE_CHECKING:
    from pathlib import Path

    from conftest import FakeProvider

PROVISIONING = [
    "ensure_resource_group",
    "ensure_storage_account",
    "ensure_container",
    "set_container_public_read",
    "ensure_function_app",
    "enable_run_from_package",
]


@pytest.fixture
def target() -> DeploymentTarget:
    return DeploymentTarget(
        subscription_id="sub",
        resource_group="rg",
        location="westeurope",
        app_name="my-app-42",
        storage_account="prmystore",
        container_name="assets-42",
        ephemeral=True,
    )


@pytest.fixture
def package(tmp_path: Path) -> PackageResult:
    build = tmp_path / "build"
    (build / "assets").mkdir(parents=True)
    archive = build / "package.zip"
    archive.write_bytes(b"PK")
    manifest = build / "packagename.txt"
    manifest.write_text("package.zip", encoding="utf-8")
    return PackageResult(
        function_package=archive, asset_bundle=build / "assets", manifest=manifest
    )


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def test_deploy_runs_steps_in_order(
    tmp_path: Path,
    fake_provider: FakeProvider,
    target: DeploymentTarget,
    package: PackageResult,
) -> None:
    public = tmp_path / "public"
    public.mkdir()

    url = DeploymentOrchestrator(fake_provider, sleep=SleepRecorder()).deploy(
        target, package, public_dir=public, app_settings={"API_URL": "https://api"}
    )

    assert url == "https://my-app-42.azurewebsites.net/"
    assert fake_provider.calls == [
        *PROVISIONING,
        "upload_archive",
        "upload_tree",
        "upload_tree",
        "apply_app_settings",
    ], f"unexpected step order {fake_provider.calls!r}"
    assert fake_provider.uploads == [
        ("archive", "package.zip"),
        ("_next", "assets"),
        ("public", "public"),
    ]
    assert fake_provider.settings == {
        "WEBSITE_RUN_FROM_PACKAGE": "1",
        "API_URL": "https://api",
    }


def test_deploy_skips_optional_steps(
    tmp_path: Path,
    fake_provider: FakeProvider,
    target: DeploymentTarget,
    package: PackageResult,
) -> None:
    DeploymentOrchestrator(fake_provider).deploy(
        target, package, public_dir=tmp_path / "missing", app_settings={}
    )
    assert "apply_app_settings" not in fake_provider.calls, (
        "expected empty app settings to be skipped"
    )
    assert fake_provider.calls.count("upload_tree") == 1, (
        "expected the public upload to be skipped when public/ is missing"
    )


def test_redeploy_converges(
    fake_provider: FakeProvider, target: DeploymentTarget, package: PackageResult
) -> None:
    orchestrator = DeploymentOrchestrator(fake_provider)
    orchestrator.deploy(target, package)
    first = set(fake_provider.resources)
    orchestrator.deploy(target, package)
    assert fake_provider.resources == first, "expected re-running to leave state unchanged"


def test_upload_retries_then_succeeds(
    fake_provider: FakeProvider, target: DeploymentTarget, package: PackageResult
) -> None:
    fake_provider.failures["upload_archive"] = 2
    sleep = SleepRecorder()

    DeploymentOrchestrator(fake_provider, sleep=sleep).deploy(target, package)

    assert fake_provider.calls.count("upload_archive") == 3, (
        "expected two failed attempts followed by a successful third"
    )
    assert sleep.calls == [5.0, 5.0], f"expected two 5s waits, got {sleep.calls!r}"
    assert "upload_tree" in fake_provider.calls, "expected deployment to continue"


def test_upload_gives_up_after_three_attempts(
    fake_provider: FakeProvider, target: DeploymentTarget, package: PackageResult
) -> None:
    fake_provider.failures["upload_archive"] = 5
    sleep = SleepRecorder()

    with pytest.raises(PackageUploadError) as excinfo:
        DeploymentOrchestrator(fake_provider, sleep=sleep).deploy(target, package)

    assert excinfo.value.attempts == 3
    assert fake_provider.calls.count("upload_archive") == 3, (
        "expected no fourth upload attempt"
    )
    assert sleep.calls == [5.0, 5.0], "expected no wait after the final attempt"
    assert "upload_tree" not in fake_provider.calls, (
        "expected asset upload to be skipped after a failed package upload"
    )
    assert "upload_archive failed" in str(excinfo.value)


def test_custom_retry_policy(
    fake_provider: FakeProvider, target: DeploymentTarget, package: PackageResult
) -> None:
    fake_provider.failures["upload_archive"] = 1
    sleep = SleepRecorder()
    orchestrator = DeploymentOrchestrator(
        fake_provider, sleep=sleep, max_attempts=2, backoff_seconds=0.5
    )
    orchestrator.upload_package(target, package.function_package)
    assert sleep.calls == [0.5]


def test_single_attempt_step_failure_stops_deployment(
    fake_provider: FakeProvider, target: DeploymentTarget, package: PackageResult
) -> None:
    fake_provider.failures["ensure_storage_account"] = 1

    with pytest.raises(DeploymentError) as excinfo:
        DeploymentOrchestrator(fake_provider).deploy(target, package)

    assert excinfo.value.step == "create storage account"
    assert fake_provider.calls == ["ensure_resource_group", "ensure_storage_account"], (
        "expected no retry and no later steps after a provisioning failure"
    )
    assert excinfo.value.phase == "deployment"


def test_invalid_attempt_count(fake_provider: FakeProvider) -> None:
    with pytest.raises(ValueError, match="at least 1"):
        DeploymentOrchestrator(fake_provider, max_attempts=0)


def test_teardown_removes_resources(
    fake_provider: FakeProvider, target: DeploymentTarget, package: PackageResult
) -> None:
    orchestrator = DeploymentOrchestrator(fake_provider)
    orchestrator.deploy(target, package)

    orchestrator.teardown(target)

    remaining = {kind for kind, _ in fake_provider.resources}
    assert remaining == {"group", "storage"}, (
        f"expected only shared resources to remain, got {fake_provider.resources!r}"
    )


def test_teardown_attempts_every_step(
    fake_provider: FakeProvider, target: DeploymentTarget
) -> None:
    fake_provider.failures["delete_function_app"] = 1

    with pytest.raises(TeardownError) as excinfo:
        DeploymentOrchestrator(fake_provider).teardown(target)

    assert fake_provider.calls == [
        "delete_function_app",
        "delete_container",
        "delete_telemetry",
    ], "expected later deletions to run after a failure"
    assert list(excinfo.value.failures) == ["delete function app"]
