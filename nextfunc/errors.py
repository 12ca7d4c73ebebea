"""Exception hierarchy shared by the packaging and deployment pipeline.

Every error raised deliberately by nextfunc derives from :class:`NextFuncError`
and records the pipeline ``phase`` it belongs to, so the CLI can report which
phase failed alongside the underlying cause.
"""

from __future__ import annotations

import typing as typ


class NextFuncError(RuntimeError):
    """Base class for unrecoverable pipeline failures."""

    phase = "pipeline"


class ConfigError(NextFuncError, ValueError):
    """Raised when caller-supplied configuration is missing or invalid."""

    phase = "configuration"


class MalformedRouteError(NextFuncError, ValueError):
    """Raised when a page path cannot be parsed into route segments."""

    phase = "classification"

    def __init__(self, relative_path: str, reason: str) -> None:
        self.relative_path = relative_path
        self.reason = reason
        super().__init__(f"Malformed route '{relative_path}': {reason}")


class ConflictingPageKindError(NextFuncError, ValueError):
    """Raised when a reserved framework entry was emitted as pre-rendered HTML."""

    phase = "classification"

    def __init__(self, relative_path: str) -> None:
        self.relative_path = relative_path
        super().__init__(
            f"Page '{relative_path}' is both pre-rendered and a reserved "
            "framework entry"
        )


class ClassificationError(NextFuncError):
    """Raised once per scan when one or more pages failed classification."""

    phase = "classification"

    def __init__(self, errors: typ.Sequence[Exception]) -> None:
        self.errors = tuple(errors)
        details = "; ".join(str(error) for error in self.errors)
        super().__init__(f"{len(self.errors)} page(s) failed classification: {details}")


class AmbiguousRouteError(NextFuncError):
    """Raised when two pages synthesize the same route shape."""

    phase = "routing"

    def __init__(self, route: str, first: str, second: str) -> None:
        self.route = route
        self.pages = (first, second)
        super().__init__(
            f"Pages '{first}' and '{second}' both resolve to route '{route}'"
        )


class PackagingError(NextFuncError):
    """Raised when the deployable units cannot be laid out or located."""

    phase = "packaging"


class AzureCommandError(NextFuncError):
    """Raised when an ``az`` invocation exits with a non-zero status."""

    phase = "deployment"

    def __init__(self, description: str, stderr: str | None = None) -> None:
        self.description = description
        self.stderr = (stderr or "").strip()
        message = f"Unable to {description}"
        if self.stderr:
            message = f"{message}: {self.stderr}"
        super().__init__(message)


class DeploymentError(NextFuncError):
    """Raised when a single-attempt provisioning step fails."""

    phase = "deployment"

    def __init__(self, step: str, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"{step}: {cause}")


class PackageUploadError(DeploymentError):
    """Raised once every function package upload attempt has failed."""

    def __init__(self, attempts: int, cause: Exception) -> None:
        self.attempts = attempts
        super().__init__(
            f"upload function package (gave up after {attempts} attempts)", cause
        )


class TeardownError(NextFuncError):
    """Raised after teardown when one or more deletions failed."""

    phase = "teardown"

    def __init__(self, failures: typ.Mapping[str, Exception]) -> None:
        self.failures = dict(failures)
        details = "; ".join(f"{step}: {error}" for step, error in self.failures.items())
        super().__init__(f"{len(self.failures)} teardown step(s) failed: {details}")


class GitHubCommentError(NextFuncError):
    """Raised when the GitHub API rejects a pull request comment."""

    phase = "notification"


__all__ = [
    "AmbiguousRouteError",
    "AzureCommandError",
    "ClassificationError",
    "ConfigError",
    "ConflictingPageKindError",
    "DeploymentError",
    "GitHubCommentError",
    "MalformedRouteError",
    "NextFuncError",
    "PackageUploadError",
    "PackagingError",
    "TeardownError",
]
