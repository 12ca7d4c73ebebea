"""Unit tests for the pull request commenter."""

from __future__ import annotations

import typing as typ

import pytest
import requests

from nextfunc.errors import GitHubCommentError
from nextfunc.github import PullRequestCommenter

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture


def test_post_deployment_comments_with_url(mocker: MockerFixture) -> None:
    """The commenter should authenticate and post the preview URL."""
    session = mocker.Mock(spec=requests.Session)
    response = mocker.Mock()
    response.status_code = 201
    session.post.return_value = response

    commenter = PullRequestCommenter(
        token="secret-token", api_base="https://example.invalid/", session=session
    )
    commenter.post_deployment("owner/site", 42, "https://site-42.azurewebsites.net/")

    session.post.assert_called_once()
    called_url = session.post.call_args.args[0]
    assert called_url == "https://example.invalid/repos/owner/site/issues/42/comments", (
        f"expected issue comments endpoint, got {called_url!r}"
    )
    body = session.post.call_args.kwargs["json"]["body"]
    assert "https://site-42.azurewebsites.net/" in body, (
        f"expected the deployment URL in the comment, got {body!r}"
    )
    headers = session.post.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Bearer secret-token", (
        "expected Authorization header to include Bearer token"
    )
    assert session.post.call_args.kwargs["timeout"] == 10.0


def test_error_status_raises(mocker: MockerFixture) -> None:
    session = mocker.Mock(spec=requests.Session)
    response = mocker.Mock()
    response.status_code = 403
    response.text = "Resource not accessible by integration"
    session.post.return_value = response

    commenter = PullRequestCommenter(token="t", session=session)
    with pytest.raises(GitHubCommentError, match="status 403"):
        commenter.post_comment("owner/site", 1, "hello")


def test_network_failure_raises(mocker: MockerFixture) -> None:
    session = mocker.Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("boom")

    commenter = PullRequestCommenter(token="t", session=session)
    with pytest.raises(GitHubCommentError, match="Failed to reach GitHub"):
        commenter.post_comment("owner/site", 1, "hello")


def test_token_is_required() -> None:
    with pytest.raises(ValueError, match="token is required"):
        PullRequestCommenter(token="")


def test_repository_is_required(mocker: MockerFixture) -> None:
    commenter = PullRequestCommenter(token="t", session=mocker.Mock(spec=requests.Session))
    with pytest.raises(ValueError, match="cannot be empty"):
        commenter.post_comment("  ", 1, "hello")
