r"""Report pull request deployments back to GitHub.

This module wraps the single GitHub REST endpoint nextfunc needs: posting an
issue comment on the pull request that triggered an ephemeral deployment, so
reviewers can follow the link to the preview.

Example
-------
>>> from nextfunc.github import PullRequestCommenter
>>> commenter = PullRequestCommenter(token="ghp_example")  # doctest: +SKIP
>>> commenter.post_deployment("owner/site", 42, "https://site-42.azurewebsites.net/")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from http import HTTPStatus

import requests

from nextfunc.config.models import DEFAULT_GITHUB_API_URL
from nextfunc.errors import GitHubCommentError

logger = logging.getLogger(__name__)

_ACCEPT_HEADER = "application/vnd.github+json"


class PullRequestCommenter:
    """Thin wrapper around the GitHub issue comments endpoint.

    Authentication, timeouts and error handling are centralised here; the
    client does not retry failed requests.
    """

    def __init__(
        self,
        *,
        token: str,
        api_base: str = DEFAULT_GITHUB_API_URL,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialise the client.

        Parameters
        ----------
        token : str
            Token with permission to comment on pull requests.
        api_base : str, optional
            Base URL for the GitHub API; override for GitHub Enterprise.
        session : requests.Session, optional
            Preconfigured session to reuse connections.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``10.0``.
        """
        if not token:
            msg = "A GitHub token is required to comment on pull requests"
            raise ValueError(msg)
        self._api_base = api_base.rstrip("/") or DEFAULT_GITHUB_API_URL
        self._session = session or requests.Session()
        self.timeout = timeout
        self._headers = {
            "Accept": _ACCEPT_HEADER,
            "Authorization": f"Bearer {token}",
            "User-Agent": "nextfunc/0.1",
        }

    def post_deployment(self, repository: str, number: int, url: str) -> None:
        """Comment on pull request ``number`` with the deployed ``url``."""
        body = f"Deployed this pull request to {url}"
        self.post_comment(repository, number, body)

    def post_comment(self, repository: str, number: int, body: str) -> None:
        """Post ``body`` as a comment on issue or pull request ``number``."""
        normalized = repository.strip()
        if not normalized:
            msg = "Repository name cannot be empty"
            raise ValueError(msg)

        url = f"{self._api_base}/repos/{normalized}/issues/{number}/comments"
        try:
            response = self._session.post(
                url, json={"body": body}, headers=self._headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            msg = f"Failed to reach GitHub for '{normalized}#{number}': {exc}"
            raise GitHubCommentError(msg) from exc

        if response.status_code >= HTTPStatus.BAD_REQUEST:
            snippet = response.text[:200]
            msg = (
                f"Commenting on '{normalized}#{number}' failed with "
                f"status {response.status_code}: {snippet}"
            )
            raise GitHubCommentError(msg)
        logger.info("Commented on %s#%d", normalized, number)


__all__ = ["PullRequestCommenter"]
