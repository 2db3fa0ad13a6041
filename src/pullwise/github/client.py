"""Async GitHub API client for pull-request metadata and file diffs."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from pullwise.core.constants import GITHUB_PAGE_SIZE, GITHUB_PR_LIST_SIZE
from pullwise.core.exceptions import InvalidRepositoryNameError, UpstreamError
from pullwise.core.logging import get_logger
from pullwise.core.models import PullRequestFile
from pullwise.github.schemas import GitHubPullRequest

logger = get_logger(__name__)


def split_full_name(full_name: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its two halves.

    Raises:
        InvalidRepositoryNameError: If either half is missing.
    """
    owner, _, repo = full_name.partition("/")
    if not owner or not repo:
        raise InvalidRepositoryNameError("Invalid repository name")
    return owner, repo


class GitHubClient:
    """Async client for the GitHub REST API.

    One pooled httpx client is shared by every user; the user's OAuth token
    travels per request, so nothing user-specific is held here.  Nothing is
    cached either: diffs can change between two calls.
    """

    def __init__(
        self,
        api_base: str = "https://api.github.com",
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = api_base.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={
                    "Accept": "application/vnd.github.v3+json",
                    "X-GitHub-Api-Version": "2022-11-28",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get(self, token: str, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make an authenticated GET request; any non-2xx becomes UpstreamError."""
        client = await self._get_client()
        response = await client.get(
            path,
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        if not response.is_success:
            logger.warning("github_request_failed", path=path, status=response.status_code)
            raise UpstreamError(response.status_code, context=f"GET {path}")
        return response.json()

    async def get_pull_request(self, token: str, owner: str, repo: str, number: int) -> GitHubPullRequest:
        """Fetch PR metadata."""
        data = await self._get(token, f"/repos/{owner}/{repo}/pulls/{number}")
        return GitHubPullRequest.model_validate(data)

    async def get_pull_request_files(
        self,
        token: str,
        owner: str,
        repo: str,
        number: int,
        per_page: int = GITHUB_PAGE_SIZE,
    ) -> list[PullRequestFile]:
        """Fetch every file changed in a PR, following pagination.

        Pages are requested until one comes back short.  A failure on any
        page raises and discards what was already collected.
        """
        files: list[PullRequestFile] = []
        page = 1

        while True:
            data = await self._get(
                token,
                f"/repos/{owner}/{repo}/pulls/{number}/files",
                params={"per_page": per_page, "page": page},
            )
            files.extend(PullRequestFile.model_validate(f) for f in data)

            if len(data) < per_page:
                break
            page += 1

        logger.info("fetched_pr_files", owner=owner, repo=repo, pr_number=number, files=len(files), pages=page)
        return files

    async def list_pull_requests(
        self,
        token: str,
        owner: str,
        repo: str,
        state: str = "open",
    ) -> list[GitHubPullRequest]:
        """Most recently updated PRs, each re-fetched for its line/file counts.

        The list endpoint omits additions, deletions and changed_files, so
        every entry is fetched individually (concurrently).
        """
        data = await self._get(
            token,
            f"/repos/{owner}/{repo}/pulls",
            params={
                "state": state,
                "per_page": GITHUB_PR_LIST_SIZE,
                "sort": "updated",
                "direction": "desc",
            },
        )
        numbers = [int(pr["number"]) for pr in data]
        return list(
            await asyncio.gather(*(self.get_pull_request(token, owner, repo, n) for n in numbers))
        )
