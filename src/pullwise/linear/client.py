"""Linear issue lookup for PR badges."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from typing import Any

import httpx
from pydantic import BaseModel

from pullwise.core.exceptions import LinearError
from pullwise.core.logging import get_logger

logger = get_logger(__name__)

# Team key (1-5 capitals) + number, e.g. ENG-123
_ISSUE_ID_RE = re.compile(r"\b([A-Z]{1,5}-\d+)\b")

_ISSUE_QUERY = """
query PullwiseIssue($id: String!) {
  issue(id: $id) {
    id
    identifier
    title
    url
    priority
    state { name color type }
    assignee { name avatarUrl }
  }
}
"""


class LinearIssueState(BaseModel):
    name: str
    color: str = ""
    type: str = ""


class LinearAssignee(BaseModel):
    name: str
    avatar_url: str | None = None


class LinearIssue(BaseModel):
    id: str
    identifier: str
    title: str
    url: str
    priority: int = 0
    state: LinearIssueState | None = None
    assignee: LinearAssignee | None = None


class PullRequestRef(BaseModel):
    """The bits of a PR needed to find its Linear issue."""

    number: int
    title: str
    head_ref: str = ""


def extract_linear_issue_id(branch_name: str, pr_title: str) -> str | None:
    """Find a Linear identifier in the PR title, else in the upper-cased branch name."""
    match = _ISSUE_ID_RE.search(pr_title)
    if match:
        return match.group(1)
    match = _ISSUE_ID_RE.search(branch_name.upper())
    if match:
        return match.group(1)
    return None


class LinearClient:
    """Thin GraphQL client for the Linear API.

    Keys are per user, so the key is passed per call.
    """

    def __init__(
        self,
        api_url: str = "https://api.linear.app/graphql",
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_url = api_url
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _query(self, api_key: str, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        try:
            response = await client.post(
                self._api_url,
                json={"query": query, "variables": variables},
                headers={"Authorization": api_key, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise LinearError(f"Linear request failed: {e}") from e

        if not response.is_success:
            raise LinearError(f"Linear API error: {response.status_code}")

        body = response.json()
        if body.get("errors"):
            messages = "; ".join(err.get("message", "") for err in body["errors"])
            raise LinearError(f"Linear GraphQL error: {messages}")
        return body.get("data") or {}

    async def fetch_issue(self, api_key: str, identifier: str) -> LinearIssue | None:
        """Look up an issue by identifier.

        Returns None when the issue does not exist or Linear cannot be
        reached; a missing badge never fails the caller.
        """
        try:
            data = await self._query(api_key, _ISSUE_QUERY, {"id": identifier})
        except LinearError as e:
            logger.warning("linear_issue_lookup_failed", identifier=identifier, error=str(e))
            return None

        node = data.get("issue")
        if not node or node.get("identifier") != identifier:
            return None

        assignee = node.get("assignee")
        return LinearIssue(
            id=node["id"],
            identifier=node["identifier"],
            title=node["title"],
            url=node["url"],
            priority=node.get("priority") or 0,
            state=LinearIssueState.model_validate(node["state"]) if node.get("state") else None,
            assignee=(
                LinearAssignee(name=assignee["name"], avatar_url=assignee.get("avatarUrl"))
                if assignee
                else None
            ),
        )

    async def issues_for_prs(self, api_key: str, prs: Iterable[PullRequestRef]) -> dict[int, LinearIssue]:
        """Map PR numbers to their Linear issues, fetching each identifier once."""
        numbers_by_identifier: dict[str, list[int]] = {}
        for pr in prs:
            identifier = extract_linear_issue_id(pr.head_ref, pr.title)
            if identifier:
                numbers_by_identifier.setdefault(identifier, []).append(pr.number)

        identifiers = list(numbers_by_identifier)
        issues = await asyncio.gather(*(self.fetch_issue(api_key, i) for i in identifiers))

        result: dict[int, LinearIssue] = {}
        for identifier, issue in zip(identifiers, issues):
            if issue is None:
                continue
            for number in numbers_by_identifier[identifier]:
                result[number] = issue
        return result
