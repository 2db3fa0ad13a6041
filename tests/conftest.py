"""Shared test fixtures for all Pullwise tests."""

from __future__ import annotations

import json
from typing import Any

import pytest
import pytest_asyncio

from pullwise.core.config import Settings
from pullwise.core.models import FileStatus, PullRequestFile, Repository, Review
from pullwise.github.schemas import GitHubPRBase, GitHubPRHead, GitHubPullRequest, GitHubUser
from pullwise.llm.base import LLMProvider, LLMResponse
from pullwise.llm.registry import ProviderRegistry
from pullwise.orchestrator.queue import JobQueue
from pullwise.store.memory import MemoryStore

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
TOKEN = "gho_test_token"

VALID_REVIEW_JSON = json.dumps(
    {
        "summary": "Adds a retry loop around the HTTP call.",
        "riskScore": 35,
        "comments": [
            {
                "file": "src/app.py",
                "line": 12,
                "severity": "medium",
                "category": "bug",
                "message": "The loop never sleeps between attempts.",
                "suggestion": "Add a backoff delay.",
            }
        ],
    }
)


class FakeLLM(LLMProvider):
    """Scripted chat-completion client that records every call."""

    def __init__(
        self,
        content: str | None = VALID_REVIEW_JSON,
        error: Exception | None = None,
        token_error: Exception | None = None,
    ) -> None:
        self.content = content
        self.error = error
        self.token_error = token_error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def complete(self, messages, *, temperature=0.3, max_tokens=2000, response_format=None):
        self.calls.append(
            {
                "messages": messages,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "response_format": response_format,
            }
        )
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, model="fake-model")

    async def count_tokens(self, text: str) -> int:
        if self.token_error is not None:
            raise self.token_error
        return len(text) // 4

    async def close(self) -> None:
        self.closed = True


def make_pull_request(number: int = 7, title: str = "Add retry loop", **overrides: Any) -> GitHubPullRequest:
    data: dict[str, Any] = {
        "id": 1000 + number,
        "number": number,
        "title": title,
        "state": "open",
        "html_url": f"https://github.com/octo/widgets/pull/{number}",
        "head": GitHubPRHead(ref="feature/retry", sha="abc123"),
        "base": GitHubPRBase(ref="main", sha="def456"),
        "user": GitHubUser(login="octocat", avatar_url="https://avatars.example/octocat"),
        "additions": 10,
        "deletions": 2,
        "changed_files": 1,
    }
    data.update(overrides)
    return GitHubPullRequest(**data)


def make_file(filename: str = "src/app.py", patch: str | None = "@@ -1,2 +1,3 @@\n+retry()\n", **overrides: Any) -> PullRequestFile:
    data: dict[str, Any] = {
        "filename": filename,
        "status": FileStatus.MODIFIED,
        "additions": 1,
        "deletions": 0,
        "changes": 1,
        "patch": patch,
    }
    data.update(overrides)
    return PullRequestFile(**data)


class FakeGitHub:
    """Stands in for ``GitHubClient``; every method records its arguments."""

    def __init__(self) -> None:
        self.pull_requests: dict[int, GitHubPullRequest] = {7: make_pull_request()}
        self.files: list[PullRequestFile] = [make_file()]
        self.files_error: Exception | None = None
        self.pr_error: Exception | None = None
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    async def get_pull_request(self, token, owner, repo, number):
        self.calls.append(("get_pull_request", (token, owner, repo, number)))
        if self.pr_error is not None:
            raise self.pr_error
        pr = self.pull_requests.get(number)
        return pr if pr is not None else make_pull_request(number)

    async def get_pull_request_files(self, token, owner, repo, number, per_page=100):
        self.calls.append(("get_pull_request_files", (token, owner, repo, number)))
        if self.files_error is not None:
            raise self.files_error
        return list(self.files)

    async def list_pull_requests(self, token, owner, repo, state="open"):
        self.calls.append(("list_pull_requests", (token, owner, repo, state)))
        return list(self.pull_requests.values())

    async def close(self) -> None:
        pass


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        store_backend="memory",
        openai_api_key="sk-openai-test",
        github_webhook_secret="whsec-test",
        recover_pending_on_start=False,
        worker_concurrency=2,
    )


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def registry(fake_llm: FakeLLM) -> ProviderRegistry:
    return ProviderRegistry(
        {"openai_api_key": "sk-openai-test", "gemini_api_key": "gm-test"},
        client_factory=lambda provider: fake_llm,
    )


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def queue() -> JobQueue:
    return JobQueue()


@pytest.fixture
def repository() -> Repository:
    return Repository(
        id="repo-1",
        user_id=USER_ID,
        github_id=555,
        name="widgets",
        full_name="octo/widgets",
        html_url="https://github.com/octo/widgets",
    )


@pytest_asyncio.fixture
async def connected_store(store: MemoryStore, repository: Repository) -> MemoryStore:
    """A store holding one repository whose owner has a GitHub token."""
    await store.add_repository(repository)
    await store.save_access_token(USER_ID, TOKEN)
    return store


@pytest.fixture
def pending_review(repository: Repository) -> Review:
    return Review(
        repository_id=repository.id,
        user_id=USER_ID,
        pr_number=7,
        pr_title="Add retry loop",
        pr_url="https://github.com/octo/widgets/pull/7",
    )
