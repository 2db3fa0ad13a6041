"""Pydantic models for GitHub API responses and webhook payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class GitHubUser(BaseModel):
    login: str
    avatar_url: str = ""


class GitHubPRHead(BaseModel):
    ref: str
    sha: str


class GitHubPRBase(BaseModel):
    ref: str
    sha: str = ""


class GitHubPullRequest(BaseModel):
    """Subset of GitHub's PR response we actually need."""

    id: int = 0
    number: int
    title: str
    body: str | None = None
    state: str = "open"
    draft: bool = False
    html_url: str = ""
    head: GitHubPRHead
    base: GitHubPRBase
    user: GitHubUser | None = None
    additions: int = 0
    deletions: int = 0
    changed_files: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    merged_at: datetime | None = None


class WebhookEvent(BaseModel):
    """Parsed, actionable ``pull_request`` webhook event."""

    action: str
    sender: str = ""
    github_repo_id: int = 0
    repo_full_name: str = ""
    pr_number: int = 0
    pr_title: str = ""
    pr_url: str = ""
    draft: bool = False
