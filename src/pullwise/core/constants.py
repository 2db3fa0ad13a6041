"""Constants and static configuration used across the application."""

from __future__ import annotations

from typing import NamedTuple

APP_VERSION = "0.1.0"


class ProviderConfig(NamedTuple):
    """Static description of an AI backend."""

    id: str
    name: str
    model: str
    credential_setting: str
    base_url: str | None = None


# ── AI Providers (priority order: first configured wins) ────────────────────

PROVIDER_CONFIGS: tuple[ProviderConfig, ...] = (
    ProviderConfig(
        id="openai",
        name="GPT-4o Mini",
        model="gpt-4o-mini",
        credential_setting="openai_api_key",
    ),
    ProviderConfig(
        id="gemini",
        name="Gemini 2.0 Flash",
        model="gemini-2.0-flash",
        credential_setting="gemini_api_key",
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
    ),
    ProviderConfig(
        id="qwen",
        name="Qwen Plus",
        model="qwen-plus",
        credential_setting="qwen_api_key",
        base_url="https://dashscope.aliyuncs.com/compatible-mode/v1",
    ),
)

# ── Review generation ───────────────────────────────────────────────────────

REVIEW_TEMPERATURE: float = 0.3
REVIEW_MAX_TOKENS: int = 2000

EMPTY_DIFF_SUMMARY: str = "No code changes to review (binary files or empty diff)."

# ── GitHub ──────────────────────────────────────────────────────────────────

GITHUB_PAGE_SIZE: int = 100
GITHUB_PR_LIST_SIZE: int = 30

# Webhook actions that (re)trigger an automatic review
ACTIONABLE_PR_ACTIONS: frozenset[str] = frozenset({"opened", "synchronize", "reopened"})

# ── Worker failure messages ─────────────────────────────────────────────────

ERROR_NO_REPOSITORY = "No repository found"
ERROR_NO_ACCESS_TOKEN = "GitHub access token not found"
ERROR_INVALID_REPO_NAME = "Invalid repository name"
ERROR_UNKNOWN = "Unknown error"

# ── Review listing ──────────────────────────────────────────────────────────

DEFAULT_REVIEW_LIST_LIMIT: int = 20
MAX_REVIEW_LIST_LIMIT: int = 50
