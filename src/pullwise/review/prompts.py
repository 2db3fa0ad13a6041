"""Prompt text for the AI reviewer."""

from __future__ import annotations

import re
from collections.abc import Iterable

from pullwise.core.models import PullRequestFile

SYSTEM_PROMPT = """You are an expert code reviewer. Analyze the provided pull request diff and provide a structured review.

Your review should:
1. Identify bugs, security issues, performance problems, and code style issues
2. Provide a brief summary of the changes
3. Assign a risk score (0-100) based on the complexity and potential issues
4. Give specific, actionable feedback with line numbers

Respond with valid JSON matching this schema:
{
  "summary": "Brief summary of changes and overall assessment",
  "riskScore": 0-100,
  "comments": [
    {
      "file": "path/to/file.py",
      "line": 42,
      "severity": "critical" | "high" | "medium" | "low",
      "category": "bug" | "security" | "performance" | "style" | "suggestion",
      "message": "What the issue is",
      "suggestion": "How to fix it (optional)"
    }
  ]
}

Severity guide:
- critical: Security vulnerabilities, data loss, crashes
- high: Bugs that will cause issues in production
- medium: Should be fixed but won't break things
- low: Style issues, minor improvements

Be concise but specific. Reference exact line numbers from the new version of each file."""


def _fence_for(text: str) -> str:
    """A backtick fence longer than any backtick run inside ``text``."""
    longest = max((len(run) for run in re.findall(r"`+", text)), default=0)
    return "`" * max(3, longest + 1)


def render_file_block(file: PullRequestFile) -> str:
    """One titled, fenced diff block for a single file."""
    patch = file.patch or ""
    fence = _fence_for(patch)
    return f"### {file.filename} ({file.status.value})\n{fence}diff\n{patch}\n{fence}"


def build_diff_section(files: Iterable[PullRequestFile]) -> str:
    """Concatenate file blocks in input order, separated by blank lines."""
    return "\n\n".join(render_file_block(f) for f in files)


def build_user_prompt(pr_title: str, diff_section: str) -> str:
    return f"""Review this pull request:

**Title:** {pr_title}

**Changes:**
{diff_section}"""


def build_messages(pr_title: str, diff_section: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_user_prompt(pr_title, diff_section)},
    ]
