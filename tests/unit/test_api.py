"""Tests for pullwise.api — endpoints, error mapping, webhook handling."""

from __future__ import annotations

import asyncio
import json
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from pullwise.api.app import create_app
from pullwise.api.dependencies import build_services
from pullwise.core.config import Settings
from pullwise.core.exceptions import UpstreamError
from pullwise.core.models import Repository, ReviewStatus
from pullwise.github.webhook import compute_signature
from pullwise.linear.client import LinearClient

from conftest import OTHER_USER_ID, TOKEN, USER_ID

HEADERS = {"X-User-ID": USER_ID}
SECRET = "whsec-test"


def _linear_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        identifier = json.loads(request.content)["variables"]["id"]
        node = {
            "id": "uuid-1",
            "identifier": identifier,
            "title": "Retry flaky calls",
            "url": f"https://linear.app/acme/issue/{identifier}",
            "state": {"name": "Todo"},
            "assignee": None,
        }
        return httpx.Response(200, json={"data": {"issue": node}})

    return httpx.MockTransport(handler)


@pytest.fixture
def seeded_store(store, repository):
    async def seed():
        await store.add_repository(repository)
        await store.save_access_token(USER_ID, TOKEN)
        # A second user with a repository but no GitHub connection
        await store.add_repository(
            Repository(id="repo-9", user_id="user-9", github_id=999, name="x", full_name="nine/x")
        )

    asyncio.run(seed())
    return store


@pytest.fixture
def services(settings, seeded_store, fake_github, registry):
    return build_services(
        settings,
        store=seeded_store,
        github=fake_github,
        registry=registry,
        linear=LinearClient(transport=_linear_transport()),
    )


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


def _webhook_payload(action: str = "opened", draft: bool = False, repo_id: int = 555) -> bytes:
    return json.dumps(
        {
            "action": action,
            "number": 7,
            "pull_request": {
                "number": 7,
                "title": "Add retry loop",
                "html_url": "https://github.com/octo/widgets/pull/7",
                "draft": draft,
            },
            "repository": {"id": repo_id, "full_name": "octo/widgets"},
            "sender": {"login": "octocat"},
        }
    ).encode()


def _post_webhook(client, body: bytes, event: str = "pull_request", secret: str | None = SECRET):
    headers = {"X-GitHub-Event": event, "Content-Type": "application/json"}
    if secret is not None:
        headers["X-Hub-Signature-256"] = compute_signature(body, secret)
    return client.post("/api/v1/webhooks/github", content=body, headers=headers)


# ── Health & docs ───────────────────────────────────────────────────────────


class TestHealthEndpoints:
    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readiness_lists_providers(self, client):
        data = client.get("/api/v1/readiness").json()
        assert data["status"] == "ready"
        assert data["providers"] == ["openai", "gemini"]
        assert data["services"]["store"] == "MemoryStore"

    def test_readiness_degraded_without_providers(self, seeded_store, fake_github):
        no_keys = Settings(_env_file=None, store_backend="memory")
        services = build_services(no_keys, store=seeded_store, github=fake_github)
        data = TestClient(create_app(services=services)).get("/api/v1/readiness").json()
        assert data["status"] == "degraded"
        assert data["providers"] == []

    def test_root_redirects(self, client):
        assert client.get("/", follow_redirects=False).status_code == 307

    def test_openapi_title(self, client):
        assert client.get("/openapi.json").json()["info"]["title"] == "Pullwise"

    def test_request_id_header(self, client):
        assert "x-request-id" in client.get("/api/v1/health").headers


# ── Reviews ─────────────────────────────────────────────────────────────────


class TestReviewEndpoints:
    def test_requires_user(self, client):
        assert client.get("/api/v1/reviews").status_code == 401

    def test_providers(self, client):
        data = client.get("/api/v1/reviews/providers").json()
        assert data == [
            {"id": "openai", "name": "GPT-4o Mini"},
            {"id": "gemini", "name": "Gemini 2.0 Flash"},
        ]

    def test_trigger_and_poll(self, client, services):
        response = client.post("/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS)
        assert response.status_code == 201
        review_id = response.json()["review_id"]
        assert services.queue.qsize() == 1

        data = client.get(f"/api/v1/reviews/{review_id}", headers=HEADERS).json()
        assert data["status"] == "PENDING"
        assert data["pr_title"] == "Add retry loop"
        assert data["summary"] is None
        assert "user_id" not in data

    def test_list_and_latest(self, client):
        ids = [
            client.post("/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS).json()[
                "review_id"
            ]
            for _ in range(2)
        ]
        listed = client.get("/api/v1/reviews", params={"repository_id": "repo-1"}, headers=HEADERS).json()
        assert [r["id"] for r in listed] == list(reversed(ids))

        latest = client.get(
            "/api/v1/reviews/latest", params={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS
        ).json()
        assert latest["id"] == ids[-1]

    def test_latest_none(self, client):
        response = client.get(
            "/api/v1/reviews/latest", params={"repository_id": "repo-1", "pr_number": 99}, headers=HEADERS
        )
        assert response.status_code == 200
        assert response.json() is None

    def test_limit_validated(self, client):
        assert client.get("/api/v1/reviews", params={"limit": 51}, headers=HEADERS).status_code == 422
        assert client.get("/api/v1/reviews", params={"limit": 0}, headers=HEADERS).status_code == 422

    def test_unknown_provider_is_400(self, client, services):
        response = client.post(
            "/api/v1/reviews",
            json={"repository_id": "repo-1", "pr_number": 7, "provider_id": "claude"},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Unknown AI provider: claude"
        assert services.queue.qsize() == 0

    def test_unconfigured_provider_is_503(self, client):
        response = client.post(
            "/api/v1/reviews",
            json={"repository_id": "repo-1", "pr_number": 7, "provider_id": "qwen"},
            headers=HEADERS,
        )
        assert response.status_code == 503

    def test_other_users_repository_is_404(self, client):
        response = client.post(
            "/api/v1/reviews",
            json={"repository_id": "repo-1", "pr_number": 7},
            headers={"X-User-ID": OTHER_USER_ID},
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Repository not found"

    def test_github_not_connected_is_412(self, client):
        response = client.post(
            "/api/v1/reviews",
            json={"repository_id": "repo-9", "pr_number": 1},
            headers={"X-User-ID": "user-9"},
        )
        assert response.status_code == 412
        assert response.json()["detail"] == "GitHub account not connected"

    def test_github_failure_is_502(self, client, fake_github):
        fake_github.pr_error = UpstreamError(404)
        response = client.post("/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS)
        assert response.status_code == 502
        assert response.json()["detail"] == "GitHub API error: 404"

    def test_invalid_pr_number_is_422(self, client):
        response = client.post("/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 0}, headers=HEADERS)
        assert response.status_code == 422

    def test_other_users_review_is_404(self, client):
        review_id = client.post(
            "/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS
        ).json()["review_id"]
        response = client.get(f"/api/v1/reviews/{review_id}", headers={"X-User-ID": OTHER_USER_ID})
        assert response.status_code == 404


# ── Pull requests ───────────────────────────────────────────────────────────


class TestPullRequestEndpoints:
    def test_list_with_review_status(self, client):
        client.post("/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS)
        data = client.get("/api/v1/repositories/repo-1/pulls", headers=HEADERS).json()
        assert data[0]["number"] == 7
        assert data[0]["review"]["status"] == "PENDING"

    def test_detail(self, client):
        data = client.get("/api/v1/repositories/repo-1/pulls/7", headers=HEADERS).json()
        assert data["title"] == "Add retry loop"
        assert data["review"] is None

    def test_invalid_state(self, client):
        response = client.get("/api/v1/repositories/repo-1/pulls", params={"state": "merged"}, headers=HEADERS)
        assert response.status_code == 422


# ── Webhook ─────────────────────────────────────────────────────────────────


class TestWebhookEndpoint:
    def test_missing_signature_is_401(self, client):
        assert _post_webhook(client, _webhook_payload(), secret=None).status_code == 401

    def test_wrong_signature_is_401(self, client, services):
        assert _post_webhook(client, _webhook_payload(), secret="wrong").status_code == 401
        assert services.queue.qsize() == 0

    def test_other_event_ignored(self, client):
        response = _post_webhook(client, b'{"zen": "Keep it simple"}', event="ping")
        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_invalid_json_is_400(self, client):
        assert _post_webhook(client, b"not json").status_code == 400

    def test_other_action_ignored(self, client):
        response = _post_webhook(client, _webhook_payload(action="closed"))
        assert response.status_code == 200
        assert response.json()["status"] == "ignored"

    def test_draft_ignored(self, client, services):
        response = _post_webhook(client, _webhook_payload(draft=True))
        assert response.status_code == 200
        assert response.json()["message"] == "Draft PR ignored"
        assert services.queue.qsize() == 0

    def test_unconnected_repository(self, client):
        response = _post_webhook(client, _webhook_payload(repo_id=1))
        assert response.status_code == 200
        assert response.json()["message"] == "Repository not connected"

    def test_triggers_review(self, client, services):
        response = _post_webhook(client, _webhook_payload())
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "accepted"
        assert data["message"] == "Review triggered"
        assert data["review_id"]
        assert services.queue.qsize() == 1

    def test_duplicate_while_in_progress(self, client, services):
        first = _post_webhook(client, _webhook_payload(action="opened")).json()
        second = _post_webhook(client, _webhook_payload(action="synchronize"))
        assert second.status_code == 200
        assert second.json()["message"] == "Review already in progress"
        assert second.json()["review_id"] is None
        assert first["review_id"]
        assert services.queue.qsize() == 1

    def test_unsigned_accepted_without_secret(self, seeded_store, fake_github, registry):
        no_secret = Settings(_env_file=None, store_backend="memory", openai_api_key="sk")
        services = build_services(no_secret, store=seeded_store, github=fake_github, registry=registry)
        client = TestClient(create_app(services=services))
        response = _post_webhook(client, _webhook_payload(), secret=None)
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"


# ── Linear ──────────────────────────────────────────────────────────────────


class TestLinearEndpoints:
    def test_connect_and_disconnect(self, client):
        assert client.get("/api/v1/linear/status", headers=HEADERS).json() == {"connected": False}
        response = client.put("/api/v1/linear/api-key", json={"api_key": "lin_api_1"}, headers=HEADERS)
        assert response.json() == {"connected": True}
        assert client.get("/api/v1/linear/status", headers=HEADERS).json() == {"connected": True}
        client.put("/api/v1/linear/api-key", json={"api_key": None}, headers=HEADERS)
        assert client.get("/api/v1/linear/status", headers=HEADERS).json() == {"connected": False}

    def test_issue_without_key(self, client):
        data = client.get("/api/v1/repositories/repo-1/pulls/7/linear-issue", headers=HEADERS).json()
        assert data == {"issue": None}

    def test_issue_from_branch(self, client, fake_github):
        fake_github.pull_requests[7] = fake_github.pull_requests[7].model_copy(
            update={"head": fake_github.pull_requests[7].head.model_copy(update={"ref": "eng-12-retry"})}
        )
        client.put("/api/v1/linear/api-key", json={"api_key": "lin_api_1"}, headers=HEADERS)
        data = client.get("/api/v1/repositories/repo-1/pulls/7/linear-issue", headers=HEADERS).json()
        assert data["issue"]["identifier"] == "ENG-12"

    def test_issues_for_repository(self, client, fake_github):
        fake_github.pull_requests[7] = fake_github.pull_requests[7].model_copy(update={"title": "OPS-3 Add retry"})
        client.put("/api/v1/linear/api-key", json={"api_key": "lin_api_1"}, headers=HEADERS)
        data = client.get("/api/v1/repositories/repo-1/linear-issues", headers=HEADERS).json()
        assert data["7"]["identifier"] == "OPS-3"


# ── End to end ──────────────────────────────────────────────────────────────


class TestEndToEnd:
    def test_review_completes_in_background(self, services):
        with TestClient(create_app(services=services)) as client:
            assert client.get("/api/v1/readiness").json()["services"]["worker"] == "running"

            review_id = client.post(
                "/api/v1/reviews", json={"repository_id": "repo-1", "pr_number": 7}, headers=HEADERS
            ).json()["review_id"]

            data = {}
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                data = client.get(f"/api/v1/reviews/{review_id}", headers=HEADERS).json()
                if data["status"] in (ReviewStatus.COMPLETED, ReviewStatus.FAILED):
                    break
                time.sleep(0.02)

        assert data["status"] == "COMPLETED"
        assert data["risk_score"] == 35
        assert data["ai_model"] == "GPT-4o Mini"
        assert data["comments"][0]["severity"] == "medium"
        assert data["error"] is None
