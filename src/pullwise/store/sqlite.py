"""SQLiteStore — durable file-based store.

Schema:
  reviews       — one row per review; comments kept as a JSON column so reads
                  never need a JOIN.
  repositories  — repositories connected by users.
  accounts      — per-user GitHub token and Linear API key.

sqlite3 is blocking, so every call runs in a worker thread behind a single
connection lock.  Status changes are conditional updates
(``WHERE status = <expected>``) so two processes sharing the file cannot both
win the same transition.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from pullwise.core.exceptions import InvalidTransitionError, ReviewNotFoundError
from pullwise.core.logging import get_logger
from pullwise.core.models import Repository, Review, ReviewResult, ReviewStatus
from pullwise.orchestrator.state import ACTIVE_STATES, apply_transition
from pullwise.store.base import AccountStore, RepositoryStore, ReviewStore

logger = get_logger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS reviews (
    seq             INTEGER PRIMARY KEY AUTOINCREMENT,
    id              TEXT NOT NULL UNIQUE,
    repository_id   TEXT NOT NULL,
    user_id         TEXT NOT NULL,
    pr_number       INTEGER NOT NULL,
    pr_title        TEXT NOT NULL,
    pr_url          TEXT NOT NULL,
    status          TEXT NOT NULL,
    provider_id     TEXT,
    summary         TEXT,
    risk_score      INTEGER,
    comments_json   TEXT,
    ai_model        TEXT,
    error           TEXT,
    created_at      TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_reviews_pr     ON reviews (repository_id, pr_number);
CREATE INDEX IF NOT EXISTS idx_reviews_user   ON reviews (user_id, repository_id);
CREATE INDEX IF NOT EXISTS idx_reviews_status ON reviews (status);

CREATE TABLE IF NOT EXISTS repositories (
    id          TEXT PRIMARY KEY,
    user_id     TEXT NOT NULL,
    github_id   INTEGER NOT NULL,
    name        TEXT NOT NULL,
    full_name   TEXT NOT NULL,
    is_private  INTEGER NOT NULL DEFAULT 0,
    html_url    TEXT NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_repositories_github ON repositories (github_id);

CREATE TABLE IF NOT EXISTS accounts (
    user_id         TEXT PRIMARY KEY,
    github_token    TEXT,
    linear_api_key  TEXT
);
"""

_REVIEW_COLUMNS = (
    "id, repository_id, user_id, pr_number, pr_title, pr_url, status, provider_id, "
    "summary, risk_score, comments_json, ai_model, error, created_at"
)


class SQLiteStore(ReviewStore, RepositoryStore, AccountStore):
    """Stores reviews, repositories and accounts in one SQLite database file."""

    def __init__(self, db_path: str = ".pullwise.db") -> None:
        self._db_path = db_path
        # Autocommit mode; multi-statement work opens BEGIN IMMEDIATE itself.
        self._conn = sqlite3.connect(db_path, check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._lock = threading.Lock()
        logger.info("sqlite_store_opened", path=db_path)

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        def _locked() -> T:
            with self._lock:
                return fn(self._conn)

        return await asyncio.to_thread(_locked)

    # ── Row mapping ──────────────────────────────────────────────────────

    @staticmethod
    def _row_to_review(row: sqlite3.Row) -> Review:
        comments = json.loads(row["comments_json"]) if row["comments_json"] is not None else None
        return Review(
            id=row["id"],
            repository_id=row["repository_id"],
            user_id=row["user_id"],
            pr_number=row["pr_number"],
            pr_title=row["pr_title"],
            pr_url=row["pr_url"],
            status=ReviewStatus(row["status"]),
            provider_id=row["provider_id"],
            summary=row["summary"],
            risk_score=row["risk_score"],
            comments=comments,
            ai_model=row["ai_model"],
            error=row["error"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _comments_json(review: Review) -> str | None:
        if review.comments is None:
            return None
        return json.dumps([c.model_dump(mode="json") for c in review.comments])

    @staticmethod
    def _review_params(review: Review) -> tuple:
        return (
            review.id,
            review.repository_id,
            review.user_id,
            review.pr_number,
            review.pr_title,
            review.pr_url,
            review.status.value,
            review.provider_id,
            review.summary,
            review.risk_score,
            SQLiteStore._comments_json(review),
            review.ai_model,
            review.error,
            review.created_at.isoformat(),
        )

    @staticmethod
    def _insert_review(conn: sqlite3.Connection, review: Review) -> None:
        conn.execute(
            f"INSERT INTO reviews ({_REVIEW_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            SQLiteStore._review_params(review),
        )

    @staticmethod
    def _select_latest(conn: sqlite3.Connection, repository_id: str, pr_number: int) -> sqlite3.Row | None:
        return conn.execute(
            f"SELECT {_REVIEW_COLUMNS} FROM reviews WHERE repository_id=? AND pr_number=? "
            "ORDER BY seq DESC LIMIT 1",
            (repository_id, pr_number),
        ).fetchone()

    # ── Reviews ──────────────────────────────────────────────────────────

    async def create(self, review: Review) -> Review:
        if review.status != ReviewStatus.PENDING:
            raise ValueError("New reviews must start PENDING")
        await self._run(lambda conn: self._insert_review(conn, review))
        return review

    async def create_unless_active(self, review: Review) -> Review | None:
        if review.status != ReviewStatus.PENDING:
            raise ValueError("New reviews must start PENDING")

        def _guarded_insert(conn: sqlite3.Connection) -> bool:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = self._select_latest(conn, review.repository_id, review.pr_number)
                if row is not None and ReviewStatus(row["status"]) in ACTIVE_STATES:
                    conn.execute("ROLLBACK")
                    return False
                self._insert_review(conn, review)
                conn.execute("COMMIT")
                return True
            except Exception:
                conn.execute("ROLLBACK")
                raise

        created = await self._run(_guarded_insert)
        return review if created else None

    async def get(self, review_id: str) -> Review | None:
        row = await self._run(
            lambda conn: conn.execute(
                f"SELECT {_REVIEW_COLUMNS} FROM reviews WHERE id=?", (review_id,)
            ).fetchone()
        )
        return self._row_to_review(row) if row else None

    async def transition(
        self,
        review_id: str,
        status: ReviewStatus,
        *,
        result: ReviewResult | None = None,
        error: str | None = None,
    ) -> Review:
        def _update(conn: sqlite3.Connection) -> Review:
            row = conn.execute(
                f"SELECT {_REVIEW_COLUMNS} FROM reviews WHERE id=?", (review_id,)
            ).fetchone()
            if row is None:
                raise ReviewNotFoundError(f"Review not found: {review_id}")

            current = self._row_to_review(row)
            updated = apply_transition(current, status, result=result, error=error)
            cursor = conn.execute(
                "UPDATE reviews SET status=?, summary=?, risk_score=?, comments_json=?, "
                "ai_model=?, error=? WHERE id=? AND status=?",
                (
                    updated.status.value,
                    updated.summary,
                    updated.risk_score,
                    self._comments_json(updated),
                    updated.ai_model,
                    updated.error,
                    review_id,
                    current.status.value,
                ),
            )
            if cursor.rowcount != 1:
                # Another process moved the row between our read and write
                latest = conn.execute("SELECT status FROM reviews WHERE id=?", (review_id,)).fetchone()
                raise InvalidTransitionError(review_id, latest["status"], status.value)
            return updated

        return await self._run(_update)

    async def latest_for_pr(self, repository_id: str, pr_number: int) -> Review | None:
        row = await self._run(lambda conn: self._select_latest(conn, repository_id, pr_number))
        return self._row_to_review(row) if row else None

    async def list_for_user(
        self,
        user_id: str,
        repository_id: str | None = None,
        limit: int = 20,
    ) -> list[Review]:
        if repository_id is not None:
            sql = (
                f"SELECT {_REVIEW_COLUMNS} FROM reviews WHERE user_id=? AND repository_id=? "
                "ORDER BY seq DESC LIMIT ?"
            )
            params: tuple = (user_id, repository_id, limit)
        else:
            sql = f"SELECT {_REVIEW_COLUMNS} FROM reviews WHERE user_id=? ORDER BY seq DESC LIMIT ?"
            params = (user_id, limit)

        rows = await self._run(lambda conn: conn.execute(sql, params).fetchall())
        return [self._row_to_review(r) for r in rows]

    async def ids_with_status(self, status: ReviewStatus) -> list[str]:
        rows = await self._run(
            lambda conn: conn.execute(
                "SELECT id FROM reviews WHERE status=? ORDER BY seq", (status.value,)
            ).fetchall()
        )
        return [r["id"] for r in rows]

    async def close(self) -> None:
        await self._run(lambda conn: conn.close())

    # ── Repositories ─────────────────────────────────────────────────────

    @staticmethod
    def _row_to_repository(row: sqlite3.Row) -> Repository:
        return Repository(
            id=row["id"],
            user_id=row["user_id"],
            github_id=row["github_id"],
            name=row["name"],
            full_name=row["full_name"],
            is_private=bool(row["is_private"]),
            html_url=row["html_url"],
        )

    async def add_repository(self, repository: Repository) -> Repository:
        await self._run(
            lambda conn: conn.execute(
                "INSERT OR REPLACE INTO repositories "
                "(id, user_id, github_id, name, full_name, is_private, html_url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    repository.id,
                    repository.user_id,
                    repository.github_id,
                    repository.name,
                    repository.full_name,
                    int(repository.is_private),
                    repository.html_url,
                ),
            )
        )
        return repository

    async def get_repository(self, repository_id: str) -> Repository | None:
        row = await self._run(
            lambda conn: conn.execute("SELECT * FROM repositories WHERE id=?", (repository_id,)).fetchone()
        )
        return self._row_to_repository(row) if row else None

    async def get_repository_by_github_id(self, github_id: int) -> Repository | None:
        row = await self._run(
            lambda conn: conn.execute(
                "SELECT * FROM repositories WHERE github_id=? LIMIT 1", (github_id,)
            ).fetchone()
        )
        return self._row_to_repository(row) if row else None

    # ── Accounts ─────────────────────────────────────────────────────────

    async def _account_value(self, user_id: str, column: str) -> str | None:
        row = await self._run(
            lambda conn: conn.execute(f"SELECT {column} FROM accounts WHERE user_id=?", (user_id,)).fetchone()
        )
        return row[column] if row else None

    async def _set_account_value(self, user_id: str, column: str, value: str | None) -> None:
        await self._run(
            lambda conn: conn.execute(
                f"INSERT INTO accounts (user_id, {column}) VALUES (?, ?) "
                f"ON CONFLICT(user_id) DO UPDATE SET {column}=excluded.{column}",
                (user_id, value),
            )
        )

    async def get_access_token(self, user_id: str) -> str | None:
        return await self._account_value(user_id, "github_token")

    async def save_access_token(self, user_id: str, token: str) -> None:
        await self._set_account_value(user_id, "github_token", token)

    async def get_linear_api_key(self, user_id: str) -> str | None:
        return await self._account_value(user_id, "linear_api_key")

    async def save_linear_api_key(self, user_id: str, api_key: str | None) -> None:
        await self._set_account_value(user_id, "linear_api_key", api_key or None)
