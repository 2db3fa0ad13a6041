"""Tests for pullwise.core.logging — structured logging setup."""

from __future__ import annotations

import asyncio
import logging

import pytest
import structlog

from pullwise.core.logging import NOISY_LOGGERS, get_logger, review_context, setup_logging


class TestSetupLogging:
    def test_sets_root_level(self):
        setup_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_case_insensitive(self):
        setup_logging("warning")
        assert logging.getLogger().level == logging.WARNING

    def test_default_level(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_no_duplicate_handlers_on_repeat_calls(self):
        setup_logging("INFO")
        setup_logging("INFO")
        assert len(logging.getLogger().handlers) == 1

    def test_silences_noisy_loggers(self):
        setup_logging("DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level >= logging.WARNING

    def test_json_lines_by_default(self, capsys):
        setup_logging("INFO")
        get_logger("test_json").info("review_triggered", pr_number=7)
        line = capsys.readouterr().out.strip().splitlines()[-1]
        assert line.startswith("{")
        assert '"event": "review_triggered"' in line
        assert '"pr_number": 7' in line

    def test_console_renderer_when_requested(self, capsys):
        setup_logging("INFO", json_logs=False)
        get_logger("test_console").info("review_triggered")
        out = capsys.readouterr().out
        assert "review_triggered" in out
        assert not out.strip().startswith("{")


class TestReviewContext:
    def test_binds_and_unbinds(self):
        with review_context("r-1", attempt=2):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["review_id"] == "r-1"
            assert ctx["attempt"] == 2
        assert "review_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        seen = {}

        async def job(review_id: str) -> None:
            with review_context(review_id):
                await asyncio.sleep(0.01)
                seen[review_id] = structlog.contextvars.get_contextvars()["review_id"]

        await asyncio.gather(job("a"), job("b"))
        assert seen == {"a": "a", "b": "b"}


class TestGetLogger:
    def test_has_expected_methods(self):
        setup_logging("INFO")
        logger = get_logger("test")
        for method in ("info", "warning", "error", "debug", "exception"):
            assert callable(getattr(logger, method, None))

    def test_can_bind_context(self):
        setup_logging("INFO")
        assert get_logger("test").bind(review_id="abc123") is not None
