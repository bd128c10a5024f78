# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for navgate.logging_config: structlog + stdlib bridge."""

from __future__ import annotations

import json
import logging
import sys

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_logging():
    """Ensure clean logging state before/after each test."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    httpx_logger = logging.getLogger("httpx")
    old_httpx_level = httpx_logger.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    httpx_logger.setLevel(old_httpx_level)
    structlog.reset_defaults()


class TestConsoleRenderer:
    def test_configure_console_mode(self):
        from navgate.logging_config import configure

        configure(json_output=False)
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_console_output_is_human_readable(self, capsys):
        from navgate.logging_config import configure

        configure(json_output=False)
        logging.getLogger("test.console").info("hello world")
        captured = capsys.readouterr()
        assert "hello world" in captured.err
        assert not captured.err.strip().startswith("{")
        assert captured.out == ""


class TestJsonRenderer:
    def test_json_lines(self, capsys):
        from navgate.logging_config import configure

        configure(json_output=True)
        logging.getLogger("navgate.engine").warning("Malicious URL blocked: url=%s", "https://evil.test/")
        data = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert data["event"] == "Malicious URL blocked: url=https://evil.test/"
        assert data["level"] == "warning"
        assert data["logger"] == "navgate.engine"
        assert "timestamp" in data

    def test_bind_navigation_adds_url(self, capsys):
        from navgate.logging_config import bind_navigation, configure

        configure(json_output=True)
        with bind_navigation("https://a.test/"):
            logging.getLogger("navgate.engine").info("inside")
        logging.getLogger("navgate.engine").info("outside")
        lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
        assert lines[0]["nav_url"] == "https://a.test/"
        assert "nav_url" not in lines[1]

    def test_exception_rendered(self, capsys):
        from navgate.logging_config import configure

        configure(json_output=True)
        try:
            raise ValueError("bad verdict")
        except ValueError:
            logging.getLogger("test").error("failed", exc_info=True)
        data = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "ValueError: bad verdict" in data["exception"]


class TestLevels:
    def test_level_applied(self):
        from navgate.logging_config import configure

        configure(level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        from navgate.logging_config import configure

        configure(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_httpx_quiet_unless_debug(self):
        from navgate.logging_config import configure

        configure(level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING
        configure(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG
