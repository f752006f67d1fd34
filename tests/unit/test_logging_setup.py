"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

import pytest

from collateral_engine.logging_setup import LOG_FORMAT, configure_logging, resolve_level


class TestResolveLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("DEBUG", logging.DEBUG), ("warning", logging.WARNING), ("NONEXISTENT", logging.INFO)],
    )
    def test_names(self, name: str, expected: int) -> None:
        assert resolve_level(name) == expected

    def test_numeric_passthrough(self) -> None:
        assert resolve_level(logging.ERROR) == logging.ERROR


class TestConfigureLogging:
    def test_root_level(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_repeated_calls_keep_one_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("INFO")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].formatter._fmt == LOG_FORMAT

    def test_http_client_capped_at_warning(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("aiohttp").level == logging.WARNING

    def test_custom_quiet_loggers(self) -> None:
        logging.getLogger("collateral_engine.test_quiet").setLevel(logging.NOTSET)
        configure_logging("DEBUG", quiet=["collateral_engine.test_quiet"])
        assert logging.getLogger("collateral_engine.test_quiet").level == logging.WARNING
