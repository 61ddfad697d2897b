"""Unit tests for logging configuration."""
from __future__ import annotations

import logging

from lending.logging_setup import configure_logging


class TestConfigureLogging:
    def test_sets_info_level(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_sets_debug_level(self) -> None:
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_quiets_token_transfers(self) -> None:
        configure_logging("DEBUG")
        assert logging.getLogger("lending.token").level == logging.INFO

    def test_token_logger_follows_higher_levels(self) -> None:
        configure_logging("WARNING")
        assert logging.getLogger("lending.token").level == logging.WARNING

    def test_invalid_level_defaults_to_info(self) -> None:
        configure_logging("NONEXISTENT")
        assert logging.getLogger().level == logging.INFO

    def test_installs_a_handler(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger().handlers
