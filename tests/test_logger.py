#!/usr/bin/env python3
"""
Tests for logging setup.
"""

import logging

from shellsync.utils.logger import ROOT_LOGGER, get_logger, set_log_level, setup_logging


def console_handlers():
    return [h for h in logging.getLogger(ROOT_LOGGER).handlers if getattr(h, '_shellsync_console', False)]


class TestLogLevels:
    """Test level handling on the package logger."""

    def teardown_method(self):
        set_log_level('INFO')

    def test_verbose_overrides_level(self):
        setup_logging(level='WARNING', verbose=True, rich_output=False)

        assert logging.getLogger(ROOT_LOGGER).level == logging.DEBUG
        assert [h.level for h in console_handlers()] == [logging.DEBUG]

    def test_set_log_level_updates_console_handler(self):
        setup_logging(rich_output=False)

        set_log_level('error')

        assert logging.getLogger(ROOT_LOGGER).level == logging.ERROR
        assert [h.level for h in console_handlers()] == [logging.ERROR]

    def test_unknown_level_means_info(self):
        set_log_level('chatty')
        assert logging.getLogger(ROOT_LOGGER).level == logging.INFO

    def test_child_loggers_propagate_to_root(self):
        child = get_logger('shellsync.core.config.ConfigStore')
        assert child.logger.handlers == []
        assert child.logger.propagate
