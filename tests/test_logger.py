"""Tests for logging setup and progress tracking."""

import logging

import pytest

from logger import LOGGER_NAME, ProgressTracker, sanitize_config, setup_logging


@pytest.mark.parametrize('verbosity, level', [
    (0, logging.WARNING),
    (1, logging.INFO),
    (2, logging.DEBUG),
    (5, logging.DEBUG),
])
def test_verbosity_levels(verbosity, level):
    assert setup_logging(verbosity=verbosity).level == level


def test_explicit_level_wins():
    assert setup_logging(verbosity=2, level='error').level == logging.ERROR


def test_invalid_level():
    with pytest.raises(ValueError):
        setup_logging(level='loud')


def test_repeated_setup_replaces_handlers(tmp_path):
    setup_logging()
    logger = setup_logging(log_file=str(tmp_path / 'run.log'))
    assert len(logger.handlers) == 2
    assert logger.name == LOGGER_NAME
    assert len(setup_logging().handlers) == 1


def test_sanitize_config_masks_secrets():
    config = {'confluence': {'username': 'me', 'api_token': 'tok', 'password': 'pw', 'verify_ssl': True}}
    sanitized = sanitize_config(config)
    assert sanitized['confluence'] == {
        'username': 'me', 'api_token': '***REDACTED***', 'password': '***REDACTED***', 'verify_ssl': True
    }
    assert config['confluence']['api_token'] == 'tok'


def test_progress_tracker_counts():
    with ProgressTracker(total_items=3, item_type='pages') as tracker:
        tracker.increment()
        tracker.increment(success=False)
        tracker.increment()
    stats = tracker.get_stats()
    assert stats['processed'] == 3
    assert stats['successful'] == 2
    assert stats['failed'] == 1


def test_format_elapsed():
    assert ProgressTracker._format_elapsed(5.0) == '5.0s'
    assert ProgressTracker._format_elapsed(125) == '2m 5s'
