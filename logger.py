"""Logging setup with verbosity levels, colored console output and progress tracking."""

import copy
import logging
import logging.handlers
import time
from typing import Any, Dict, Optional

import colorlog

LOGGER_NAME = 'confluence_markdown_migrator'

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

SENSITIVE_FIELDS = {
    'password', 'api_token', 'token', 'secret', 'access_token', 'auth_header'
}


def setup_logging(
    verbosity: int = 0,
    log_file: Optional[str] = None,
    level: Optional[str] = None,
    log_format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT
) -> logging.Logger:
    """
    Set up logging for the exporter.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional path to a rotating log file
        level: Optional explicit log level name, overrides verbosity
        log_format: Log record format string
        date_format: Timestamp format string

    Returns:
        The configured package logger

    Raises:
        ValueError: If level is not a known log level name
    """
    if level:
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level_upper = level.upper()
        if level_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{level}'. Must be one of: {sorted(allowed_levels)}"
            )
        log_level = getattr(logging, level_upper)
    elif verbosity >= 2:
        log_level = logging.DEBUG
    elif verbosity >= 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    # Clear handlers from an earlier setup
    logger.handlers.clear()

    console_handler = colorlog.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.info(f"Logging to file: {log_file}")
        except OSError as e:
            logger.warning(f"Failed to set up file logging: {str(e)}")

    logger.debug(f"Log level: {logging.getLevelName(log_level)}")
    return logger


class ProgressTracker:
    """Context manager counting processed items and logging a summary on exit."""

    def __init__(self, total_items: int, item_type: str = "items"):
        """
        Initialize progress tracker.

        Args:
            total_items: Total number of items to process
            item_type: Description of item type (e.g., "pages")
        """
        self.total_items = total_items
        self.item_type = item_type
        self.processed_items = 0
        self.successful_items = 0
        self.failed_items = 0
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger(LOGGER_NAME)

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.time()
        self.logger.info(f"Starting processing of {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        elapsed = time.time() - self.start_time

        # Use appropriate log level based on failure rate
        if self.failed_items > 0 and self.failed_items == self.total_items:
            log_method = self.logger.error
        elif self.failed_items > 0:
            log_method = self.logger.warning
        else:
            log_method = self.logger.info

        log_method(
            f"{self.item_type.capitalize()}: {self.successful_items} succeeded, "
            f"{self.failed_items} failed, {self.processed_items}/{self.total_items} processed "
            f"in {self._format_elapsed(elapsed)}"
        )

    def increment(self, success: bool = True) -> None:
        """Count one processed item."""
        self.processed_items += 1

        if success:
            self.successful_items += 1
        else:
            self.failed_items += 1

        # Log progress every 10 items or on failure
        if self.processed_items % 10 == 0 or not success:
            remaining = self.total_items - self.processed_items
            status = "Success" if success else "Failed"
            self.logger.info(
                f"Processed {self.processed_items}/{self.total_items} {self.item_type} "
                f"({remaining} remaining) - Last: {status}"
            )

    def get_stats(self) -> Dict[str, Any]:
        """Get current progress statistics."""
        elapsed = time.time() - self.start_time if self.start_time is not None else 0.0

        return {
            'total': self.total_items,
            'processed': self.processed_items,
            'successful': self.successful_items,
            'failed': self.failed_items,
            'elapsed_time': elapsed
        }

    @staticmethod
    def _format_elapsed(seconds: float) -> str:
        """Format elapsed time in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"

        minutes = int(seconds // 60)
        seconds = int(seconds % 60)
        return f"{minutes}m {seconds}s"


def log_section(title: str) -> None:
    """Log a section header."""
    logger = logging.getLogger(LOGGER_NAME)

    separator = "=" * 60
    logger.info(separator)
    logger.info(f"  {title.upper()}")
    logger.info(separator)


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective configuration with secrets masked."""
    logger = logging.getLogger(LOGGER_NAME)
    sanitized = sanitize_config(config)

    log_section("Configuration")

    confluence = sanitized.get('confluence', {})
    logger.info(f"Confluence Base URL: {confluence.get('base_url', 'Not Set')}")
    logger.info(f"Authentication Type: {confluence.get('auth_type', 'basic')}")
    if confluence.get('username'):
        logger.info(f"Username: {confluence.get('username')}")

    migration = sanitized.get('migration', {})
    logger.info(f"Mode: {migration.get('mode', 'api')}")
    logger.info(f"CQL: {migration.get('cql', 'type=page')}")
    logger.info(f"Since Date: {migration.get('since_date') or 'Not Set'}")
    logger.info(f"Spaces: {migration.get('spaces') or 'All Spaces'}")
    logger.info(f"Dry Run: {migration.get('dry_run', False)}")

    export_settings = sanitized.get('export', {})
    logger.info(f"Output Directory: {export_settings.get('output_directory', './output')}")


def sanitize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return a deep copy of config with sensitive string values masked."""

    def mask_sensitive(data: Any) -> Any:
        if isinstance(data, dict):
            return {
                key: "***REDACTED***"
                if isinstance(value, str) and any(s in key.lower() for s in SENSITIVE_FIELDS)
                else mask_sensitive(value)
                for key, value in data.items()
            }
        if isinstance(data, list):
            return [mask_sensitive(item) for item in data]
        return data

    return mask_sensitive(copy.deepcopy(config))


__all__ = [
    'setup_logging',
    'ProgressTracker',
    'log_section',
    'log_config',
    'sanitize_config'
]
