"""Abstract base fetcher interface."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from models import ConfluencePage


class FetcherError(Exception):
    """Base exception for fetcher-related errors."""
    pass


class BaseFetcher(ABC):
    """Abstract base class for sources of storage format pages."""

    def __init__(self, config: Dict[str, Any], logger=None):
        """
        Initialize base fetcher with configuration and logger.

        Args:
            config: Configuration dictionary
            logger: Logger instance (optional, uses module logger if not provided)
        """
        self.config = config
        self.logger = logger or logging.getLogger('confluence_markdown_migrator.fetcher')

    @abstractmethod
    def fetch_pages(self) -> List[ConfluencePage]:
        """
        Fetch all pages selected by the configuration.

        Returns:
            List of ConfluencePage objects with storage format content
        """
        pass
