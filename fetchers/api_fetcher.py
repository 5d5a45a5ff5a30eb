"""API fetcher implementation for retrieving Confluence pages via REST API."""

import logging
from typing import Any, Dict, List, Optional

from confluence_client import ConfluenceClient, build_cql
from config_loader import get_nested
from models import ConfluencePage
from .base_fetcher import BaseFetcher

logger = logging.getLogger('confluence_markdown_migrator.fetcher.api')


class ApiFetcher(BaseFetcher):
    """Fetches pages in storage format through a CQL content search."""

    def __init__(self, config: Dict[str, Any], logger=None, client: Optional[ConfluenceClient] = None):
        """
        Initialize API fetcher with configuration.

        Args:
            config: Configuration dictionary with confluence, migration and advanced settings
            logger: Logger instance (optional)
            client: Optional pre-built client (built from config when omitted)
        """
        super().__init__(config, logger)
        self.client = client or ConfluenceClient.from_config(config)
        self.cql = build_cql(config)
        self.page_size = get_nested(config, 'migration.page_size', 25)
        self.max_pages = get_nested(config, 'migration.max_pages')

    def fetch_pages(self) -> List[ConfluencePage]:
        """Run the search and turn each page result into a ConfluencePage."""
        results = self.client.search_content(
            self.cql,
            limit=self.page_size,
            max_results=self.max_pages
        )

        if not results:
            self.logger.warning(f"No pages found matching the criteria. Query used: {self.cql}")
            return []

        pages = [
            ConfluencePage.from_api(result)
            for result in results
            if result.get('type', 'page') == 'page'
        ]

        skipped = len(results) - len(pages)
        if skipped:
            self.logger.debug(f"Skipped {skipped} non-page search results")

        self.logger.info(f"Found {len(pages)} pages to process")
        return pages
