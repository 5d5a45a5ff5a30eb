"""
Migration orchestrator for the fetch, convert and export phases.

Pages are converted and written one at a time. A page that fails to convert
or to write is logged and recorded, and the remaining pages still run.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from converters import MarkdownConverter
from exporters import MarkdownExporter
from logger import ProgressTracker, log_section
from models import ConfluencePage, ExportResult

logger = logging.getLogger('confluence_markdown_migrator.orchestrator')


class MigrationOrchestrator:
    """Central coordinator sequencing Convert and Export for each fetched page."""

    def __init__(
        self,
        exporter: MarkdownExporter,
        converter: Optional[MarkdownConverter] = None,
        dry_run: bool = False,
        show_progress: bool = True,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize migration orchestrator.

        Args:
            exporter: Writes converted pages
            converter: Storage format converter (a default one is created when omitted)
            dry_run: Convert pages but do not write files
            show_progress: Display a tqdm progress bar
            logger: Optional logger instance
        """
        self.exporter = exporter
        self.dry_run = dry_run
        self.show_progress = show_progress
        self.logger = logger or logging.getLogger('confluence_markdown_migrator.orchestrator')
        self.converter = converter or MarkdownConverter(logger=self.logger)

    def run(self, pages: Iterable[ConfluencePage]) -> List[ExportResult]:
        """
        Convert and export every page, in order.

        Args:
            pages: Pages with storage format content

        Returns:
            One ExportResult per page
        """
        pages = list(pages)
        log_section("Converting pages")
        if self.dry_run:
            self.logger.info("Dry run: markdown files will not be written")

        results = []
        with ProgressTracker(total_items=len(pages), item_type='pages') as tracker:
            for page in tqdm(pages, desc="Converting", unit="page", disable=not self.show_progress):
                result = self._process_page(page)
                tracker.increment(success=result.success)
                results.append(result)

        return results

    def _process_page(self, page: ConfluencePage) -> ExportResult:
        self.logger.info(f"Processing page: \"{page.title}\" (ID: {page.id}, Space: {page.space_key})")
        result = ExportResult(page_id=page.id, title=page.title, space_key=page.space_key)

        if not self.converter.convert_page(page):
            result.success = False
            result.error = page.conversion_metadata.get('error')
            return result

        if self.dry_run:
            result.output_path = self.exporter.output_path_for(page)
            return result

        try:
            result.output_path = self.exporter.export_page(page)
        except (OSError, ValueError) as e:
            self.logger.error(
                f"Error processing page \"{page.title}\" (ID: {page.id}, Space: {page.space_key}): {str(e)}"
            )
            result.success = False
            result.error = str(e)

        return result

    @staticmethod
    def summary(results: List[ExportResult]) -> Dict[str, Any]:
        """Count successes and failures of a run."""
        failed = [r for r in results if not r.success]
        return {
            'total': len(results),
            'succeeded': len(results) - len(failed),
            'failed': len(failed),
            'failed_pages': [{'id': r.page_id, 'title': r.title, 'error': r.error} for r in failed]
        }
