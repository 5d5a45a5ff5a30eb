"""Markdown file exporter writing one file per converted page."""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from models import ConfluencePage, UNKNOWN_SPACE

UNSAFE_FILENAME_CHARS = re.compile(r'[^a-z0-9]', re.IGNORECASE | re.ASCII)


class MarkdownExporter:
    """Writes converted pages to ``<output>/<space>_<title>.md``."""

    def __init__(self, output_directory: Union[str, Path], logger: Optional[logging.Logger] = None):
        """
        Initialize the markdown exporter.

        Args:
            output_directory: Directory the markdown files are written to
            logger: Logger instance
        """
        self.output_directory = Path(output_directory)
        self.logger = logger or logging.getLogger('confluence_markdown_migrator.exporters.markdown_exporter')
        self.exported_files = []

    def output_path_for(self, page: ConfluencePage) -> Path:
        """Compute the destination file of a page without writing it."""
        space = self._sanitize_filename(page.space_key or UNKNOWN_SPACE)
        title = self._sanitize_filename(page.title)
        return self.output_directory / f"{space}_{title}.md"

    def export_page(self, page: ConfluencePage) -> Path:
        """
        Write the page's markdown content.

        Args:
            page: A converted ConfluencePage

        Returns:
            Path of the written file

        Raises:
            ValueError: If the page has not been converted
            OSError: If the directory or file cannot be written
        """
        if page.markdown_content is None:
            raise ValueError(f"Page {page.id} has no markdown content to export")

        if not self.output_directory.exists():
            self.logger.info(f"Creating output directory: {self.output_directory}")
        self.output_directory.mkdir(parents=True, exist_ok=True)

        output_path = self.output_path_for(page)
        if output_path in self.exported_files:
            self.logger.warning(f"Overwriting {output_path}: another page mapped to the same file name")

        output_path.write_text(page.markdown_content, encoding='utf-8')
        self.exported_files.append(output_path)

        self.logger.info(f"Successfully converted page \"{page.title}\" to \"{output_path}\"")
        return output_path

    @staticmethod
    def _sanitize_filename(name: str) -> str:
        """Replace every character outside ASCII letters and digits with '_', then lowercase."""
        return UNSAFE_FILENAME_CHARS.sub('_', name or '').lower()
