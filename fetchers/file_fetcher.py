"""File fetcher implementation for storage format documents saved on disk."""

import logging
from pathlib import Path
from typing import Any, Dict, List

from config_loader import get_nested
from models import ConfluencePage, UNKNOWN_SPACE
from .base_fetcher import BaseFetcher, FetcherError

logger = logging.getLogger('confluence_markdown_migrator.fetcher.file')

STORAGE_SUFFIXES = ('.xml', '.html', '.xhtml')


class FileFetcher(BaseFetcher):
    """
    Reads storage format bodies from a directory tree.

    Each file becomes one page. The file stem is used as title and id and the
    name of the containing directory as space key, so an export laid out as
    ``<input>/<SPACE>/<page>.xml`` keeps its grouping.
    """

    def __init__(self, config: Dict[str, Any], logger=None):
        super().__init__(config, logger)

        input_directory = get_nested(config, 'confluence.input_directory')
        if not input_directory:
            raise ValueError("confluence.input_directory is required for file fetcher")

        self.input_directory = Path(input_directory).resolve()
        if not self.input_directory.is_dir():
            raise FetcherError(f"Input directory not found: {self.input_directory}")

        self.logger.info(f"Initialized FileFetcher for path: {self.input_directory}")

    def fetch_pages(self) -> List[ConfluencePage]:
        files = sorted(
            path for path in self.input_directory.rglob('*')
            if path.is_file() and path.suffix.lower() in STORAGE_SUFFIXES
        )

        pages = [self._read_page(path) for path in files]
        self.logger.info(f"Found {len(pages)} storage files in {self.input_directory}")
        return pages

    def _read_page(self, path: Path) -> ConfluencePage:
        if path.parent == self.input_directory:
            space_key = UNKNOWN_SPACE
        else:
            space_key = path.parent.name

        return ConfluencePage(
            id=path.stem,
            title=path.stem,
            content=path.read_text(encoding='utf-8'),
            space_key=space_key,
            url=path.as_uri(),
            metadata={'content_type': 'page', 'content_source': 'file'}
        )
