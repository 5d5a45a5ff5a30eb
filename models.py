"""Data models for the Confluence storage format to Markdown pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

UNKNOWN_SPACE = 'UNKNOWN_SPACE'


class ConversionStatus(Enum):
    """Lifecycle of a page through conversion."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class TableRow:
    """Cells of one table row and whether any of them was a header cell."""

    cells: Tuple[str, ...]
    is_header: bool = False

    def __len__(self) -> int:
        return len(self.cells)

    def to_markdown(self) -> str:
        """Render the row as a pipe-delimited Markdown table row."""
        return f"| {' | '.join(self.cells)} |"


@dataclass
class ConfluencePage:
    """A Confluence page with its storage-format body and conversion tracking."""

    id: str
    title: str
    content: str  # storage format XHTML
    space_key: str = UNKNOWN_SPACE
    url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    markdown_content: Optional[str] = None
    conversion_metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Initialize default conversion metadata if empty."""
        if not self.space_key:
            self.space_key = UNKNOWN_SPACE

        if not self.conversion_metadata:
            self.conversion_metadata = {
                'conversion_status': ConversionStatus.PENDING.value,
                'error': None,
                'macros_found': {},
                'tables_converted': 0,
                'images_count': 0,
                'converted_at': None
            }

    @property
    def is_converted(self) -> bool:
        return self.conversion_metadata.get('conversion_status') == ConversionStatus.SUCCESS.value

    def mark_converted(self, markdown: str, stats: Dict[str, Any]) -> None:
        """Store converted markdown and conversion statistics."""
        self.markdown_content = markdown
        self.conversion_metadata.update({
            'conversion_status': ConversionStatus.SUCCESS.value,
            'error': None,
            'macros_found': dict(stats.get('macros_found', {})),
            'tables_converted': stats.get('tables_converted', 0),
            'images_count': stats.get('images_count', 0),
            'converted_at': datetime.now().isoformat()
        })

    def mark_failed(self, error_message: str) -> None:
        """Record a failed conversion."""
        self.markdown_content = None
        self.conversion_metadata['conversion_status'] = ConversionStatus.FAILED.value
        self.conversion_metadata['error'] = error_message

    @classmethod
    def from_api(cls, api_response: Dict[str, Any]) -> 'ConfluencePage':
        """Build a page from a REST API content result expanded with body.storage and space."""
        body = api_response.get('body') or {}
        storage = body.get('storage') or {}
        space = api_response.get('space') or {}
        links = api_response.get('_links') or {}

        return cls(
            id=str(api_response.get('id', '')),
            title=api_response.get('title') or 'Untitled',
            content=storage.get('value') or '',
            space_key=space.get('key') or UNKNOWN_SPACE,
            url=links.get('webui'),
            metadata={
                'content_type': api_response.get('type', 'page'),
                'content_source': 'api'
            }
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize page to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'space_key': self.space_key,
            'url': self.url,
            'metadata': self.metadata,
            'conversion_metadata': self.conversion_metadata
        }


@dataclass
class ExportResult:
    """Outcome of converting and writing one page."""

    page_id: str
    title: str
    space_key: str
    output_path: Optional[Path] = None
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize result to dictionary."""
        return {
            'page_id': self.page_id,
            'title': self.title,
            'space_key': self.space_key,
            'output_path': str(self.output_path) if self.output_path else None,
            'success': self.success,
            'error': self.error
        }
