"""Converters package for Confluence storage format to Markdown conversion."""

from .link_processor import LinkProcessor
from .macro_handler import MacroHandler
from .markdown_converter import MarkdownConverter


def convert_storage(storage_content: str) -> str:
    """
    Convert a storage format string to Markdown with a fresh converter.

    Example:
        >>> from converters import convert_storage
        >>> convert_storage('<h1>Title</h1>')
        '# Title\\n\\n'
    """
    return MarkdownConverter().convert(storage_content)


__all__ = [
    'convert_storage',
    'MarkdownConverter',
    'MacroHandler',
    'LinkProcessor'
]
