"""Link processor for Confluence anchors, images and ac:link wrappers."""

import logging
from typing import Callable, Optional
from urllib.parse import unquote

from bs4 import Tag

logger = logging.getLogger('confluence_markdown_migrator.converters.linkprocessor')

# Attribute Confluence puts on rendered attachment images
DEFAULT_ALIAS_ATTR = 'data-linked-resource-default-alias'


class LinkProcessor:
    """Turns link-like elements into Markdown links and images."""

    def __init__(self, logger: logging.Logger = None):
        """Initialize link processor with optional logger."""
        self.logger = logger or logging.getLogger('confluence_markdown_migrator.converters.linkprocessor')

    def convert_link(self, el: Tag, text: str) -> str:
        """Convert an anchor to [text](href), falling back to the href as text."""
        href = el.get('href', '')
        link_text = text.strip() or href
        return f'[{link_text}]({href})'

    def convert_image(self, el: Tag) -> str:
        """Convert an img element to ![alt](src). The src is kept verbatim."""
        src = el.get('src', '')
        alt = self.extract_alt_text(el)
        self.logger.debug(f"Image: src={src!r} alt={alt!r}")
        return f'![{alt}]({src})'

    def extract_alt_text(self, img_element: Tag) -> str:
        """Extract alt text from img element."""
        # Check alt attribute first
        alt = img_element.get('alt', '')
        if alt:
            return alt

        # Confluence filename of the attachment
        alias = img_element.get(DEFAULT_ALIAS_ATTR, '')
        if alias:
            return alias

        # Fall back to filename from src
        return filename_from_src(img_element.get('src', ''))

    def convert_ac_link(self, el: Tag, process_children: Callable[[Optional[Tag]], str]) -> str:
        """Render the link body of an ac:link, or its own children when it has none."""
        link_body = el.find('ac:link-body')
        if link_body is not None:
            return process_children(link_body)
        return process_children(el)


def filename_from_src(src: str) -> str:
    """Return the percent-decoded last path segment of src, without query string."""
    if not src:
        return ''

    path = src.split('?', 1)[0]
    filename = path.split('/')[-1]
    try:
        return unquote(filename, errors='strict')
    except UnicodeDecodeError:
        logger.debug(f"Could not decode filename from src: {src}")
        return filename
