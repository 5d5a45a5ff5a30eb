"""Markdown converter for Confluence storage format (XHTML with ac:/ri: elements)."""

import html
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from models import TableRow
from .link_processor import LinkProcessor
from .macro_handler import MacroHandler

logger = logging.getLogger('confluence_markdown_migrator.converters.markdownconverter')

CDATA_SECTION = re.compile(r'<!\[CDATA\[(.*?)\]\]>', re.DOTALL)
HORIZONTAL_WHITESPACE = re.compile(r'[ \t\r\f\v]+')
SPACES_BEFORE_NEWLINE = re.compile(r' +\n')
SPACES_AFTER_NEWLINE = re.compile(r'\n +')
EXCESS_BLANK_LINES = re.compile(r'\n{3,}')

PASSTHROUGH_TAGS = (
    'div', 'span',
    'ac:parameter', 'ac:plain-text-body', 'ac:rich-text-body', 'ac:link-body',
    'ri:page', 'ri:attachment',
    'tr', 'th', 'td', 'thead', 'tbody', 'tfoot',
    'ac:inline-comment-marker',
)


class MarkdownConverter:
    """
    Converts Confluence storage format documents to Markdown.

    Each element kind has a convert_* rule registered by tag name. Rules call
    back into process_children() to render nested content. Unknown tags render
    their children, so no content is dropped for markup we do not recognize.
    """

    def __init__(self, logger: logging.Logger = None):
        """Initialize markdown converter with optional logger."""
        self.logger = logger or logging.getLogger('confluence_markdown_migrator.converters.markdownconverter')

        # Initialize helper components
        self.macro_handler = MacroHandler(self.logger)
        self.link_processor = LinkProcessor(self.logger)

        self.tag_converters: Dict[str, Callable[[Tag], str]] = {
            'h1': self.convert_h1,
            'h2': self.convert_h2,
            'h3': self.convert_h3,
            'p': self.convert_p,
            'a': self.convert_a,
            'code': self.convert_code,
            'u': self.convert_u,
            'strong': self.convert_strong,
            'b': self.convert_strong,
            'em': self.convert_em,
            'i': self.convert_em,
            'ul': self.convert_ul,
            'ol': self.convert_ol,
            'li': self.convert_li,
            'br': self.convert_br,
            'hr': self.convert_hr,
            'blockquote': self.convert_blockquote,
            'img': self.convert_img,
            'table': self.convert_table,
            'ac:structured-macro': self.convert_ac_structured_macro,
            'ac:link': self.convert_ac_link,
            'ac:adf-extension': self.convert_ac_adf_extension,
        }
        for tag_name in PASSTHROUGH_TAGS:
            self.tag_converters[tag_name] = self.process_children

        self.stats: Dict[str, Any] = {}
        self._reset_stats()

    def convert(self, storage_content: str) -> str:
        """Convert a storage format string to Markdown."""
        self._reset_stats()
        if not storage_content:
            return ''

        soup = self._parse(storage_content)

        # Only top-level elements are converted; stray text between them is layout
        markdown = ''.join(
            self.process_element(child) for child in soup.children if isinstance(child, Tag)
        )

        self.stats['macros_found'] = dict(self.macro_handler.stats)
        return self._final_cleanup(markdown)

    def convert_page(self, page: Any) -> bool:
        """
        Convert a ConfluencePage's storage content to Markdown in place.

        Args:
            page: ConfluencePage object with storage format in page.content

        Returns:
            bool: True if conversion succeeded, False otherwise
        """
        self.logger.info(f"Converting page {page.id} ('{page.title}') to markdown")

        try:
            markdown = self.convert(page.content)
            page.mark_converted(markdown, self.stats)
            self.logger.debug(f"Page {page.id} stats: {self.stats}")
            return True
        except Exception as e:
            self.logger.error(
                f"Conversion failed for page '{page.title}' (ID: {page.id}, Space: {page.space_key}): {str(e)}"
            )
            page.mark_failed(str(e))
            return False

    def _reset_stats(self) -> None:
        self.stats = {
            'macros_found': {},
            'tables_converted': 0,
            'images_count': 0
        }
        self.macro_handler.reset_stats()

    def _parse(self, storage_content: str) -> BeautifulSoup:
        """Parse storage format with a lenient parser that keeps ac:/ri: tag names."""
        # html.parser closes <tag/> elements and keeps prefixed names verbatim.
        # CDATA bodies become escaped text so their literal content survives parsing.
        content = CDATA_SECTION.sub(lambda m: html.escape(m.group(1), quote=False), storage_content)
        return BeautifulSoup(content, 'html.parser')

    def _final_cleanup(self, markdown: str) -> str:
        """Replace 3+ consecutive newlines with 2 newlines."""
        return EXCESS_BLANK_LINES.sub('\n\n', markdown)

    # --- Tree walking ---

    def process_element(self, node: Any) -> str:
        """Convert one node (text or element) and its subtree to Markdown."""
        if node is None:
            return ''

        if isinstance(node, NavigableString):
            if isinstance(node, PreformattedString):
                # Comments, doctypes, processing instructions
                return ''
            return self.process_text(str(node))

        if isinstance(node, Tag):
            tag_name = (node.name or '').lower()
            convert_fn = self.tag_converters.get(tag_name, self.process_children)
            return convert_fn(node)

        return ''

    def process_text(self, text: str) -> str:
        """Collapse horizontal whitespace while keeping line breaks."""
        text = HORIZONTAL_WHITESPACE.sub(' ', text)
        text = SPACES_BEFORE_NEWLINE.sub('\n', text)
        return SPACES_AFTER_NEWLINE.sub('\n', text)

    def process_children(self, el: Optional[Tag]) -> str:
        """Concatenate the Markdown of all child nodes, in document order."""
        if el is None:
            return ''
        return ''.join(self.process_element(child) for child in el.children)

    # --- Block and inline rules ---

    def _convert_hn(self, level: int, el: Tag) -> str:
        return f"{'#' * level} {self.process_children(el).strip()}\n\n"

    def convert_h1(self, el: Tag) -> str:
        return self._convert_hn(1, el)

    def convert_h2(self, el: Tag) -> str:
        return self._convert_hn(2, el)

    def convert_h3(self, el: Tag) -> str:
        return self._convert_hn(3, el)

    def convert_p(self, el: Tag) -> str:
        """Paragraphs without content produce nothing."""
        content = self.process_children(el).strip()
        return f'{content}\n\n' if content else ''

    def convert_a(self, el: Tag) -> str:
        return self.link_processor.convert_link(el, self.process_children(el))

    def convert_code(self, el: Tag) -> str:
        # Literal text only, nested markup is not converted
        return f'`{el.get_text()}`'

    def convert_u(self, el: Tag) -> str:
        # Markdown has no underline
        return self.process_children(el)

    def convert_strong(self, el: Tag) -> str:
        return f'**{self.process_children(el)}**'

    def convert_em(self, el: Tag) -> str:
        return f'*{self.process_children(el)}*'

    def convert_li(self, el: Tag, marker: str = '*') -> str:
        return f'{marker} {self.process_children(el).strip()}\n'

    def convert_ul(self, el: Tag) -> str:
        items = el.find_all('li', recursive=False)
        return ''.join(self.convert_li(li, '*') for li in items) + '\n'

    def convert_ol(self, el: Tag) -> str:
        items = el.find_all('li', recursive=False)
        return ''.join(
            self.convert_li(li, f'{number}.') for number, li in enumerate(items, start=1)
        ) + '\n'

    def convert_br(self, el: Tag) -> str:
        return '  \n'

    def convert_hr(self, el: Tag) -> str:
        return '--- \n\n'

    def convert_blockquote(self, el: Tag) -> str:
        text = self.process_children(el).replace('\n', '\n> ')
        return f'> {text}\n\n'

    def convert_img(self, el: Tag) -> str:
        self.stats['images_count'] += 1
        return self.link_processor.convert_image(el)

    # --- Confluence elements ---

    def convert_ac_structured_macro(self, el: Tag) -> str:
        return self.macro_handler.convert(el, self.process_children)

    def convert_ac_link(self, el: Tag) -> str:
        return self.link_processor.convert_ac_link(el, self.process_children)

    def convert_ac_adf_extension(self, el: Tag) -> str:
        """Render decision lists as a bold decision line, other ADF nodes via their fallback."""
        decision_list = el.find('ac:adf-node', attrs={'type': 'decision-list'}, recursive=False)
        if decision_list is not None:
            decision_item = decision_list.find('ac:adf-node', attrs={'type': 'decision-item'}, recursive=False)
            if decision_item is not None:
                content = decision_item.find('ac:adf-content', recursive=False)
                decision = content.get_text().strip() if content is not None else ''
                return f'**Decision:** {decision}\n\n'

        fallback = el.find('ac:adf-fallback', recursive=False)
        if fallback is not None:
            return self.process_children(fallback)
        return self.process_children(el)

    # --- Tables ---

    def convert_table_cell(self, el: Tag) -> str:
        """Render a cell on a single line with pipes escaped."""
        content = self.process_children(el).strip()
        # Escape pipes before introducing <br> markers
        content = content.replace('|', '\\|')
        return content.replace('\n', '<br>')

    def convert_table_row(self, el: Tag) -> TableRow:
        cells = el.find_all(['th', 'td'], recursive=False)
        return TableRow(
            cells=tuple(self.convert_table_cell(cell) for cell in cells),
            is_header=any(cell.name.lower() == 'th' for cell in cells)
        )

    def convert_table(self, el: Tag) -> str:
        """
        Convert a table to a pipe table.

        Rows from <thead> are headers. Without a <thead>, the first body row is
        promoted to the header so the output is always a valid pipe table.
        Rows without cells are skipped.
        """
        self.stats['tables_converted'] += 1

        head_rows = [
            self.convert_table_row(tr)
            for thead in el.find_all('thead', recursive=False)
            for tr in thead.find_all('tr', recursive=False)
        ]
        head_rows = [row for row in head_rows if len(row)]

        markdown_rows: List[str] = [row.to_markdown() for row in head_rows]
        header_detected = bool(head_rows)
        column_count = max((len(row) for row in head_rows), default=0)

        if header_detected:
            markdown_rows.insert(1, self._separator_row(column_count))

        for index, tr in enumerate(self._body_rows(el)):
            row = self.convert_table_row(tr)
            if not len(row):
                continue

            markdown_rows.append(row.to_markdown())
            if not header_detected and index == 0:
                if not row.is_header:
                    self.logger.debug("Table has no header cells, using first row as header")
                column_count = max(column_count, len(row))
                markdown_rows.append(self._separator_row(column_count))

        return '\n'.join(markdown_rows) + '\n\n'

    @staticmethod
    def _body_rows(el: Tag) -> List[Tag]:
        """Rows of <tbody> sections and direct <tr> children, in document order."""
        rows = []
        for child in el.find_all(['tbody', 'tr'], recursive=False):
            if child.name == 'tbody':
                rows.extend(child.find_all('tr', recursive=False))
            else:
                rows.append(child)
        return rows

    @staticmethod
    def _separator_row(column_count: int) -> str:
        return TableRow(cells=('---',) * column_count).to_markdown()
