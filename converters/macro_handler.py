"""Confluence macro handler for ac:structured-macro elements."""

import logging
import re
from collections import Counter
from typing import Callable, Dict, Optional

from bs4 import Tag

logger = logging.getLogger('confluence_markdown_migrator.converters.macrohandler')

ProcessChildren = Callable[[Optional[Tag]], str]

ADMONITION_MACROS = ('info', 'note', 'tip', 'warning')
DEFAULT_SUMMARY = 'Details'
CHILDREN_PLACEHOLDER = '<!-- Children Macro Placeholder -->\n\n'

# Blank lines around a code body, up to the first/last line break
CODE_BODY_EDGES = re.compile(r'\A\s*\n|\n\s*\Z')


class MacroHandler:
    """Converts Confluence structured macros to Markdown fragments."""

    def __init__(self, logger: logging.Logger = None):
        """Initialize macro handler with optional logger."""
        self.logger = logger or logging.getLogger('confluence_markdown_migrator.converters.macrohandler')

        # Register macro converters
        self.macro_converters: Dict[str, Callable[[Tag, ProcessChildren], str]] = {
            'toc': self._convert_toc_macro,
            'table-of-contents': self._convert_toc_macro,
            'code': self._convert_code_macro,
            'panel': self._convert_panel_macro,
            'expand': self._convert_expand_macro,
            'children': self._convert_children_macro,
            'details': self._convert_details_macro,
        }
        for name in ADMONITION_MACROS:
            self.macro_converters[name] = self._convert_admonition_macro

        self.stats: Counter = Counter()

    def reset_stats(self) -> None:
        """Forget the macro counts of the previous document."""
        self.stats = Counter()

    def convert(self, element: Tag, process_children: ProcessChildren) -> str:
        """
        Convert one ac:structured-macro element.

        Args:
            element: The macro element
            process_children: Callback rendering an element's children to Markdown

        Returns:
            Markdown fragment for the macro
        """
        macro_name = element.get('ac:name', '')
        self.stats[macro_name or '<unnamed>'] += 1

        converter = self.macro_converters.get(macro_name)
        if converter is None:
            self.logger.debug(f"Unsupported macro '{macro_name}', keeping its content")
            return self._convert_unknown_macro(element, process_children)

        return converter(element, process_children)

    def _convert_toc_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        return ''

    def _convert_code_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        """Emit a fenced code block from the literal plain-text body."""
        language = self._extract_parameter(element, 'language')
        body = element.find('ac:plain-text-body')
        code = body.get_text() if body is not None else ''
        code = CODE_BODY_EDGES.sub('', code)
        return f'```{language}\n{code}\n```\n\n'

    def _convert_admonition_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        name = element.get('ac:name', '').upper()
        content = process_children(element).strip()
        return f'> **{name}:** {content}\n\n'

    def _convert_panel_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        return f'> {process_children(element).strip()}\n\n'

    def _convert_expand_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        title = self._extract_parameter(element, 'title') or DEFAULT_SUMMARY
        return self._create_details(title, process_children(element).strip())

    def _convert_details_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        return self._create_details(DEFAULT_SUMMARY, process_children(element).strip())

    def _convert_children_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        # Page trees have no Markdown equivalent
        return CHILDREN_PLACEHOLDER

    def _convert_unknown_macro(self, element: Tag, process_children: ProcessChildren) -> str:
        content = process_children(element).strip()
        return f'{content}\n\n' if content else ''

    def _extract_parameter(self, element: Tag, param_name: str) -> str:
        """Extract a macro parameter value, '' when absent."""
        param = element.find('ac:parameter', attrs={'ac:name': param_name})
        return param.get_text() if param is not None else ''

    @staticmethod
    def _create_details(summary: str, body: str) -> str:
        return f'<details>\n<summary>{summary}</summary>\n\n{body}\n\n</details>\n\n'
