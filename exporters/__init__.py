"""Exporters package for writing converted pages to disk."""

from .markdown_exporter import MarkdownExporter

__all__ = ['MarkdownExporter']
