"""Tests for writing converted pages to disk."""

import pytest

from exporters import MarkdownExporter
from models import ConfluencePage, UNKNOWN_SPACE


def converted_page(title='My Page: Intro!', space_key='ENG', markdown='# Intro\n\n'):
    page = ConfluencePage(id='1', title=title, content='', space_key=space_key)
    page.mark_converted(markdown, {})
    return page


def test_output_path(tmp_path):
    exporter = MarkdownExporter(tmp_path)
    assert exporter.output_path_for(converted_page()) == tmp_path / 'eng_my_page__intro_.md'
    assert exporter.output_path_for(converted_page(title='Café', space_key=UNKNOWN_SPACE)).name == \
        'unknown_space_caf_.md'


def test_export_page_writes_markdown(tmp_path):
    output_dir = tmp_path / 'nested' / 'out'
    exporter = MarkdownExporter(output_dir)

    path = exporter.export_page(converted_page())

    assert path == output_dir / 'eng_my_page__intro_.md'
    assert path.read_text(encoding='utf-8') == '# Intro\n\n'
    assert exporter.exported_files == [path]


def test_export_requires_markdown(tmp_path):
    page = ConfluencePage(id='1', title='T', content='<p>x</p>')
    with pytest.raises(ValueError):
        MarkdownExporter(tmp_path).export_page(page)


def test_name_collision_overwrites_with_warning(tmp_path, caplog):
    exporter = MarkdownExporter(tmp_path)
    exporter.export_page(converted_page(title='A/B', markdown='first'))
    with caplog.at_level('WARNING'):
        path = exporter.export_page(converted_page(title='A B', markdown='second'))
    assert path.read_text(encoding='utf-8') == 'second'
    assert 'Overwriting' in caplog.text


@pytest.mark.parametrize('name, expected', [
    ('Kelvin İstanbul', 'kelvin__stanbul'),
    ('K-Space', '__space'),
    ('Straße', 'stra_e'),
    ('Release 2.0 / Notes', 'release_2_0___notes'),
    ('', ''),
])
def test_non_ascii_letters_are_replaced_before_lowercasing(name, expected):
    assert MarkdownExporter._sanitize_filename(name) == expected
