"""Tests for the page and result data models."""

from pathlib import Path

from models import ConfluencePage, ConversionStatus, ExportResult, TableRow, UNKNOWN_SPACE


def test_table_row_markdown():
    assert TableRow(cells=('a', 'b')).to_markdown() == '| a | b |'
    assert len(TableRow(cells=())) == 0


def test_page_defaults():
    page = ConfluencePage(id='1', title='T', content='<p>x</p>', space_key='')
    assert page.space_key == UNKNOWN_SPACE
    assert page.conversion_metadata['conversion_status'] == ConversionStatus.PENDING.value
    assert not page.is_converted


def test_from_api():
    page = ConfluencePage.from_api({
        'id': 12345,
        'type': 'page',
        'title': 'Release notes',
        'space': {'key': 'ENG'},
        'body': {'storage': {'value': '<p>Notes</p>', 'representation': 'storage'}},
        '_links': {'webui': '/spaces/ENG/pages/12345'},
    })
    assert page.id == '12345'
    assert page.title == 'Release notes'
    assert page.content == '<p>Notes</p>'
    assert page.space_key == 'ENG'
    assert page.url == '/spaces/ENG/pages/12345'
    assert page.metadata['content_source'] == 'api'


def test_from_api_with_missing_fields():
    page = ConfluencePage.from_api({'id': '7'})
    assert page.title == 'Untitled'
    assert page.content == ''
    assert page.space_key == UNKNOWN_SPACE


def test_mark_converted_and_failed():
    page = ConfluencePage(id='1', title='T', content='')
    page.mark_converted('# T\n\n', {'macros_found': {'code': 2}, 'tables_converted': 1, 'images_count': 3})
    assert page.is_converted
    assert page.conversion_metadata['macros_found'] == {'code': 2}
    assert page.to_dict()['conversion_metadata']['tables_converted'] == 1

    page.mark_failed('bad')
    assert page.markdown_content is None
    assert page.conversion_metadata['error'] == 'bad'
    assert not page.is_converted


def test_export_result_to_dict():
    result = ExportResult(page_id='1', title='T', space_key='ENG', output_path=Path('out/eng_t.md'))
    assert result.to_dict()['output_path'] == str(Path('out/eng_t.md'))
    assert ExportResult(page_id='2', title='U', space_key='ENG').to_dict()['output_path'] is None
