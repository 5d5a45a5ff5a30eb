"""Tests for the convert and export loop."""

from unittest import mock

import pytest

from exporters import MarkdownExporter
from models import ConfluencePage
from orchestrator import MigrationOrchestrator


def make_pages():
    return [
        ConfluencePage(id='1', title='First', content='<h1>First</h1>', space_key='ENG'),
        ConfluencePage(id='2', title='Second', content='<p>Second</p>', space_key='ENG'),
        ConfluencePage(id='3', title='Third', content='<ul><li>Third</li></ul>', space_key='DOC'),
    ]


@pytest.fixture
def exporter(tmp_path):
    return MarkdownExporter(tmp_path / 'out')


def test_run_exports_every_page(exporter, tmp_path):
    results = MigrationOrchestrator(exporter, show_progress=False).run(make_pages())

    assert [r.success for r in results] == [True, True, True]
    assert (tmp_path / 'out' / 'eng_first.md').read_text(encoding='utf-8') == '# First\n\n'
    assert (tmp_path / 'out' / 'doc_third.md').read_text(encoding='utf-8') == '* Third\n\n'


def test_write_failure_does_not_stop_run(exporter):
    pages = make_pages()
    # A directory where the file should go makes the write fail
    exporter.output_path_for(pages[1]).mkdir(parents=True)

    results = MigrationOrchestrator(exporter, show_progress=False).run(pages)

    assert [r.success for r in results] == [True, False, True]
    assert results[1].error
    summary = MigrationOrchestrator.summary(results)
    assert summary['total'] == 3
    assert summary['succeeded'] == 2
    assert summary['failed'] == 1
    assert summary['failed_pages'][0]['id'] == '2'


def test_conversion_failure_is_recorded(exporter):
    orchestrator = MigrationOrchestrator(exporter, show_progress=False)
    outputs = ['# First\n\n', RuntimeError('broken markup'), '* Third\n\n']

    with mock.patch.object(orchestrator.converter, 'convert', side_effect=outputs):
        results = orchestrator.run(make_pages())

    assert [r.success for r in results] == [True, False, True]
    assert results[1].error == 'broken markup'
    assert results[1].output_path is None


def test_dry_run_writes_nothing(exporter, tmp_path):
    results = MigrationOrchestrator(exporter, dry_run=True, show_progress=False).run(make_pages())

    assert all(r.success for r in results)
    assert results[0].output_path == tmp_path / 'out' / 'eng_first.md'
    assert not (tmp_path / 'out').exists()


def test_empty_run(exporter):
    results = MigrationOrchestrator(exporter, show_progress=False).run([])
    assert results == []
    assert MigrationOrchestrator.summary(results)['total'] == 0
