"""Tests for configuration loading, merging and validation."""

import argparse

import pytest
import yaml

from config_loader import ConfigLoader, DEFAULT_CONFIG, get_nested
from confluence_client import SEARCH_ENDPOINT, ConfluenceClient


def write_config(path, data):
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return str(path)


def api_config(tmp_path, **confluence):
    settings = {
        'base_url': 'https://example.atlassian.net/wiki',
        'username': 'me@example.com',
        'api_token': 'secret',
    }
    settings.update(confluence)
    return ConfigLoader.merge_with_args(
        {**DEFAULT_CONFIG, 'confluence': {**DEFAULT_CONFIG['confluence'], **settings}},
        argparse.Namespace(output_dir=str(tmp_path / 'out'))
    )


class TestLoad:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load(str(tmp_path / 'missing.yaml'))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text('- just\n- a list\n', encoding='utf-8')
        with pytest.raises(ValueError):
            ConfigLoader.load(str(path))

    def test_defaults_are_merged(self, tmp_path):
        path = write_config(tmp_path / 'config.yaml', {'migration': {'spaces': ['ENG']}})
        config = ConfigLoader.load(path)
        assert config['migration']['spaces'] == ['ENG']
        assert config['migration']['cql'] == 'type=page'
        assert config['export']['output_directory'] == './output'

    def test_environment_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv('TEST_CONFLUENCE_TOKEN', 'tok-123')
        monkeypatch.delenv('TEST_UNSET_VARIABLE', raising=False)
        path = write_config(tmp_path / 'config.yaml', {
            'confluence': {
                'api_token': '${TEST_CONFLUENCE_TOKEN}',
                'username': '${TEST_UNSET_VARIABLE}',
            }
        })
        config = ConfigLoader.load(path)
        assert config['confluence']['api_token'] == 'tok-123'
        assert config['confluence']['username'] == '${TEST_UNSET_VARIABLE}'


class TestFromEnv:

    def test_reads_confluence_variables(self):
        config = ConfigLoader.from_env({
            'CONFLUENCE_BASE_URL': 'https://example.atlassian.net/wiki',
            'CONFLUENCE_EMAIL': 'me@example.com',
            'CONFLUENCE_API_TOKEN': 'tok',
            'CONFLUENCE_OUTPUT_DIR': '/tmp/md',
        })
        assert config['confluence']['base_url'] == 'https://example.atlassian.net/wiki'
        assert config['confluence']['username'] == 'me@example.com'
        assert config['confluence']['api_token'] == 'tok'
        assert config['export']['output_directory'] == '/tmp/md'

    def test_defaults_are_not_mutated(self):
        ConfigLoader.from_env({'CONFLUENCE_BASE_URL': 'https://x.example'})
        assert DEFAULT_CONFIG['confluence']['base_url'] is None

    def test_bare_host_becomes_cloud_base_url(self):
        config = ConfigLoader.from_env({
            'CONFLUENCE_BASE_URL': 'acme.atlassian.net',
            'CONFLUENCE_EMAIL': 'me@example.com',
            'CONFLUENCE_API_TOKEN': 'tok',
        })
        assert config['confluence']['base_url'] == 'https://acme.atlassian.net/wiki'
        ConfigLoader.validate(config)

        client = ConfluenceClient.from_config(config)
        assert client.base_url + SEARCH_ENDPOINT == 'https://acme.atlassian.net/wiki/rest/api/content/search'

    @pytest.mark.parametrize('value, expected', [
        ('acme.atlassian.net/', 'https://acme.atlassian.net/wiki'),
        ('https://confluence.example.com/', 'https://confluence.example.com'),
        ('http://localhost:8090', 'http://localhost:8090'),
    ])
    def test_base_url_forms(self, value, expected):
        assert ConfigLoader.from_env({'CONFLUENCE_BASE_URL': value})['confluence']['base_url'] == expected


class TestMergeWithArgs:

    def test_cli_overrides(self):
        args = argparse.Namespace(
            mode='files', cql='type=blogpost', since_date='2025-04-17', spaces='ENG, DOC,',
            max_pages=5, dry_run=True, input_dir='in', output_dir='out', log_file='run.log'
        )
        merged = ConfigLoader.merge_with_args(DEFAULT_CONFIG, args)
        assert merged['migration']['mode'] == 'files'
        assert merged['migration']['cql'] == 'type=blogpost'
        assert merged['migration']['since_date'] == '2025-04-17'
        assert merged['migration']['spaces'] == ['ENG', 'DOC']
        assert merged['migration']['max_pages'] == 5
        assert merged['migration']['dry_run'] is True
        assert merged['confluence']['input_directory'] == 'in'
        assert merged['export']['output_directory'] == 'out'
        assert merged['logging']['file'] == 'run.log'
        assert DEFAULT_CONFIG['migration']['mode'] == 'api'

    def test_missing_args_keep_config(self):
        merged = ConfigLoader.merge_with_args(DEFAULT_CONFIG, argparse.Namespace())
        assert merged == DEFAULT_CONFIG


class TestValidate:

    def test_valid_api_config(self, tmp_path):
        ConfigLoader.validate(api_config(tmp_path))

    def test_valid_bearer_config(self, tmp_path):
        ConfigLoader.validate(api_config(tmp_path, auth_type='bearer', username=None))

    @pytest.mark.parametrize('override, message', [
        ({'base_url': None}, 'confluence.base_url'),
        ({'base_url': 'ftp://example.com'}, 'http or https'),
        ({'base_url': 'https://'}, 'hostname'),
        ({'username': None}, 'confluence.username'),
        ({'api_token': None}, 'confluence.api_token'),
        ({'auth_type': 'oauth'}, 'auth_type'),
        ({'username': '${CONFLUENCE_USER}'}, 'unsubstituted'),
    ])
    def test_invalid_api_config(self, tmp_path, override, message):
        with pytest.raises(ValueError, match=message):
            ConfigLoader.validate(api_config(tmp_path, **override))

    def test_password_instead_of_token(self, tmp_path):
        ConfigLoader.validate(api_config(tmp_path, api_token=None, password='pw'))

    def test_files_mode(self, tmp_path):
        config = ConfigLoader.merge_with_args(DEFAULT_CONFIG, argparse.Namespace(
            mode='files', input_dir=str(tmp_path), output_dir=str(tmp_path / 'out')
        ))
        ConfigLoader.validate(config)

    def test_files_mode_requires_directory(self, tmp_path):
        config = ConfigLoader.merge_with_args(DEFAULT_CONFIG, argparse.Namespace(
            mode='files', input_dir=str(tmp_path / 'missing')
        ))
        with pytest.raises(ValueError, match='not a valid directory'):
            ConfigLoader.validate(config)

    def test_invalid_mode(self, tmp_path):
        config = api_config(tmp_path)
        config['migration']['mode'] = 'scrape'
        with pytest.raises(ValueError, match='migration.mode'):
            ConfigLoader.validate(config)

    def test_output_directory_must_be_directory(self, tmp_path):
        target = tmp_path / 'file.txt'
        target.write_text('x')
        config = api_config(tmp_path)
        config['export']['output_directory'] = str(target)
        with pytest.raises(ValueError, match='not a directory'):
            ConfigLoader.validate(config)

    @pytest.mark.parametrize('key, value', [
        ('migration.page_size', 0),
        ('migration.max_pages', -1),
        ('advanced.request_timeout', 'soon'),
    ])
    def test_numeric_settings(self, tmp_path, key, value):
        config = api_config(tmp_path)
        section, name = key.split('.')
        config[section][name] = value
        with pytest.raises(ValueError):
            ConfigLoader.validate(config)


def test_get_nested():
    config = {'a': {'b': {'c': 1}, 'n': None}}
    assert get_nested(config, 'a.b.c') == 1
    assert get_nested(config, 'a.x', 'default') == 'default'
    assert get_nested(config, 'a.n', 'default') == 'default'
    assert get_nested(config, 'a.b.c.d', 'deep') == 'deep'
