"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml

FETCH_MODES = ('api', 'files')
AUTH_TYPES = ('basic', 'bearer')

DEFAULT_CONFIG: Dict[str, Any] = {
    'confluence': {
        'base_url': None,
        'auth_type': 'basic',
        'username': None,
        'api_token': None,
        'verify_ssl': True,
        'input_directory': None,
    },
    'migration': {
        'mode': 'api',
        'cql': 'type=page',
        'since_date': None,
        'spaces': [],
        'page_size': 25,
        'max_pages': None,
        'dry_run': False,
    },
    'export': {
        'output_directory': './output',
    },
    'logging': {
        'level': None,
        'file': None,
    },
    'advanced': {
        'request_timeout': 30,
        'max_retries': 3,
    },
}

# Environment variables read when no configuration file is present
ENV_SETTINGS = {
    'CONFLUENCE_BASE_URL': 'confluence.base_url',
    'CONFLUENCE_EMAIL': 'confluence.username',
    'CONFLUENCE_API_TOKEN': 'confluence.api_token',
    'CONFLUENCE_OUTPUT_DIR': 'export.output_directory',
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Configuration dictionary merged over the defaults

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file does not contain a mapping
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)
        return _deep_merge(DEFAULT_CONFIG, config_data)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Build configuration from CONFLUENCE_* environment variables."""
        environ = os.environ if environ is None else environ
        config = copy.deepcopy(DEFAULT_CONFIG)

        for var_name, path in ENV_SETTINGS.items():
            value = environ.get(var_name)
            if value:
                _set_nested(config, path, value)

        base_url = get_nested(config, 'confluence.base_url')
        if base_url:
            config['confluence']['base_url'] = cls._base_url_from_host(base_url)

        return config

    @staticmethod
    def _base_url_from_host(value: str) -> str:
        """Expand a bare Cloud host such as 'acme.atlassian.net' to 'https://acme.atlassian.net/wiki'."""
        value = value.strip()
        if '://' in value:
            return value.rstrip('/')
        return f"https://{value.strip('/')}/wiki"

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Raises:
            ValueError: If validation fails
        """
        mode = get_nested(config, 'migration.mode', 'api')
        if mode not in FETCH_MODES:
            raise ValueError(f"migration.mode must be one of: {list(FETCH_MODES)}")

        if mode == 'api':
            cls._validate_required_field(config, 'confluence.base_url')
            cls._validate_url(get_nested(config, 'confluence.base_url'), 'confluence.base_url')

            auth_type = get_nested(config, 'confluence.auth_type', 'basic')
            if auth_type not in AUTH_TYPES:
                raise ValueError("confluence.auth_type must be 'basic' or 'bearer'")
            if auth_type == 'basic':
                cls._validate_required_field(config, 'confluence.username')
                if not (get_nested(config, 'confluence.api_token') or get_nested(config, 'confluence.password')):
                    raise ValueError(
                        "Missing required configuration: confluence.api_token (or confluence.password)"
                    )
            else:
                cls._validate_required_field(config, 'confluence.api_token')
        else:
            cls._validate_required_field(config, 'confluence.input_directory')
            input_dir = get_nested(config, 'confluence.input_directory')
            if not os.path.isdir(input_dir):
                raise ValueError(f"confluence.input_directory '{input_dir}' is not a valid directory")

        cls._validate_required_field(config, 'export.output_directory')
        output_dir = get_nested(config, 'export.output_directory')
        if os.path.exists(output_dir) and not os.path.isdir(output_dir):
            raise ValueError(f"export.output_directory '{output_dir}' is not a directory")

        page_size = get_nested(config, 'migration.page_size', 25)
        if not isinstance(page_size, int) or page_size < 1:
            raise ValueError("migration.page_size must be a positive integer")

        max_pages = get_nested(config, 'migration.max_pages')
        if max_pages is not None and (not isinstance(max_pages, int) or max_pages < 1):
            raise ValueError("migration.max_pages must be a positive integer")

        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration with CLI arguments. CLI arguments take precedence.

        Args:
            config: Base configuration dictionary
            args: argparse namespace

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)
        for section in ('confluence', 'migration', 'export', 'logging'):
            merged.setdefault(section, {})

        if getattr(args, 'mode', None):
            merged['migration']['mode'] = args.mode

        if getattr(args, 'cql', None):
            merged['migration']['cql'] = args.cql

        if getattr(args, 'since_date', None):
            merged['migration']['since_date'] = args.since_date

        if getattr(args, 'spaces', None):
            merged['migration']['spaces'] = [s.strip() for s in args.spaces.split(',') if s.strip()]

        if getattr(args, 'max_pages', None):
            merged['migration']['max_pages'] = args.max_pages

        if getattr(args, 'dry_run', False):
            merged['migration']['dry_run'] = True

        if getattr(args, 'input_dir', None):
            merged['confluence']['input_directory'] = args.input_dir

        if getattr(args, 'output_dir', None):
            merged['export']['output_directory'] = args.output_dir

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute ${VAR} references, leaving unknown variables untouched."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        if isinstance(value, str):
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            if match:
                raise ValueError(
                    f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                    f"Please set the {match.group(1)} environment variable or provide a value in config file."
                )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "confluence.base_url")
        default: Default value if path doesn't exist or is None

    Returns:
        Value at the nested path or default
    """
    value = config
    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return default if value is None else value


def _set_nested(config: dict, path: str, value: Any) -> None:
    keys = path.split('.')
    target = config
    for key in keys[:-1]:
        target = target.setdefault(key, {})
    target[keys[-1]] = value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


__all__ = ['ConfigLoader', 'get_nested', 'DEFAULT_CONFIG']
