"""Fetchers package for retrieving storage format pages via the REST API or from disk."""

from .base_fetcher import BaseFetcher, FetcherError
from .api_fetcher import ApiFetcher
from .file_fetcher import FileFetcher


def create_fetcher(config: dict, logger=None) -> BaseFetcher:
    """Create the fetcher selected by migration.mode.

    Raises:
        ValueError: If mode is invalid
    """
    mode = config.get('migration', {}).get('mode', 'api')

    if mode == 'api':
        return ApiFetcher(config, logger)
    elif mode == 'files':
        return FileFetcher(config, logger)
    raise ValueError(f"Invalid fetch mode: {mode}. Must be 'api' or 'files'.")


__all__ = [
    'BaseFetcher',
    'FetcherError',
    'ApiFetcher',
    'FileFetcher',
    'create_fetcher'
]
