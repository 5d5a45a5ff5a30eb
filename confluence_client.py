"""Confluence REST API client with retry logic and CQL search pagination."""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config_loader import get_nested

logger = logging.getLogger('confluence_markdown_migrator.client')

SEARCH_ENDPOINT = '/rest/api/content/search'
DEFAULT_EXPAND = ('body.storage', 'space')


class ConfluenceClient:
    """Confluence REST API client with authentication, retry logic, and error handling."""

    def __init__(
        self,
        base_url: str,
        auth_type: str = 'basic',
        username: Optional[str] = None,
        password: Optional[str] = None,
        api_token: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize Confluence client with authentication and retry configuration.

        Args:
            base_url: Confluence base URL (e.g., "https://example.atlassian.net/wiki")
            auth_type: "basic" or "bearer" authentication
            username: Username or account email for basic auth
            password: Password for basic auth (api_token is used when omitted)
            api_token: API token; the basic auth secret on Cloud, the bearer token otherwise
            verify_ssl: Whether to verify SSL certificates
            timeout: HTTP request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            retry_backoff_factor: Exponential backoff factor
            session: Optional pre-built session
        """
        if not base_url:
            raise ValueError("Confluence base_url is required")

        self.base_url = base_url.rstrip('/')
        self.auth_type = auth_type
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers['Accept'] = 'application/json'

        if auth_type == 'basic':
            secret = password or api_token
            if not username or not secret:
                raise ValueError("Basic auth requires username and password or api_token")
            self.session.auth = (username, secret)
            logger.info(f"Initialized Confluence client with Basic auth for {self.base_url}")
        elif auth_type == 'bearer':
            if not api_token:
                raise ValueError("Bearer auth requires api_token")
            self.session.headers['Authorization'] = f'Bearer {api_token}'
            logger.info(f"Initialized Confluence client with Bearer auth for {self.base_url}")
        else:
            raise ValueError(f"Unsupported auth_type: {auth_type}")

        self.session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("SSL verification disabled - this is insecure!")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        # Retry transient failures on idempotent requests
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.debug(f"Client configured with timeout={timeout}s, max_retries={max_retries}, "
                     f"backoff_factor={retry_backoff_factor}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ConfluenceClient':
        """Initialize Confluence client from configuration dictionary."""
        return cls(
            base_url=get_nested(config, 'confluence.base_url'),
            auth_type=get_nested(config, 'confluence.auth_type', 'basic'),
            username=get_nested(config, 'confluence.username'),
            password=get_nested(config, 'confluence.password'),
            api_token=get_nested(config, 'confluence.api_token'),
            verify_ssl=get_nested(config, 'confluence.verify_ssl', True),
            timeout=get_nested(config, 'advanced.request_timeout', 30),
            max_retries=get_nested(config, 'advanced.max_retries', 3),
            retry_backoff_factor=get_nested(config, 'advanced.retry_backoff_factor', 2.0)
        )

    def _make_request(
        self,
        method: str,
        endpoint: str,
        full_url: Optional[str] = None,
        **kwargs
    ) -> requests.Response:
        """
        Make HTTP request to the Confluence API.

        Raises:
            requests.exceptions.HTTPError: For HTTP errors
            requests.exceptions.Timeout: For timeout errors
            requests.exceptions.RequestException: For other request errors
        """
        url = full_url or f"{self.base_url}/{endpoint.lstrip('/')}"

        start_time = time.time()
        logger.debug(f"API Request: {method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            logger.debug(f"API Response: {response.status_code} {url} ({time.time() - start_time:.3f}s)")
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout:
            logger.error(f"Request timeout after {self.timeout}s: {method} {url}")
            raise

        except requests.exceptions.HTTPError as e:
            response = e.response
            status_code = response.status_code if response is not None else "unknown"
            reason = response.reason if response is not None else ""
            logger.error(f"HTTP Error {status_code} ({reason}): {method} {url}")

            if response is not None:
                logger.debug(f"Response headers: {dict(response.headers)}")
                try:
                    logger.error(f"Error details: {json.dumps(response.json(), indent=2)}")
                except ValueError:
                    logger.error(f"Error response: {response.text[:500]}")
            raise

        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {method} {url} - {str(e)}")
            raise

    def search_content(
        self,
        cql: str,
        limit: int = 25,
        expand: Optional[List[str]] = None,
        max_results: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Search content using Confluence Query Language (CQL), following pagination links.

        Args:
            cql: CQL search query
            limit: Number of results per request
            expand: Expansions for result items (defaults to body.storage and space)
            max_results: Stop after this many results

        Returns:
            List of content dictionaries matching the query
        """
        params = {
            'cql': cql,
            'limit': limit,
            'expand': ','.join(expand or DEFAULT_EXPAND)
        }
        logger.info(f"Searching content with CQL: {cql}")

        results: List[Dict[str, Any]] = []
        response = self._make_request('GET', SEARCH_ENDPOINT, params=params)

        while True:
            data = response.json()
            batch = data.get('results') or []
            results.extend(batch)
            logger.debug(f"Fetched {len(results)} results so far...")

            if max_results is not None and len(results) >= max_results:
                results = results[:max_results]
                break

            next_link = (data.get('_links') or {}).get('next')
            if not next_link or not batch:
                break

            response = self._make_request('GET', '', full_url=self._absolute_url(next_link))

        logger.info(f"CQL search returned {len(results)} results")
        return results

    def _absolute_url(self, link: str) -> str:
        """Resolve a _links.next value, which is relative to the API base."""
        if link.startswith(('http://', 'https://')):
            return link
        return f"{self.base_url}/{link.lstrip('/')}"


def build_cql(config: Dict[str, Any]) -> str:
    """Build the page search query from migration.cql, since_date and spaces."""
    clauses = [get_nested(config, 'migration.cql', 'type=page')]

    since_date = get_nested(config, 'migration.since_date')
    if since_date:
        clauses.append(f'lastmodified >= "{since_date}"')

    spaces = get_nested(config, 'migration.spaces') or []
    if spaces:
        quoted = ','.join(f'"{key}"' for key in spaces)
        clauses.append(f'space in ({quoted})')

    return ' AND '.join(clause for clause in clauses if clause)


__all__ = ['ConfluenceClient', 'build_cql']
