# -*- coding: utf-8 -*-
"""
Resilient Fetcher - HTTP access with auth injection and retry/backoff.

Dependencies
------------
requests

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-15

Modified
--------
2026-10-09
"""

# Standard library
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Third-party
import requests

logger = logging.getLogger(__name__)

# Agent Hub internal
from agenthub import __version__
from agenthub.catalog.auth import resolve_auth_token
from agenthub.catalog.errors import HttpClientError, NetworkError, ValidationError
from agenthub.catalog.models import AuthConfig

USER_AGENT = f"AgentHub/{__version__}"
DEFAULT_ACCEPT = "application/json, text/plain, */*"

MAX_RETRIES = 3
INITIAL_DELAY = 1.0
MAX_DELAY = 10.0
BACKOFF_MULTIPLIER = 2


@dataclass
class ConnectionResult:
    success: bool
    error: Optional[str] = None


class ResilientFetcher:
    """HTTP client used for manifests, artifact content and changelogs.

    Client errors (4xx) fail immediately with ``HttpClientError``.
    Transport errors and 5xx responses are retried with exponential
    backoff; once the attempts are used up the last error is raised.

    Parameters
    ----------
    timeout : float
        Per-attempt request timeout in seconds. Default 30.0.
    max_retries : int
        Retries after the first attempt. Default 3 (4 attempts total).
    initial_delay : float
        Delay before the first retry, in seconds. Default 1.0.
    max_delay : float
        Upper bound on the backoff delay, in seconds. Default 10.0.
    session : Optional[requests.Session]
        Session to send requests through. A new one is created if None.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = MAX_RETRIES,
        initial_delay: float = INITIAL_DELAY,
        max_delay: float = MAX_DELAY,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._timeout = timeout
        self._max_retries = max_retries
        self._initial_delay = initial_delay
        self._max_delay = max_delay
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def _build_headers(
        self,
        headers: Optional[Dict[str, str]],
        auth: Optional[AuthConfig],
    ) -> Dict[str, str]:
        merged = {
            'User-Agent': USER_AGENT,
            'Accept': DEFAULT_ACCEPT,
        }
        if headers:
            merged.update(headers)

        token = resolve_auth_token(auth)
        if token:
            if auth.type == 'bearer':
                merged['Authorization'] = f"Bearer {token}"
            elif auth.type == 'basic':
                merged['Authorization'] = f"Basic {token}"
        return merged

    def fetch(
        self,
        url: str,
        method: str = 'GET',
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
        auth: Optional[AuthConfig] = None,
    ) -> requests.Response:
        """Send a request, retrying transient failures.

        Parameters
        ----------
        url : str
        method : str
            HTTP method. Default 'GET'.
        headers : Optional[Dict[str, str]]
            Extra headers; these override the defaults.
        body : Optional[str]
            Request body.
        auth : Optional[AuthConfig]
            Resolved auth config; see ``AuthResolver.resolve``.

        Returns
        -------
        requests.Response
            A successful (2xx/3xx) response.

        Raises
        ------
        HttpClientError
            On a 4xx response.
        NetworkError
            When all attempts failed with transport errors or 5xx.
        """
        request_headers = self._build_headers(headers, auth)
        delay = self._initial_delay
        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=request_headers,
                    data=body,
                    timeout=self._timeout,
                )
            except requests.RequestException as e:
                last_error = NetworkError(f"Request to {url} failed: {e}")
            else:
                status = response.status_code
                if 400 <= status < 500:
                    raise HttpClientError(
                        f"HTTP {status}: {response.reason}", status_code=status
                    )
                if status < 400:
                    return response
                last_error = NetworkError(
                    f"HTTP {status}: {response.reason}", status_code=status
                )

            if attempt < self._max_retries:
                logger.debug(
                    "%s %s failed (attempt %d/%d): %s; retrying in %.1fs",
                    method, url, attempt + 1, self._max_retries + 1,
                    last_error, delay,
                )
                time.sleep(delay)
                delay = min(delay * BACKOFF_MULTIPLIER, self._max_delay)

        raise last_error or NetworkError(f"Failed to fetch {url} after retries")

    def fetch_json(self, url: str, **kwargs: Any) -> Any:
        """Fetch and decode a JSON document.

        Raises
        ------
        ValidationError
            If the body is not valid JSON.
        """
        response = self.fetch(url, **kwargs)
        try:
            return response.json()
        except (ValueError, json.JSONDecodeError) as e:
            raise ValidationError(f"Invalid JSON from {url}: {e}") from e

    def fetch_text(self, url: str, **kwargs: Any) -> str:
        return self.fetch(url, **kwargs).text

    def test_connection(
        self,
        url: str,
        auth: Optional[AuthConfig] = None,
    ) -> ConnectionResult:
        """HEAD the URL; failures are reported, not raised."""
        try:
            self.fetch(url, method='HEAD', auth=auth)
            return ConnectionResult(success=True)
        except Exception as e:
            return ConnectionResult(success=False, error=str(e) or 'Unknown error')
