"""
Crime Pulse - SoQL Query Client

Executes SoQL queries against a dataset's query endpoint and fetches boundary
documents for choropleth datasets.

Request format:
    GET <endpoint>?query=<SoQL>&$$app_token=<token>
    Accept: application/json

The token parameter is omitted entirely when no token is configured. Any
non-2xx status or transport error raises RequestFailedError; nothing is retried.

Usage:
    from crime_pulse.soql.client import SoqlClient

    client = SoqlClient()
    payload = client.query(dataset.endpoint, "select * limit 10", token="abc")
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from crime_pulse.exceptions import RequestFailedError
from crime_pulse.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


def build_url(
    endpoint: str,
    query: str,
    token: str | None = None,
    token_param: str = "$$app_token",
) -> str:
    """
    Build the request URL for one SoQL query.

    Existing query parameters on the endpoint are preserved; ``query`` and the
    token parameter replace any existing values.
    """
    parts = urlsplit(endpoint)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    params["query"] = query
    token = (token or "").strip()
    if token:
        params[token_param] = token
    else:
        params.pop(token_param, None)
    return urlunsplit(parts._replace(query=urlencode(params)))


class SoqlClient:
    """
    Thin HTTP client for SoQL endpoints.

    Each call issues exactly one GET request; the client keeps no state
    between calls besides its configuration.
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the client.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()
        self.timeout = self.config.api.timeout_seconds

    def _get_json(self, url: str) -> Any:
        start_time = time.time()
        try:
            response = requests.get(
                url,
                headers={"Accept": self.config.api.accept},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Request transport error: {e}", extra={"url": url})
            raise RequestFailedError(url, detail=str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.warning(
                f"HTTP {response.status_code} from {url}",
                extra={"url": url, "status": response.status_code},
            )
            raise RequestFailedError(url, response.status_code, response.text[:200])

        try:
            payload = response.json()
        except ValueError as e:
            raise RequestFailedError(url, response.status_code, "response was not JSON") from e

        logger.debug(
            f"Fetched {url} in {time.time() - start_time:.2f}s",
            extra={"url": url, "status": response.status_code},
        )
        return payload

    def query(self, endpoint: str, query: str, token: str | None = None) -> Any:
        """
        Run one SoQL query.

        Args:
            endpoint: Dataset query endpoint
            query: SoQL query string
            token: Optional app token

        Returns:
            Decoded JSON payload (any shape)

        Raises:
            RequestFailedError: On transport errors or non-2xx statuses
        """
        url = build_url(endpoint, query, token, self.config.api.token_param)
        logger.debug(f"Running query: {query}", extra={"endpoint": endpoint})
        return self._get_json(url)

    def fetch_geojson(self, url: str) -> dict[str, Any]:
        """
        Fetch a boundary polygon collection.

        Raises:
            RequestFailedError: On transport errors, non-2xx statuses or a
                non-object document
        """
        payload = self._get_json(url)
        if not isinstance(payload, dict):
            raise RequestFailedError(url, detail="boundary document is not a JSON object")
        return payload

    def bind(self, endpoint: str, token: str | None = None) -> Callable[[str], Any]:
        """Return a ``fetch(query)`` function for one endpoint and token."""

        def fetch(query: str) -> Any:
            return self.query(endpoint, query, token)

        return fetch
