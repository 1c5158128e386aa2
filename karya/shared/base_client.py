"""
Base API Client

Abstract base class for external provider clients (calendar, payments) with
common functionality:
- Bounded timeouts on every call
- Retries for idempotent requests only
- Mapping of transport and HTTP failures to ExternalProviderError
- Logging without secrets
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import ExternalProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

SENSITIVE_KEYS = {"api_key", "token", "access_token", "refresh_token", "client_secret", "Authorization"}


class BaseAPIClient(ABC):
    """
    Abstract base class for provider clients.

    POST requests are never retried: a create-event or create-payment call
    that may have reached the provider must not be repeated blindly.
    """

    provider_name = "provider"

    def __init__(
        self,
        base_url: str,
        max_retries: int = 2,
        retry_backoff_factor: float = 0.5,
        timeout: float = 15,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Base URL for the API
            max_retries: Maximum retry attempts for idempotent requests
            retry_backoff_factor: Multiplier for exponential backoff
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "DELETE"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @abstractmethod
    def _get_headers(self) -> Dict[str, str]:
        """Authentication and content headers for this provider."""

    def _request(
        self,
        method: str,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
        expect_json: bool = True,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Make an API request and return the parsed JSON body.

        Args:
            method: HTTP method
            endpoint: Path relative to base_url, or an absolute URL
            headers: Headers overriding ``_get_headers()``
            expect_json: Parse and return the JSON body (False returns {})
            **kwargs: Passed to ``requests.Session.request``

        Raises:
            ProviderTimeoutError: If the provider did not answer in time
            ExternalProviderError: On transport failure or a non-2xx response
        """
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}/{endpoint.lstrip('/')}"
        self._log_request(method, endpoint, kwargs.get("params"))
        try:
            response = self.session.request(
                method,
                url,
                headers=headers if headers is not None else self._get_headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.Timeout as e:
            logger.error(f"{self.provider_name} {method} {endpoint} timed out: {e}")
            raise ProviderTimeoutError(self.provider_name, "request timed out") from e
        except requests.RequestException as e:
            logger.error(f"{self.provider_name} {method} {endpoint} failed: {e}")
            raise ExternalProviderError(self.provider_name, "network error") from e

        return self._handle_response(response, method, endpoint, expect_json)

    def _handle_response(
        self, response: requests.Response, method: str, endpoint: str, expect_json: bool
    ) -> Dict[str, Any]:
        """
        Check the status code and extract JSON data.

        Provider error bodies are logged, never returned to callers.
        """
        logger.debug(f"Response status: {response.status_code}")
        if response.status_code >= 400:
            logger.error(
                f"{self.provider_name} {method} {endpoint} returned {response.status_code}: "
                f"{response.text[:500]}"
            )
            raise ExternalProviderError(
                self.provider_name, f"unexpected status {response.status_code}"
            )

        if not expect_json or not response.content:
            return {}

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Failed to parse JSON response: {e}")
            logger.error(f"Response text: {response.text[:500]}")
            raise ExternalProviderError(self.provider_name, "invalid JSON response") from e

    def _log_request(self, method: str, endpoint: str, params: Optional[Dict[str, Any]] = None):
        """Log API request details."""
        if params:
            safe_params = {k: v for k, v in params.items() if k not in SENSITIVE_KEYS}
            logger.info(f"{self.provider_name} request: {method} {endpoint} with params: {safe_params}")
        else:
            logger.info(f"{self.provider_name} request: {method} {endpoint}")
