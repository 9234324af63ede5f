from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urljoin

import requests

from account_tracking.config import AuditSettings
from account_tracking.errors import ConfigurationError, DirectoryError


log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class ApiError(DirectoryError):
    pass


class AuthenticationError(ApiError):
    pass


class NetworkError(ApiError):
    pass


class DirectoryClient:
    """Thin JSON client for the employee directory API (X-API-Key auth)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: AuditSettings, **kwargs: Any) -> "DirectoryClient":
        errors = settings.directory_settings_errors()
        if errors:
            raise ConfigurationError("; ".join(errors))
        return cls(settings.directory_base_url, settings.directory_api_key, **kwargs)

    def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Optional[dict[str, Any]]:
        """
        GET a JSON document. Returns None for 404; raises ApiError (or a subclass) for
        every other non-200 response, invalid JSON, timeouts and connection failures.
        """
        url = urljoin(self.base_url, path)
        headers = {
            "X-API-Key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            response = self.session.get(url, params=params or {}, headers=headers, timeout=self.timeout)
        except requests.Timeout as exc:
            log.error("Directory API timeout: %s", exc)
            raise NetworkError("Request timeout") from exc
        except requests.ConnectionError as exc:
            log.error("Directory API connection error: %s", exc)
            raise NetworkError("Connection failed") from exc
        except requests.RequestException as exc:
            log.error("Directory API unexpected error: %s", exc)
            raise ApiError(f"Unexpected error: {exc}") from exc

        return self._handle_response(response)

    def _handle_response(self, response: requests.Response) -> Optional[dict[str, Any]]:
        code = response.status_code
        if code == 200:
            try:
                return response.json()
            except ValueError as exc:
                log.error("Directory API invalid JSON response: %s", exc)
                raise ApiError("Invalid JSON response") from exc
        if code == 401:
            log.error("Directory API authentication failed")
            raise AuthenticationError("API authentication failed")
        if code == 404:
            log.warning("Directory API resource not found: %s", response.text)
            return None
        if 400 <= code < 500:
            log.error("Directory API client error (%s): %s", code, response.text)
            raise ApiError(f"Client error: {code}")
        if 500 <= code < 600:
            log.error("Directory API server error (%s): %s", code, response.text)
            raise ApiError(f"Server error: {code}")

        log.error("Directory API unexpected response (%s): %s", code, response.text)
        raise ApiError(f"Unexpected response: {code}")
