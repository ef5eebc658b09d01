"""Low-level HTTP client for Keycloak Admin API.

Handles service-account authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

import requests

from .exceptions import KeycloakAPIError, KeycloakUnavailableError

REQUEST_TIMEOUT = 5

# Refresh the access token this long before Keycloak expires it
TOKEN_REFRESH_LEEWAY = timedelta(seconds=10)

logger = logging.getLogger(__name__)


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    Features:
    - Client-credentials authentication with automatic refresh
    - Centralized error handling
    - Network failures surfaced as KeycloakUnavailableError, never a hang

    Usage:
        client = KeycloakClient("http://keycloak:8080")
        client.authenticate_service_account("demo", "automation-cli", "secret")
        response = client.get("/admin/realms/demo/users")
    """

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_params: Dict[str, Any] = {}

    def authenticate_service_account(self, auth_realm: str, client_id: str, client_secret: str) -> str:
        """Store service account credentials and fetch a first token.

        Args:
            auth_realm: Realm where service account client exists
            client_id: Service account client ID
            client_secret: Service account client secret

        Returns:
            Access token
        """
        self.use_service_account(auth_realm, client_id, client_secret)
        self._refresh_token()
        return self._token

    def use_service_account(self, auth_realm: str, client_id: str, client_secret: str) -> None:
        """Store service account credentials; the token is fetched on first request."""
        self._auth_params = {
            "auth_realm": auth_realm,
            "client_id": client_id,
            "client_secret": client_secret,
        }
        self._token = None
        self._token_expires_at = None

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._auth_params:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_service_account first", "")

        if not self._token or datetime.now() >= self._token_expires_at - TOKEN_REFRESH_LEEWAY:
            self._refresh_token()

    def _refresh_token(self) -> None:
        url = f"{self.base_url}/realms/{self._auth_params['auth_realm']}/protocol/openid-connect/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self._auth_params["client_id"],
            "client_secret": self._auth_params["client_secret"],
        }
        try:
            resp = requests.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise KeycloakUnavailableError(f"Token endpoint unreachable: {exc}") from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)

        try:
            payload = resp.json()
            token = payload["access_token"]
            expires_in = int(payload.get("expires_in", 60))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise KeycloakAPIError(resp.status_code, f"Malformed token response: {exc!r}", url) from exc
        self._token = token
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
            KeycloakUnavailableError: On timeout, connection or transport failure
        """
        return self._send("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Optional[Any] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication."""
        return self._send("POST", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication."""
        return self._send("DELETE", path, **kwargs)

    def _send(self, method: str, path: str, **kwargs) -> requests.Response:
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Keycloak %s %s failed: %s", method, path, exc)
            raise KeycloakUnavailableError(f"{method} {path} failed: {exc}") from exc
        self._handle_error(resp)
        return resp

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)
