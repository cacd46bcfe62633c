"""HTTP client for talking to a running specmock server.

Handles the bearer-token handshake so tests can call protected endpoints
directly. Features include:
- Token caching until shortly before expiry
- Automatic ``Authorization`` header on every request
- Health check against the token endpoint
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests

from .auth import TOKEN_ENDPOINT

logger = logging.getLogger(__name__)


@dataclass
class CachedToken:
    """A fetched access token with its local expiry time."""

    value: str
    expires_at: float


@dataclass
class MockApiClient:
    """HTTP client for a specmock server.

    Attributes:
        base_url: Base URL of the server (e.g., "http://localhost:3000")
        client_id: Client id sent to the token endpoint
        scope: Optional scope requested with the token
        timeout: Request timeout in seconds
        expiry_margin: Seconds before expiry at which a token is refreshed

    Example:
        >>> client = MockApiClient(base_url="http://localhost:3000")
        >>> client.post("/oss/v2/buckets", json={"bucketKey": "demo"}).json()
        {'bucketKey': 'demo', ...}
    """

    base_url: str
    client_id: str = "default-client"
    scope: str | None = None
    timeout: float = 10.0
    expiry_margin: float = 30.0
    _token: CachedToken | None = field(default=None, repr=False)
    _warned_unreachable: bool = field(default=False, repr=False)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def fetch_token(self) -> str | None:
        """Return a valid access token, requesting a new one if needed.

        Returns:
            The access token, or None if the server could not issue one
        """
        if self._token is not None and time.time() < self._token.expires_at:
            return self._token.value

        payload: dict[str, Any] = {"client_id": self.client_id}
        if self.scope:
            payload["scope"] = self.scope

        try:
            response = requests.post(self._url(TOKEN_ENDPOINT), json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            token = data["access_token"]
            expires_in = float(data.get("expires_in", 0))
        except requests.RequestException as e:
            self._warn_unreachable(e)
            return None
        except (ValueError, KeyError):
            # JSON parsing error or missing access_token
            return None

        self._token = CachedToken(
            value=token,
            expires_at=time.time() + max(expires_in - self.expiry_margin, 0),
        )
        return token

    def _warn_unreachable(self, error: Exception) -> None:
        """Log a warning about the server being unreachable (once per client)."""
        if self._warned_unreachable:
            return
        self._warned_unreachable = True
        logger.warning(f"Server unreachable at {self.base_url} - {error}")

    def clear_token(self) -> None:
        """Forget the cached token."""
        self._token = None

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Send an authenticated request.

        Raises:
            requests.RequestException: On network errors
        """
        headers = dict(kwargs.pop("headers", None) or {})
        token = self.fetch_token()
        if token is not None:
            headers.setdefault("Authorization", f"Bearer {token}")
        kwargs.setdefault("timeout", self.timeout)
        return requests.request(method, self._url(path), headers=headers, **kwargs)

    def get(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> requests.Response:
        return self.request("DELETE", path, **kwargs)

    def health_check(self) -> bool:
        """Check if the server is up and issuing tokens.

        Returns:
            True if the token endpoint responds with 200 OK, False otherwise
        """
        try:
            # Separate client id: issuing a token replaces the client's previous one
            response = requests.post(
                self._url(TOKEN_ENDPOINT),
                json={"client_id": f"{self.client_id}-health"},
                timeout=self.timeout,
            )
            return response.status_code == 200
        except requests.RequestException:
            return False
