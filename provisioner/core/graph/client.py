"""Low-level HTTP client for the Microsoft Graph API.

Handles authentication, token management, and HTTP operations.
"""
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import requests
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity import ClientSecretCredential

from .exceptions import GraphAPIError, GraphAuthenticationError, GraphTransportError

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
REQUEST_TIMEOUT = 30
INVALID_BODY_CODE = "InvalidResponseBody"


class GraphClient:
    """HTTP client for Microsoft Graph with automatic token management.

    Features:
    - Client-credentials authentication via azure-identity
    - Automatic token refresh when expired
    - Centralized error handling (structured Graph error codes)
    - Per-request timeout; transport failures surface as GraphTransportError

    Usage:
        client = GraphClient(tenant_id, client_id, client_secret)
        client.authenticate()
        response = client.get("/applications", params={"$filter": "..."})
    """

    def __init__(
        self,
        tenant_id: str = "",
        client_id: str = "",
        client_secret: str = "",
        *,
        base_url: str = GRAPH_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        credential: Optional[Any] = None,
    ):
        """Initialize Graph client.

        Args:
            tenant_id: Directory (tenant) id
            client_id: Application id of the provisioning identity
            client_secret: Client secret of the provisioning identity
            base_url: Graph API root (v1.0 endpoint by default)
            timeout: Per-request timeout in seconds
            credential: Pre-built azure-identity credential (overrides the secret)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self._credential = credential
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def authenticate(self) -> str:
        """Exchange the client credentials for a Graph access token.

        Returns:
            Access token

        Raises:
            GraphAuthenticationError: If the credential exchange fails
        """
        if self._credential is None:
            if not (self.tenant_id and self.client_id and self._client_secret):
                raise GraphAuthenticationError("tenant_id, client_id and client_secret are required")
            try:
                self._credential = ClientSecretCredential(self.tenant_id, self.client_id, self._client_secret)
            except ValueError as exc:
                raise GraphAuthenticationError(f"Invalid client credentials: {exc}") from exc
        try:
            access = self._credential.get_token(GRAPH_SCOPE)
        except ClientAuthenticationError as exc:
            raise GraphAuthenticationError(f"Graph authentication failed: {exc.message}") from exc
        except AzureError as exc:
            # login endpoint unreachable or returned something unusable
            raise GraphAuthenticationError(f"Graph token request failed: {exc}") from exc
        self._token = access.token
        self._token_expires_at = datetime.fromtimestamp(access.expires_on, tz=timezone.utc)
        return self._token

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at:
            raise GraphAuthenticationError("Not authenticated - call authenticate() first")

        # Refresh if token expired or expiring within a minute
        if self._credential is not None and datetime.now(timezone.utc) >= self._token_expires_at - timedelta(seconds=60):
            self.authenticate()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self._token}", "Content-Type": "application/json"}
        if extra:
            headers.update(extra)
        return headers

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Args:
            path: API endpoint path (e.g., "/applications")
            params: Query parameters
            **kwargs: Additional arguments for requests.get

        Returns:
            Response object

        Raises:
            GraphAPIError: On HTTP error
            GraphTransportError: On timeout, connection or other transport failure
        """
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GraphTransportError(url, str(exc)) from exc
        self._handle_error(resp)
        return resp

    def post(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication."""
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = requests.post(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GraphTransportError(url, str(exc)) from exc
        self._handle_error(resp)
        return resp

    def patch(self, path: str, json: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute PATCH request with automatic authentication."""
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = requests.patch(url, json=json, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GraphTransportError(url, str(exc)) from exc
        self._handle_error(resp)
        return resp

    def delete(self, path: str, **kwargs) -> requests.Response:
        """Execute DELETE request with automatic authentication."""
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = self._headers(kwargs.pop("headers", None))
        try:
            resp = requests.delete(url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GraphTransportError(url, str(exc)) from exc
        self._handle_error(resp)
        return resp

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Graph error bodies look like {"error": {"code": "...", "message": "..."}};
        anything else falls back to the raw response text.

        Raises:
            GraphAPIError: If response status indicates error
        """
        if resp.status_code < 400:
            return
        code = ""
        message = resp.text
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            code = body["error"].get("code") or ""
            message = body["error"].get("message") or message
        raise GraphAPIError(resp.status_code, message, resp.url, code=code)


def json_body(resp: requests.Response) -> dict:
    """Decode a successful Graph response, which is always a JSON object.

    Raises:
        GraphAPIError: If the body is not JSON or not an object (e.g. a gateway HTML page)
    """
    try:
        body = resp.json()
    except ValueError as exc:
        raise GraphAPIError(resp.status_code, "Response body is not valid JSON", resp.url,
                            code=INVALID_BODY_CODE) from exc
    if not isinstance(body, dict):
        raise GraphAPIError(resp.status_code, "Response body is not a JSON object", resp.url,
                            code=INVALID_BODY_CODE)
    return body


def create_client_with_token(token: str, base_url: str = GRAPH_BASE_URL, expires_in: int = 3600,
                             timeout: float = REQUEST_TIMEOUT) -> GraphClient:
    """Create a pre-authenticated GraphClient from an already-issued token.

    The client cannot refresh the token; use it for short-lived tooling and tests.
    """
    client = GraphClient(base_url=base_url, timeout=timeout)
    client._token = token
    client._token_expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)
    return client
