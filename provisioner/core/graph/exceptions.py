"""Graph-specific exceptions and error classification helpers."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

CONFLICT_CODES = frozenset({
    "Request_MultipleObjectsWithSameKeyValue",
    "ObjectConflict",
    "Conflict",
})
NOT_FOUND_CODES = frozenset({
    "Request_ResourceNotFound",
    "ResourceNotFound",
})
TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# Compatibility shim: Graph reports some duplicates with a generic
# Request_BadRequest code and a human-readable message only.
_CONFLICT_MARKERS = ("already exists", "already assigned")
_NOT_INDEXED_MARKERS = ("does not reference a valid application object",)


class GraphError(Exception):
    """Base exception for all directory operations."""
    pass


class GraphAPIError(GraphError):
    """HTTP error from the Microsoft Graph API.

    Attributes:
        status_code: HTTP status code
        code: Structured error code from the response body (may be empty)
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str, code: str = ""):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.endpoint = endpoint
        label = f"{status_code} {code}".strip()
        super().__init__(f"[{label}] {endpoint}: {message}")


class GraphTransportError(GraphError):
    """Timeout or connection failure before a response was received."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"[transport] {endpoint}: {reason}")


class GraphAuthenticationError(GraphError):
    """Credential exchange for a Graph token failed."""
    pass


def is_conflict(exc: BaseException) -> bool:
    """Return True when the directory says the object or assignment already exists."""
    if not isinstance(exc, GraphAPIError):
        return False
    if exc.status_code == 409 or exc.code in CONFLICT_CODES:
        return True
    text = (exc.message or "").lower()
    if any(marker in text for marker in _CONFLICT_MARKERS):
        logger.debug(f"[graph] Treating {exc.code or exc.status_code} as conflict by message match")
        return True
    return False


def is_transient(exc: BaseException) -> bool:
    """Timeouts, connection failures, throttling and server-side errors."""
    if isinstance(exc, GraphTransportError):
        return True
    return isinstance(exc, GraphAPIError) and exc.status_code in TRANSIENT_STATUS_CODES


def is_not_yet_visible(exc: BaseException) -> bool:
    """Return True when a just-created object has not been indexed yet."""
    if is_transient(exc):
        return True
    if not isinstance(exc, GraphAPIError):
        return False
    if exc.status_code == 404 or exc.code in NOT_FOUND_CODES:
        return True
    if exc.status_code == 400:
        text = (exc.message or "").lower()
        return any(marker in text for marker in _NOT_INDEXED_MARKERS)
    return False
