"""Input validation helpers for provisioning parameters."""
from __future__ import annotations
import re
import uuid
from urllib.parse import urlparse

ENVIRONMENTS = ("dev", "test", "prod")

_PREFIX_RE = re.compile(r"^[A-Za-z0-9]{1,20}$")
_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,50}$")


def validate_prefix(raw: str) -> str:
    """Validate the application prefix.

    Args:
        raw: Prefix input

    Returns:
        Trimmed prefix

    Raises:
        ValueError: If prefix is not 1-20 alphanumeric characters
    """
    prefix = (raw or "").strip()
    if not _PREFIX_RE.match(prefix):
        raise ValueError("Application prefix must be 1-20 alphanumeric characters")
    return prefix


def validate_environment(raw: str) -> str:
    """Validate the deployment environment name.

    Raises:
        ValueError: If environment is not one of dev, test, prod
    """
    environment = (raw or "").strip().lower()
    if environment not in ENVIRONMENTS:
        raise ValueError(f"Environment must be one of: {', '.join(ENVIRONMENTS)}")
    return environment


def validate_resource_name(raw: str, field: str = "Name") -> str:
    """Validate a resource short name (letters, digits, '-' and '_', 1-50 characters)."""
    name = (raw or "").strip()
    if not _NAME_RE.match(name):
        raise ValueError(f"{field} must be 1-50 characters of letters, digits, '-' or '_'")
    return name


def validate_url(raw: str, field: str = "URL") -> str:
    """Validate an absolute http(s) URL.

    Returns:
        URL without trailing slash
    """
    url = (raw or "").strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"{field} must be an absolute http(s) URL")
    return url.rstrip("/")


def validate_guid(raw: str, field: str = "Id") -> str:
    value = (raw or "").strip()
    try:
        return str(uuid.UUID(value))
    except ValueError as exc:
        raise ValueError(f"{field} must be a GUID") from exc


def parse_bool(raw, field: str = "Value") -> bool:
    """Accept booleans and the usual string spellings (true/false, yes/no, 1/0)."""
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in ("true", "yes", "1", "on"):
        return True
    if text in ("false", "no", "0", "off"):
        return False
    raise ValueError(f"{field} must be a boolean")
