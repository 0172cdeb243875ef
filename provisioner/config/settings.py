"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from provisioner.core.graph.client import GRAPH_BASE_URL, REQUEST_TIMEOUT
from provisioner.core.validators import validate_environment, validate_guid, validate_prefix


def _load_secret_from_file(secret_name: str, env_var: str | None = None,
                           environ: Optional[Mapping[str, str]] = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Secret value or None if not found
    """
    environ = os.environ if environ is None else environ
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = environ.get(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


def _env_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _env_number(environ: Mapping[str, str], name: str, default, cast=float):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number (got {raw!r})") from exc
    if value < 0:
        raise RuntimeError(f"Environment variable {name} must not be negative")
    return value


@dataclass
class ProvisionerConfig:
    """Provisioning configuration container, built once per process."""
    # Directory credentials
    tenant_id: str
    client_id: str
    client_secret: str = ""

    # Graph transport
    graph_base_url: str = GRAPH_BASE_URL
    request_timeout: float = REQUEST_TIMEOUT

    # Naming
    environment: str = "dev"
    application_prefix: str = "myapp"
    topology_file: str = ""

    # Behaviour
    generate_secrets: bool = True
    enable_cross_permissions: bool = True
    credential_validity_days: int = 365

    # Eventual-consistency timing
    principal_create_attempts: int = 5
    principal_create_delay: float = 5.0
    authorization_initial_delay: float = 10.0
    authorization_attempts: int = 3
    authorization_retry_delay: float = 2.0
    grant_spacing_delay: float = 1.0

    # Audit
    audit_log_dir: str = ""
    audit_log_signing_key: str = ""

    @property
    def client_secret_resolved(self) -> str:
        """Get the provisioning client secret loaded by load_settings().

        Returns:
            Client secret string

        Raises:
            ValueError: If secret not found
        """
        if self.client_secret:
            return self.client_secret
        raise ValueError(
            "AZURE_CLIENT_SECRET not found. "
            "Provide the secret via Docker secrets or environment variable."
        )

    @property
    def display_prefix(self) -> str:
        return f"{self.application_prefix}-{self.environment}"


def _require(environ: Mapping[str, str], var_name: str) -> str:
    value = (environ.get(var_name) or "").strip()
    if not value:
        raise RuntimeError(f"Environment variable {var_name} is required.")
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ProvisionerConfig:
    """Load provisioning settings from environment and /run/secrets.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Raises:
        RuntimeError: If a required value is missing or malformed
    """
    environ = os.environ if environ is None else environ

    try:
        tenant_id = validate_guid(_require(environ, "AZURE_TENANT_ID"), "AZURE_TENANT_ID")
        client_id = validate_guid(_require(environ, "AZURE_CLIENT_ID"), "AZURE_CLIENT_ID")
        environment = validate_environment(environ.get("PROVISION_ENVIRONMENT", "dev"))
        application_prefix = validate_prefix(environ.get("APPLICATION_PREFIX", "myapp"))
    except ValueError as exc:
        raise RuntimeError(str(exc)) from exc

    # ─────────────────────────────────────────────────────────────────────────
    # Secrets: /run/secrets > environment variables
    # ─────────────────────────────────────────────────────────────────────────
    client_secret = (
        _load_secret_from_file("azure_client_secret", environ=environ)
        or _load_secret_from_file("azure-client-secret", "AZURE_CLIENT_SECRET", environ)
        or ""
    )
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY", environ) or ""

    cfg = ProvisionerConfig(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        graph_base_url=environ.get("GRAPH_BASE_URL", GRAPH_BASE_URL).rstrip("/"),
        request_timeout=_env_number(environ, "GRAPH_REQUEST_TIMEOUT", float(REQUEST_TIMEOUT)),
        environment=environment,
        application_prefix=application_prefix,
        topology_file=environ.get("TOPOLOGY_FILE", ""),
        generate_secrets=_env_bool(environ, "GENERATE_SECRETS", True),
        enable_cross_permissions=_env_bool(environ, "ENABLE_CROSS_PERMISSIONS", True),
        credential_validity_days=_env_number(environ, "CREDENTIAL_VALIDITY_DAYS", 365, int),
        principal_create_attempts=_env_number(environ, "PRINCIPAL_CREATE_ATTEMPTS", 5, int),
        principal_create_delay=_env_number(environ, "PRINCIPAL_CREATE_DELAY", 5.0),
        authorization_initial_delay=_env_number(environ, "AUTHORIZATION_INITIAL_DELAY", 10.0),
        authorization_attempts=_env_number(environ, "AUTHORIZATION_ATTEMPTS", 3, int),
        authorization_retry_delay=_env_number(environ, "AUTHORIZATION_RETRY_DELAY", 2.0),
        grant_spacing_delay=_env_number(environ, "GRANT_SPACING_DELAY", 1.0),
        audit_log_dir=environ.get("AUDIT_LOG_DIR", ""),
        audit_log_signing_key=audit_log_signing_key,
    )

    print(f"[settings] tenant={cfg.tenant_id}; prefix={cfg.display_prefix}; "
          f"cross_permissions={cfg.enable_cross_permissions}; secrets={cfg.generate_secrets}")
    if not cfg.client_secret:
        print("[settings] WARNING: AZURE_CLIENT_SECRET not set; authentication will fail until it is provided")

    return cfg
