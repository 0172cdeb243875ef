"""Directory facade consumed by the provisioning components.

Wraps the application and service principal services behind the small set of
operations the orchestrator needs, so tests can substitute an in-memory
directory with the same method names.
"""
from __future__ import annotations
from datetime import datetime
from typing import Iterable, Optional

from .applications import ApplicationService
from .client import GraphClient
from .models import Application, PasswordCredential, ServicePrincipal
from .principals import ServicePrincipalService


class DirectoryClient:
    """Typed directory operations over an authenticated GraphClient."""

    def __init__(self, client: GraphClient):
        self.client = client
        self.applications = ApplicationService(client)
        self.principals = ServicePrincipalService(client)

    @classmethod
    def from_config(cls, cfg) -> "DirectoryClient":
        """Build an unauthenticated directory client from a ProvisionerConfig."""
        client = GraphClient(
            cfg.tenant_id,
            cfg.client_id,
            cfg.client_secret_resolved,
            base_url=cfg.graph_base_url,
            timeout=cfg.request_timeout,
        )
        return cls(client)

    def authenticate(self) -> None:
        """Exchange credentials for a token unless the client already holds one.

        Raises:
            GraphAuthenticationError: If the credential exchange fails
        """
        if self.client.is_authenticated:
            return
        self.client.authenticate()

    # ─────────────────────────────────────────────────────────────────────────
    # Applications
    # ─────────────────────────────────────────────────────────────────────────
    def find_applications_by_name(self, name: str) -> list[Application]:
        return self.applications.find_by_name(name)

    def find_application_by_name(self, name: str) -> Optional[Application]:
        return self.applications.find_first(name)

    def get_application(self, object_id: str) -> Application:
        return self.applications.get(object_id)

    def create_application(self, payload: dict) -> Application:
        return self.applications.create(payload)

    def update_application(self, object_id: str, patch: dict) -> None:
        self.applications.update(object_id, patch)

    def create_credential(self, object_id: str, description: str, expiry: datetime) -> PasswordCredential:
        return self.applications.add_password(object_id, description, expiry)

    def delete_application(self, object_id: str) -> None:
        self.applications.delete(object_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Service principals
    # ─────────────────────────────────────────────────────────────────────────
    def find_principal_by_app_id(self, app_id: str) -> Optional[ServicePrincipal]:
        return self.principals.find_by_app_id(app_id)

    def create_principal(
        self,
        app_id: str,
        tags: Optional[Iterable[str]] = None,
        sso_mode: Optional[str] = None,
    ) -> ServicePrincipal:
        return self.principals.create(app_id, tags=tags, sso_mode=sso_mode)

    def update_principal(self, object_id: str, patch: dict) -> None:
        self.principals.update(object_id, patch)

    def create_role_assignment(self, principal_id: str, resource_id: str, role_id: str) -> dict:
        return self.principals.assign_app_role(principal_id, resource_id, role_id).raw

    def delete_principal(self, object_id: str) -> None:
        self.principals.delete(object_id)
