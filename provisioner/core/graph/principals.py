"""Service principal and app role assignment operations."""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from .applications import odata_quote
from .client import GraphClient, json_body
from .models import AppRoleAssignment, ServicePrincipal, parse_collection

logger = logging.getLogger(__name__)


class ServicePrincipalService:
    """Service for managing service principals (enterprise applications)."""

    def __init__(self, client: GraphClient):
        """Initialize service principal service.

        Args:
            client: Authenticated Graph client
        """
        self.client = client

    def find_by_app_id(self, app_id: str) -> Optional[ServicePrincipal]:
        """Return the principal linked to the given application id, if any."""
        resp = self.client.get(
            "/servicePrincipals",
            params={"$filter": f"appId eq {odata_quote(app_id)}"},
        )
        items = parse_collection(json_body(resp))
        return ServicePrincipal.from_graph(items[0]) if items else None

    def create(
        self,
        app_id: str,
        tags: Optional[Iterable[str]] = None,
        sso_mode: Optional[str] = None,
    ) -> ServicePrincipal:
        """Create the principal for an application.

        Args:
            app_id: Application (client) id
            tags: Principal tags
            sso_mode: preferredSingleSignOnMode (saml, integrated, ...)

        Returns:
            Created service principal
        """
        payload: dict = {"appId": app_id}
        if tags:
            payload["tags"] = list(tags)
        if sso_mode:
            payload["preferredSingleSignOnMode"] = sso_mode
        resp = self.client.post("/servicePrincipals", json=payload)
        principal = ServicePrincipal.from_graph(json_body(resp))
        logger.info(f"[graph] Service principal created for appId={app_id} (id={principal.object_id})")
        return principal

    def update(self, object_id: str, patch: dict) -> None:
        self.client.patch(f"/servicePrincipals/{object_id}", json=patch)

    def delete(self, object_id: str) -> None:
        self.client.delete(f"/servicePrincipals/{object_id}")
        logger.info(f"[graph] Service principal {object_id} deleted")

    def assign_app_role(self, principal_id: str, resource_id: str, role_id: str) -> AppRoleAssignment:
        """Grant an application permission (app role) to a principal.

        Args:
            principal_id: Principal receiving the grant
            resource_id: Principal of the resource application exposing the role
            role_id: App role id

        Returns:
            Created assignment
        """
        payload = {"principalId": principal_id, "resourceId": resource_id, "appRoleId": role_id}
        resp = self.client.post(f"/servicePrincipals/{principal_id}/appRoleAssignments", json=payload)
        return AppRoleAssignment.from_graph(json_body(resp))
