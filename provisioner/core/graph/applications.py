"""Application object (app registration) operations."""
from __future__ import annotations
import logging
from datetime import datetime, timezone
from typing import Optional

from .client import GraphClient, json_body
from .models import Application, PasswordCredential, parse_collection

logger = logging.getLogger(__name__)


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData $filter expression."""
    return "'" + value.replace("'", "''") + "'"


class ApplicationService:
    """Service for managing application objects."""

    def __init__(self, client: GraphClient):
        """Initialize application service.

        Args:
            client: Authenticated Graph client
        """
        self.client = client

    def find_by_name(self, display_name: str) -> list[Application]:
        """Return every application whose display name matches exactly.

        Args:
            display_name: Display name to search for

        Returns:
            Matching applications in directory order (possibly empty)
        """
        resp = self.client.get(
            "/applications",
            params={"$filter": f"displayName eq {odata_quote(display_name)}"},
        )
        apps = [Application.from_graph(item) for item in parse_collection(json_body(resp))]
        # $filter eq is case-insensitive on Graph; keep exact matches only
        return [app for app in apps if app.display_name == display_name]

    def get(self, object_id: str) -> Application:
        resp = self.client.get(f"/applications/{object_id}")
        return Application.from_graph(json_body(resp))

    def create(self, payload: dict) -> Application:
        """Create an application from a Graph application payload."""
        resp = self.client.post("/applications", json=payload)
        app = Application.from_graph(json_body(resp))
        logger.info(f"[graph] Application '{app.display_name}' created (appId={app.app_id})")
        return app

    def update(self, object_id: str, patch: dict) -> None:
        self.client.patch(f"/applications/{object_id}", json=patch)

    def add_password(self, object_id: str, description: str, expiry: datetime) -> PasswordCredential:
        """Mint a new client secret on the application.

        Args:
            object_id: Application object id
            description: Display name for the credential
            expiry: Credential expiry (converted to UTC)

        Returns:
            PasswordCredential carrying the one-time secret text
        """
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        payload = {
            "passwordCredential": {
                "displayName": description,
                "endDateTime": expiry.astimezone(timezone.utc).isoformat().replace("+00:00", "Z"),
            }
        }
        resp = self.client.post(f"/applications/{object_id}/addPassword", json=payload)
        return PasswordCredential.from_graph(json_body(resp))

    def delete(self, object_id: str) -> None:
        self.client.delete(f"/applications/{object_id}")
        logger.info(f"[graph] Application {object_id} deleted")

    def find_first(self, display_name: str) -> Optional[Application]:
        matches = self.find_by_name(display_name)
        return matches[0] if matches else None
