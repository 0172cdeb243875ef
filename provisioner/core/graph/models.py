"""Typed views over Graph directory responses.

Graph omits or nulls fields freely; every parser here maps a missing field to
None or an empty tuple instead of failing on access.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

SCOPE = "Scope"
ROLE = "Role"


@dataclass(frozen=True)
class ResourceAccess:
    """One permission reference inside a requiredResourceAccess entry."""
    id: str
    type: str = SCOPE

    @classmethod
    def from_graph(cls, payload: dict) -> "ResourceAccess":
        return cls(id=payload.get("id") or "", type=payload.get("type") or SCOPE)

    def to_graph(self) -> dict:
        return {"id": self.id, "type": self.type}


@dataclass(frozen=True)
class RequiredResourceAccess:
    """Declared permissions an application holds against one resource application."""
    resource_app_id: str
    resource_access: tuple[ResourceAccess, ...] = ()

    @classmethod
    def from_graph(cls, payload: dict) -> "RequiredResourceAccess":
        return cls(
            resource_app_id=payload.get("resourceAppId") or "",
            resource_access=tuple(ResourceAccess.from_graph(item) for item in payload.get("resourceAccess") or []),
        )

    def to_graph(self) -> dict:
        return {
            "resourceAppId": self.resource_app_id,
            "resourceAccess": [access.to_graph() for access in self.resource_access],
        }

    @property
    def role_ids(self) -> tuple[str, ...]:
        return tuple(access.id for access in self.resource_access if access.type == ROLE)


@dataclass(frozen=True)
class PermissionScope:
    """A delegated scope exposed by an application (api.oauth2PermissionScopes)."""
    id: str
    value: str
    is_enabled: bool = True

    @classmethod
    def from_graph(cls, payload: dict) -> "PermissionScope":
        return cls(
            id=payload.get("id") or "",
            value=payload.get("value") or "",
            is_enabled=bool(payload.get("isEnabled", True)),
        )


@dataclass(frozen=True)
class Application:
    """Application object (app registration)."""
    object_id: str
    app_id: str
    display_name: str
    identifier_uris: tuple[str, ...] = ()
    scopes: tuple[PermissionScope, ...] = ()
    required_resource_access: tuple[RequiredResourceAccess, ...] = ()
    web_redirect_uris: tuple[str, ...] = ()
    spa_redirect_uris: tuple[str, ...] = ()

    @classmethod
    def from_graph(cls, payload: dict) -> "Application":
        api = payload.get("api") or {}
        web = payload.get("web") or {}
        spa = payload.get("spa") or {}
        return cls(
            object_id=payload.get("id") or "",
            app_id=payload.get("appId") or "",
            display_name=payload.get("displayName") or "",
            identifier_uris=tuple(payload.get("identifierUris") or ()),
            scopes=tuple(PermissionScope.from_graph(item) for item in api.get("oauth2PermissionScopes") or []),
            required_resource_access=tuple(
                RequiredResourceAccess.from_graph(item) for item in payload.get("requiredResourceAccess") or []
            ),
            web_redirect_uris=tuple(web.get("redirectUris") or ()),
            spa_redirect_uris=tuple(spa.get("redirectUris") or ()),
        )

    def find_scope(self, value: str) -> Optional[PermissionScope]:
        for scope in self.scopes:
            if scope.value == value:
                return scope
        return None


@dataclass(frozen=True)
class ServicePrincipal:
    """Service principal (enterprise application) linked to an application."""
    object_id: str
    app_id: str
    display_name: str = ""
    tags: tuple[str, ...] = ()
    preferred_sso_mode: Optional[str] = None
    login_url: Optional[str] = None

    @classmethod
    def from_graph(cls, payload: dict) -> "ServicePrincipal":
        return cls(
            object_id=payload.get("id") or "",
            app_id=payload.get("appId") or "",
            display_name=payload.get("displayName") or "",
            tags=tuple(payload.get("tags") or ()),
            preferred_sso_mode=payload.get("preferredSingleSignOnMode") or None,
            login_url=payload.get("loginUrl") or None,
        )


@dataclass(frozen=True)
class PasswordCredential:
    """Result of addPassword; secret_text is only returned once by Graph."""
    key_id: str
    secret_text: Optional[str]
    display_name: str = ""
    end_date_time: Optional[str] = None

    @classmethod
    def from_graph(cls, payload: dict) -> "PasswordCredential":
        return cls(
            key_id=payload.get("keyId") or "",
            secret_text=payload.get("secretText") or None,
            display_name=payload.get("displayName") or "",
            end_date_time=payload.get("endDateTime") or None,
        )


@dataclass(frozen=True)
class AppRoleAssignment:
    id: str
    principal_id: str
    resource_id: str
    app_role_id: str
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_graph(cls, payload: dict) -> "AppRoleAssignment":
        return cls(
            id=payload.get("id") or "",
            principal_id=payload.get("principalId") or "",
            resource_id=payload.get("resourceId") or "",
            app_role_id=payload.get("appRoleId") or "",
            raw=dict(payload),
        )


def parse_collection(payload: Any) -> list[dict]:
    """Extract the `value` array from a Graph collection response."""
    if isinstance(payload, dict):
        items = payload.get("value") or []
        return [item for item in items if isinstance(item, dict)]
    return []
