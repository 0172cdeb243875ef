"""Domain types for the provisioning run."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from .graph.models import RequiredResourceAccess

KIND_WEB = "web"
KIND_SPA = "single-page"
KIND_SAML = "enterprise-saml"
KIND_PROXY = "enterprise-proxy"

APPLICATION_KINDS = (KIND_WEB, KIND_SPA)
ENTERPRISE_KINDS = (KIND_SAML, KIND_PROXY)

STATUS_CREATED = "created"
STATUS_ADOPTED = "adopted"


@dataclass(frozen=True)
class ApplicationSpec:
    """Desired state of one application or enterprise object.

    `name` is the short key used by permission edges; `display_name` is the
    natural key in the directory.
    """
    name: str
    display_name: str
    kind: str = KIND_WEB
    scopes: tuple[str, ...] = ()
    redirect_uris: tuple[str, ...] = ()
    api_provider: bool = False
    generate_secret: bool = True
    admin_authorization: bool = False
    required_permissions: tuple[RequiredResourceAccess, ...] = ()
    external_url: Optional[str] = None
    internal_url: Optional[str] = None

    @property
    def is_enterprise(self) -> bool:
        return self.kind in ENTERPRISE_KINDS

    @property
    def has_role_permissions(self) -> bool:
        return any(entry.role_ids for entry in self.required_permissions)


@dataclass(frozen=True)
class ResourceIdentity:
    object_id: str
    app_id: str
    principal_id: Optional[str] = None

    def with_principal(self, principal_id: str) -> "ResourceIdentity":
        return ResourceIdentity(self.object_id, self.app_id, principal_id)


@dataclass(frozen=True)
class ProvisionOutcome:
    """Result of provisioning one resource."""
    name: str
    display_name: str
    kind: str
    identity: ResourceIdentity
    status: str
    credential: str
    authorization_granted: bool = False
    warnings: tuple[str, ...] = ()
    sso_mode: Optional[str] = None
    tags: tuple[str, ...] = ()
    identifier_uris: tuple[str, ...] = ()

    @property
    def created(self) -> bool:
        return self.status == STATUS_CREATED

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "kind": self.kind,
            "status": self.status,
            "objectId": self.identity.object_id,
            "appId": self.identity.app_id,
            "principalId": self.identity.principal_id,
            "credential": self.credential,
            "authorizationGranted": self.authorization_granted,
            "warnings": list(self.warnings),
            "ssoMode": self.sso_mode,
            "tags": list(self.tags),
            "identifierUris": list(self.identifier_uris),
        }


@dataclass(frozen=True)
class PermissionEdge:
    """source application requests delegated `scope` on target application."""
    source: str
    target: str
    scope: str

    def __str__(self) -> str:
        return f"{self.source} -> {self.target} ({self.scope})"


@dataclass(frozen=True)
class Topology:
    """Everything one run provisions, in order."""
    applications: tuple[ApplicationSpec, ...] = ()
    enterprise_applications: tuple[ApplicationSpec, ...] = ()
    edges: tuple[PermissionEdge, ...] = ()

    def all_specs(self) -> tuple[ApplicationSpec, ...]:
        return self.applications + self.enterprise_applications

    def to_dict(self) -> dict:
        def _spec(spec: ApplicationSpec) -> dict:
            data = {
                "name": spec.name,
                "displayName": spec.display_name,
                "kind": spec.kind,
            }
            if spec.scopes:
                data["scopes"] = list(spec.scopes)
            if spec.redirect_uris:
                data["redirectUris"] = list(spec.redirect_uris)
            if spec.api_provider:
                data["apiProvider"] = True
            if spec.is_enterprise:
                data["externalUrl"] = spec.external_url
                data["internalUrl"] = spec.internal_url
            else:
                data["generateSecret"] = spec.generate_secret
            if spec.admin_authorization:
                data["adminAuthorization"] = True
            if spec.required_permissions:
                data["requiredPermissions"] = [entry.to_graph() for entry in spec.required_permissions]
            return data

        return {
            "applications": [_spec(spec) for spec in self.applications],
            "enterpriseApplications": [_spec(spec) for spec in self.enterprise_applications],
            "permissionEdges": [
                {"source": edge.source, "target": edge.target, "scope": edge.scope} for edge in self.edges
            ],
        }


__all__ = [
    "KIND_WEB",
    "KIND_SPA",
    "KIND_SAML",
    "KIND_PROXY",
    "APPLICATION_KINDS",
    "ENTERPRISE_KINDS",
    "STATUS_CREATED",
    "STATUS_ADOPTED",
    "ApplicationSpec",
    "ResourceIdentity",
    "ProvisionOutcome",
    "PermissionEdge",
    "Topology",
]
