"""Topology loading: the declared applications, enterprise objects and permission edges."""
from __future__ import annotations
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from provisioner.core.graph.models import RequiredResourceAccess
from provisioner.core.models import (
    APPLICATION_KINDS,
    ENTERPRISE_KINDS,
    KIND_PROXY,
    KIND_SAML,
    KIND_SPA,
    KIND_WEB,
    ApplicationSpec,
    PermissionEdge,
    Topology,
)
from provisioner.core.validators import validate_resource_name, validate_url

MICROSOFT_GRAPH_APP_ID = "00000003-0000-0000-c000-000000000000"
USER_READ_SCOPE_ID = "e1fe6dd8-ba31-4d61-89e7-88639da4683d"

DEFAULT_REQUIRED_PERMISSIONS = (
    RequiredResourceAccess.from_graph({
        "resourceAppId": MICROSOFT_GRAPH_APP_ID,
        "resourceAccess": [{"id": USER_READ_SCOPE_ID, "type": "Scope"}],
    }),
)

DEFAULT_EXTERNAL_URL1 = "https://app1-external.company.com"
DEFAULT_EXTERNAL_URL2 = "https://app2-external.company.com"
DEFAULT_INTERNAL_URL1 = "http://internal-app1.company.com"
DEFAULT_INTERNAL_URL2 = "http://internal-app2.company.com"


class TopologyError(ValueError):
    """The topology document is malformed or inconsistent."""
    pass


def _display_name(cfg, name: str) -> str:
    return f"{cfg.application_prefix}-{cfg.environment}-{name}"


def _as_list(value: Any, field: str) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise TopologyError(f"'{field}' must be a list")
    return list(value)


def _parse_permissions(raw: Any, field: str) -> tuple[RequiredResourceAccess, ...]:
    entries = []
    for item in _as_list(raw, field):
        if not isinstance(item, Mapping) or not item.get("resourceAppId"):
            raise TopologyError(f"'{field}' entries need a resourceAppId")
        entry = RequiredResourceAccess.from_graph(dict(item))
        for access in entry.resource_access:
            if not access.id or access.type not in ("Scope", "Role"):
                raise TopologyError(f"'{field}' for {entry.resource_app_id}: each access needs an id and type Scope or Role")
        entries.append(entry)
    return tuple(entries)


def _format(value: str, cfg) -> str:
    return value.format(prefix=cfg.application_prefix, environment=cfg.environment)


def _parse_spec(raw: Any, cfg, kinds: tuple[str, ...], default_kind: str) -> ApplicationSpec:
    if not isinstance(raw, Mapping):
        raise TopologyError("Each resource must be a mapping")
    try:
        name = validate_resource_name(str(raw.get("name", "")), "Resource name")
    except ValueError as exc:
        raise TopologyError(str(exc)) from exc

    kind = raw.get("kind", default_kind)
    if kind not in kinds:
        raise TopologyError(f"{name}: kind must be one of {', '.join(kinds)}")

    display_name = raw.get("displayName") or _display_name(cfg, name)
    try:
        redirect_uris = tuple(
            validate_url(_format(str(uri), cfg), f"{name} redirect URI")
            for uri in _as_list(raw.get("redirectUris"), "redirectUris")
        )
        external_url = raw.get("externalUrl")
        internal_url = raw.get("internalUrl")
        if kind in ENTERPRISE_KINDS:
            if not external_url:
                raise TopologyError(f"{name}: externalUrl is required for {kind}")
            external_url = validate_url(_format(str(external_url), cfg), f"{name} externalUrl")
            if internal_url:
                internal_url = validate_url(_format(str(internal_url), cfg), f"{name} internalUrl")
    except ValueError as exc:
        raise TopologyError(str(exc)) from exc

    if "requiredPermissions" in raw:
        permissions = _parse_permissions(raw.get("requiredPermissions"), f"{name}.requiredPermissions")
    elif kind in APPLICATION_KINDS:
        permissions = DEFAULT_REQUIRED_PERMISSIONS
    else:
        permissions = ()

    return ApplicationSpec(
        name=name,
        display_name=display_name,
        kind=kind,
        scopes=tuple(str(scope) for scope in _as_list(raw.get("scopes"), f"{name}.scopes")),
        redirect_uris=redirect_uris,
        api_provider=bool(raw.get("apiProvider", False)),
        generate_secret=cfg.generate_secrets and bool(raw.get("generateSecret", True)) and kind in APPLICATION_KINDS,
        admin_authorization=bool(raw.get("adminAuthorization", False)),
        required_permissions=permissions,
        external_url=external_url or None,
        internal_url=internal_url or None,
    )


def build_topology(document: Mapping[str, Any], cfg) -> Topology:
    """Validate a topology mapping and build the Topology.

    Raises:
        TopologyError: If the document is malformed or edges reference unknown resources
    """
    if not isinstance(document, Mapping):
        raise TopologyError("Topology document must be a mapping")

    applications = tuple(
        _parse_spec(raw, cfg, APPLICATION_KINDS, KIND_WEB)
        for raw in _as_list(document.get("applications"), "applications")
    )
    enterprise = tuple(
        _parse_spec(raw, cfg, ENTERPRISE_KINDS, KIND_SAML)
        for raw in _as_list(document.get("enterpriseApplications"), "enterpriseApplications")
    )

    seen: set[str] = set()
    for spec in applications + enterprise:
        if spec.name in seen:
            raise TopologyError(f"Duplicate resource name '{spec.name}'")
        seen.add(spec.name)

    edges = []
    for raw in _as_list(document.get("permissionEdges"), "permissionEdges"):
        if not isinstance(raw, Mapping):
            raise TopologyError("Each permission edge must be a mapping")
        edge = PermissionEdge(str(raw.get("source", "")), str(raw.get("target", "")), str(raw.get("scope", "")))
        for endpoint in (edge.source, edge.target):
            if endpoint not in seen:
                raise TopologyError(f"Permission edge {edge} references unknown resource '{endpoint}'")
        if not edge.scope:
            raise TopologyError(f"Permission edge {edge.source} -> {edge.target} needs a scope")
        if edge not in edges:
            edges.append(edge)

    return Topology(applications=applications, enterprise_applications=enterprise, edges=tuple(edges))


def load_topology(path: str | Path, cfg) -> Topology:
    """Parse a YAML topology document.

    Raises:
        TopologyError: If the file cannot be read or is invalid
    """
    path = Path(path)
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TopologyError(f"Cannot read topology file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TopologyError(f"Invalid YAML in {path}: {exc}") from exc
    return build_topology(document or {}, cfg)


def default_topology(cfg, overrides: Optional[Mapping[str, str]] = None) -> Topology:
    """The standard three-application, two-enterprise-object topology.

    Args:
        cfg: ProvisionerConfig (prefix, environment, secrets flag)
        overrides: Optional names and URLs (app1_name, app1_redirect_uri, ...,
            enterprise1_name, enterprise2_name, external_url1, internal_url1, ...)
    """
    o = dict(overrides or {})
    app1 = o.get("app1_name") or "connector-app"
    app2 = o.get("app2_name") or "api-access"
    app3 = o.get("app3_name") or "teams-app"
    base = f"https://{cfg.application_prefix}-{cfg.environment}"

    document = {
        "applications": [
            {
                "name": app1,
                "kind": KIND_WEB,
                "scopes": ["user.read"],
                "redirectUris": [o.get("app1_redirect_uri") or f"{base}-app1.azurewebsites.net/signin-oidc"],
            },
            {
                "name": app2,
                "kind": KIND_WEB,
                "scopes": ["api.access"],
                "apiProvider": True,
                "redirectUris": [o.get("app2_redirect_uri") or f"{base}-app2.azurewebsites.net/signin-oidc"],
            },
            {
                "name": app3,
                "kind": KIND_SPA,
                "scopes": ["resource.manage"],
                "redirectUris": [o.get("app3_redirect_uri") or f"{base}-app3.azurewebsites.net/auth/callback"],
            },
        ],
        "enterpriseApplications": [
            {
                "name": o.get("enterprise1_name") or "saml-app",
                "kind": KIND_SAML,
                "externalUrl": o.get("external_url1") or DEFAULT_EXTERNAL_URL1,
                "internalUrl": o.get("internal_url1") or DEFAULT_INTERNAL_URL1,
            },
            {
                "name": o.get("enterprise2_name") or "chat-app",
                "kind": KIND_PROXY,
                "externalUrl": o.get("external_url2") or DEFAULT_EXTERNAL_URL2,
                "internalUrl": o.get("internal_url2") or DEFAULT_INTERNAL_URL2,
            },
        ],
        "permissionEdges": [
            {"source": app1, "target": app2, "scope": "api.access"},
            {"source": app3, "target": app1, "scope": "user.read"},
            {"source": app3, "target": app2, "scope": "api.access"},
        ],
    }
    return build_topology(document, cfg)


def resolve_topology(cfg, overrides: Optional[Mapping[str, str]] = None) -> Topology:
    """Topology from cfg.topology_file when set, otherwise the default one."""
    if cfg.topology_file:
        return load_topology(cfg.topology_file, cfg)
    return default_topology(cfg, overrides)
