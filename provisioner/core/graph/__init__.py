"""Microsoft Graph directory client library.

Architecture:
- client.py: HTTP client with client-credentials authentication and token refresh
- applications.py: Application object operations (create, patch, addPassword)
- principals.py: Service principal and app role assignment operations
- directory.py: DirectoryClient facade used by the provisioning components
- models.py: Typed views over Graph responses
- exceptions.py: Typed exceptions and error classification

Usage:
    from provisioner.core.graph import GraphClient, DirectoryClient

    client = GraphClient(tenant_id, client_id, client_secret)
    client.authenticate()

    directory = DirectoryClient(client)
    app = directory.find_application_by_name("myapp-dev-connector-app")
"""
from .client import (
    GraphClient,
    create_client_with_token,
    GRAPH_BASE_URL,
    GRAPH_SCOPE,
    REQUEST_TIMEOUT,
)
from .exceptions import (
    GraphError,
    GraphAPIError,
    GraphTransportError,
    GraphAuthenticationError,
    is_conflict,
    is_transient,
    is_not_yet_visible,
)
from .models import (
    SCOPE,
    ROLE,
    Application,
    ServicePrincipal,
    PermissionScope,
    RequiredResourceAccess,
    ResourceAccess,
    PasswordCredential,
    AppRoleAssignment,
)
from .applications import ApplicationService
from .principals import ServicePrincipalService
from .directory import DirectoryClient

__all__ = [
    "GraphClient",
    "create_client_with_token",
    "GRAPH_BASE_URL",
    "GRAPH_SCOPE",
    "REQUEST_TIMEOUT",
    "GraphError",
    "GraphAPIError",
    "GraphTransportError",
    "GraphAuthenticationError",
    "is_conflict",
    "is_transient",
    "is_not_yet_visible",
    "SCOPE",
    "ROLE",
    "Application",
    "ServicePrincipal",
    "PermissionScope",
    "RequiredResourceAccess",
    "ResourceAccess",
    "PasswordCredential",
    "AppRoleAssignment",
    "ApplicationService",
    "ServicePrincipalService",
    "DirectoryClient",
]
