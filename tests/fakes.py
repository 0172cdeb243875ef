"""In-memory stand-ins for the directory used across the test suite."""
from __future__ import annotations
import copy
import itertools
from typing import Iterable, Optional

from provisioner.config.settings import ProvisionerConfig
from provisioner.core.graph.exceptions import GraphAPIError, GraphAuthenticationError
from provisioner.core.graph.models import Application, PasswordCredential, ServicePrincipal


def make_config(**overrides) -> ProvisionerConfig:
    """ProvisionerConfig with every wait set to zero."""
    base = dict(
        tenant_id="11111111-1111-1111-1111-111111111111",
        client_id="22222222-2222-2222-2222-222222222222",
        client_secret="test-secret",
        environment="dev",
        application_prefix="myapp",
        generate_secrets=True,
        enable_cross_permissions=True,
        principal_create_attempts=5,
        principal_create_delay=0,
        authorization_initial_delay=0,
        authorization_attempts=3,
        authorization_retry_delay=0,
        grant_spacing_delay=0,
    )
    base.update(overrides)
    return ProvisionerConfig(**base)


def api_error(status: int, message: str = "error", code: str = "", endpoint: str = "/fake") -> GraphAPIError:
    return GraphAPIError(status, message, endpoint, code=code)


class FakeDirectory:
    """DirectoryClient look-alike backed by dictionaries.

    `fail(method, *errors)` queues exceptions raised by the next calls of
    `method`; `calls` records every method invocation in order.
    """

    def __init__(self):
        self.applications: dict[str, dict] = {}
        self.principals: dict[str, dict] = {}
        self.assignments: list[dict] = []
        self.credentials: list[dict] = []
        self.deleted: list[str] = []
        self.calls: list[str] = []
        self.failures: dict[str, list[BaseException]] = {}
        self.auth_error: Optional[BaseException] = None
        self.authenticated = False
        self._ids = itertools.count(1)

    # ─────────────────────────────────────────────────────────────────────────
    # Test helpers
    # ─────────────────────────────────────────────────────────────────────────
    def fail(self, method: str, *errors: BaseException) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        queue = self.failures.get(method)
        if queue:
            raise queue.pop(0)

    def count(self, method: str) -> int:
        return self.calls.count(method)

    def add_application(self, display_name: str, scopes: Iterable[str] = (), **fields) -> Application:
        """Seed an existing application (no principal)."""
        n = next(self._ids)
        payload = {
            "id": f"obj-{n}",
            "appId": f"app-{n}",
            "displayName": display_name,
            "api": {"oauth2PermissionScopes": [
                {"id": f"scope-{n}-{value}", "value": value, "isEnabled": True} for value in scopes
            ]},
            "requiredResourceAccess": [],
        }
        payload.update(fields)
        self.applications[payload["id"]] = payload
        return Application.from_graph(payload)

    def add_principal(self, app_id: str, tags: Iterable[str] = (), sso_mode: Optional[str] = None) -> ServicePrincipal:
        n = next(self._ids)
        payload = {"id": f"sp-{n}", "appId": app_id, "tags": list(tags)}
        if sso_mode:
            payload["preferredSingleSignOnMode"] = sso_mode
        self.principals[payload["id"]] = payload
        return ServicePrincipal.from_graph(payload)

    def application_named(self, display_name: str) -> dict:
        return next(app for app in self.applications.values() if app["displayName"] == display_name)

    def principal_for_app(self, app_id: str) -> Optional[dict]:
        return next((sp for sp in self.principals.values() if sp["appId"] == app_id), None)

    # ─────────────────────────────────────────────────────────────────────────
    # DirectoryClient surface
    # ─────────────────────────────────────────────────────────────────────────
    def authenticate(self) -> None:
        self.calls.append("authenticate")
        if self.auth_error is not None:
            raise self.auth_error
        self.authenticated = True

    def find_applications_by_name(self, name: str) -> list[Application]:
        self._enter("find_applications_by_name")
        return [Application.from_graph(app) for app in self.applications.values() if app["displayName"] == name]

    def find_application_by_name(self, name: str) -> Optional[Application]:
        matches = self.find_applications_by_name(name)
        return matches[0] if matches else None

    def get_application(self, object_id: str) -> Application:
        self._enter("get_application")
        if object_id not in self.applications:
            raise api_error(404, "Resource does not exist", "Request_ResourceNotFound", f"/applications/{object_id}")
        return Application.from_graph(copy.deepcopy(self.applications[object_id]))

    def create_application(self, payload: dict) -> Application:
        self._enter("create_application")
        n = next(self._ids)
        app = copy.deepcopy(payload)
        app["id"] = f"obj-{n}"
        app["appId"] = f"app-{n}"
        self.applications[app["id"]] = app
        return Application.from_graph(app)

    def update_application(self, object_id: str, patch: dict) -> None:
        self._enter("update_application")
        if object_id not in self.applications:
            raise api_error(404, "Resource does not exist", "Request_ResourceNotFound")
        self.applications[object_id].update(copy.deepcopy(patch))

    def create_credential(self, object_id: str, description: str, expiry) -> PasswordCredential:
        self._enter("create_credential")
        n = next(self._ids)
        self.credentials.append({"object_id": object_id, "description": description, "expiry": expiry})
        return PasswordCredential(key_id=f"key-{n}", secret_text=f"secret-{n}", display_name=description)

    def delete_application(self, object_id: str) -> None:
        self._enter("delete_application")
        self.applications.pop(object_id, None)
        self.deleted.append(object_id)

    def find_principal_by_app_id(self, app_id: str) -> Optional[ServicePrincipal]:
        self._enter("find_principal_by_app_id")
        principal = self.principal_for_app(app_id)
        return ServicePrincipal.from_graph(principal) if principal else None

    def create_principal(self, app_id: str, tags=None, sso_mode=None) -> ServicePrincipal:
        self._enter("create_principal")
        if not any(app["appId"] == app_id for app in self.applications.values()):
            raise api_error(400, f"The appId '{app_id}' of the service principal does not reference a valid application object.")
        if self.principal_for_app(app_id) is not None:
            raise api_error(409, "Another object with the same value for property appId already exists.",
                            "Request_MultipleObjectsWithSameKeyValue")
        return self.add_principal(app_id, tags or (), sso_mode)

    def update_principal(self, object_id: str, patch: dict) -> None:
        self._enter("update_principal")
        self.principals[object_id].update(copy.deepcopy(patch))

    def create_role_assignment(self, principal_id: str, resource_id: str, role_id: str) -> dict:
        self._enter("create_role_assignment")
        for existing in self.assignments:
            if (existing["principalId"], existing["resourceId"], existing["appRoleId"]) == (principal_id, resource_id, role_id):
                raise api_error(400, "Permission being assigned already exists on the object", "Request_BadRequest")
        assignment = {
            "id": f"assignment-{next(self._ids)}",
            "principalId": principal_id,
            "resourceId": resource_id,
            "appRoleId": role_id,
        }
        self.assignments.append(assignment)
        return assignment

    def delete_principal(self, object_id: str) -> None:
        self._enter("delete_principal")
        self.principals.pop(object_id, None)
        self.deleted.append(object_id)


def failing_auth_directory(message: str = "AADSTS7000215: Invalid client secret provided.") -> FakeDirectory:
    directory = FakeDirectory()
    directory.auth_error = GraphAuthenticationError(message)
    return directory


class StubResponse:
    """Minimal requests.Response stand-in."""

    def __init__(self, status_code: int = 200, payload=None, url: str = "https://graph.test/v1.0/fake", text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.url = url
        self.text = text or ("" if payload is None else str(payload))

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload
