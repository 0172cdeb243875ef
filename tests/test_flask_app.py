"""Tests for the Flask factory and the provisioning endpoint."""
import logging

import pytest

from provisioner.flask_app import create_app
from tests.fakes import FakeDirectory, failing_auth_directory, make_config


@pytest.fixture()
def directories():
    """Directories handed out by the factory, with the config each was built for."""
    return []


@pytest.fixture()
def app(directories):
    def factory(cfg):
        directory = FakeDirectory()
        directories.append((cfg, directory))
        return directory

    app = create_app(make_config(), directory_factory=factory, sleep=lambda _: None)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


def test_create_app_registers_blueprints(app):
    assert {"health", "provision"} <= set(app.blueprints)


def test_create_app_leaves_logging_setup_to_entry_points():
    root = logging.getLogger()
    saved = root.handlers
    root.handlers = []
    try:
        create_app(make_config(), directory_factory=lambda cfg: FakeDirectory())
        assert root.handlers == []
    finally:
        root.handlers = saved


def test_provision_default_topology(client, directories):
    response = client.post("/api/provision", json={})
    data = response.get_json()

    assert response.status_code == 200
    assert data["success"] is True
    assert data["summary"]["applicationsCreated"] == 3
    assert data["summary"]["enterpriseCreated"] == 2
    assert [a["name"] for a in data["applications"]] == ["connector-app", "api-access", "teams-app"]
    assert len(directories) == 1


def test_provision_without_body(client):
    response = client.post("/api/provision")
    assert response.status_code == 200


def test_provision_applies_overrides(client, directories):
    response = client.post("/api/provision", json={
        "applicationPrefix": "contoso",
        "environment": "test",
        "generateSecrets": False,
        "enableCrossPermissions": "false",
        "app1Name": "portal",
        "externalUrl2": "https://chat.contoso.com/",
    })
    data = response.get_json()

    assert response.status_code == 200
    assert data["applications"][0]["displayName"] == "contoso-test-portal"
    assert data["applications"][0]["credential"].startswith("Secret generation skipped")
    assert "Cross-application permissions skipped - configure manually if needed" in data["warnings"]
    cfg, directory = directories[0]
    assert cfg.application_prefix == "contoso"
    assert cfg.enable_cross_permissions is False
    chat = directory.application_named("contoso-test-chat-app")
    assert chat["web"]["redirectUris"][0] == "https://chat.contoso.com/auth"


def test_provision_rejects_invalid_fields(client, directories):
    response = client.post("/api/provision", json={
        "applicationPrefix": "bad-prefix!",
        "environment": "staging",
        "externalUrl1": "not a url",
    })
    data = response.get_json()

    assert response.status_code == 400
    assert data["success"] is False
    assert data["error"] == "Validation failed"
    assert {d["field"] for d in data["details"]} == {"applicationPrefix", "environment", "externalUrl1"}
    assert directories == []


def test_provision_rejects_non_object_body(client):
    response = client.post("/api/provision", json=["a"])
    assert response.status_code == 400


def test_provision_authentication_failure_returns_500():
    app = create_app(make_config(), directory_factory=lambda cfg: failing_auth_directory(), sleep=lambda _: None)

    with app.test_client() as client:
        response = client.post("/api/provision", json={})
    data = response.get_json()

    assert response.status_code == 500
    assert data["success"] is False
    assert data["errors"][0].startswith("Authentication failed")


def test_provision_missing_secret_returns_500():
    def factory(cfg):
        raise ValueError("AZURE_CLIENT_SECRET not found.")

    app = create_app(make_config(), directory_factory=factory)
    with app.test_client() as client:
        response = client.post("/api/provision", json={})

    assert response.status_code == 500
    assert response.get_json()["message"] == "AZURE_CLIENT_SECRET not found."


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.get_json()["error"] == "Not Found"


def test_wrong_method_returns_json_405(client):
    response = client.get("/api/provision")

    assert response.status_code == 405
    assert response.get_json()["success"] is False


def test_report_keys_keep_declaration_order(client):
    data = client.post("/api/provision", json={}).get_json()
    assert list(data)[:3] == ["requestId", "success", "cancelled"]
