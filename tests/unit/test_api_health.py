"""Tests for health check endpoints."""
import pytest
from flask import Flask

from provisioner import __version__
from provisioner.api.health import bp as health_bp


@pytest.fixture()
def client():
    app = Flask(__name__)
    app.register_blueprint(health_bp)
    with app.test_client() as client:
        yield client


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.data == b"ok"
    assert response.content_type.startswith("text/plain")


def test_readiness_check(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.data == b"ready"


def test_api_health_reports_version_and_features(client):
    response = client.get("/api/health")
    data = response.get_json()

    assert response.status_code == 200
    assert data["status"] == "healthy"
    assert data["version"] == __version__
    assert "Duplicate Detection and Reuse" in data["features"]
    assert data["timestamp"]
