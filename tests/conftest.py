"""Pytest shared fixtures."""
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from tests.fakes import FakeDirectory, make_config


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from hitting Microsoft Graph.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture. Tests that
    need HTTP responses patch requests.* themselves.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _guard(method):
        def _stub(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _stub

    for method in ("get", "post", "patch", "delete"):
        monkeypatch.setattr(requests, method, _guard(method.upper()))


@pytest.fixture(autouse=True)
def _isolate_run_secrets(monkeypatch, tmp_path):
    """Keep a host /run/secrets mount out of settings resolution."""
    from provisioner.config import settings

    real_path = settings.Path
    empty = tmp_path / "run-secrets"
    empty.mkdir()

    def fake_path(target, *rest):
        if str(target) == "/run/secrets" and not rest:
            return empty
        return real_path(target, *rest)

    monkeypatch.setattr(settings, "Path", fake_path)
    return empty


# ─────────────────────────────────────────────────────────────────────────────
# Directory + config
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def directory():
    return FakeDirectory()


@pytest.fixture()
def cfg():
    return make_config()


@pytest.fixture()
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []

    def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a real tenant)"
    )
