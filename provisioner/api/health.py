"""Health check endpoints."""
from datetime import datetime, timezone

from flask import Blueprint, jsonify

from provisioner import __version__

bp = Blueprint("health", __name__)

FEATURES = [
    "Duplicate Detection and Reuse",
    "Configurable Application Names",
    "Custom Redirect URIs",
    "SAML + Proxy Configuration",
    "Cross-Application Permissions",
    "Admin Authorization with Retries",
    "Signed Audit Trail",
]


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check endpoint (can be extended with dependency checks)."""
    return ("ready", 200, {"Content-Type": "text/plain"})


@bp.route("/api/health")
def api_health():
    return jsonify({
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "features": FEATURES,
    })
