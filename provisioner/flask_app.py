"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints and configuration.
"""
from __future__ import annotations
import time
from typing import Callable, Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from provisioner.config import ProvisionerConfig, load_settings
from provisioner.core.graph import DirectoryClient


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    cfg: Optional[ProvisionerConfig] = None,
    directory_factory: Optional[Callable[[ProvisionerConfig], object]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Configuration (loaded from the environment when omitted)
        directory_factory: Builds a directory client for a run (DirectoryClient.from_config by default)
        sleep: Sleep function passed to the orchestrator
    """
    cfg = cfg or load_settings()

    app = Flask(__name__)
    app.config["PROVISIONER_CONFIG"] = cfg
    app.config["DIRECTORY_FACTORY"] = directory_factory or DirectoryClient.from_config
    app.config["PROVISIONER_SLEEP"] = sleep
    app.json.sort_keys = False

    # Trust X-Forwarded-* headers from proxy (nginx)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    # Register blueprints
    from provisioner.api import errors, health, provision

    app.register_blueprint(health.bp)
    app.register_blueprint(provision.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    app.logger.info(f"[flask_app] Provisioner API ready (prefix={cfg.display_prefix})")
    return app
