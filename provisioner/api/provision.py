"""Provisioning endpoint: run the orchestrator with optional request overrides."""
from __future__ import annotations
import dataclasses
import logging

from flask import Blueprint, current_app, jsonify, request

from provisioner.config.topology import TopologyError, resolve_topology
from provisioner.core.audit import AuditLog
from provisioner.core.orchestrator import ProvisioningOrchestrator
from provisioner.core.validators import (
    parse_bool,
    validate_environment,
    validate_prefix,
    validate_resource_name,
    validate_url,
)

logger = logging.getLogger(__name__)

bp = Blueprint("provision", __name__)

# request field -> topology override key
_NAME_FIELDS = {
    "app1Name": "app1_name",
    "app2Name": "app2_name",
    "app3Name": "app3_name",
    "enterprise1Name": "enterprise1_name",
    "enterprise2Name": "enterprise2_name",
}
_URL_FIELDS = {
    "app1RedirectUri": "app1_redirect_uri",
    "app2RedirectUri": "app2_redirect_uri",
    "app3RedirectUri": "app3_redirect_uri",
    "externalUrl1": "external_url1",
    "internalUrl1": "internal_url1",
    "externalUrl2": "external_url2",
    "internalUrl2": "internal_url2",
}


def parse_overrides(payload: dict) -> tuple[dict, dict, list[dict]]:
    """Split a request body into config changes and topology overrides.

    Returns:
        (config_changes, topology_overrides, validation_errors)
    """
    config_changes: dict = {}
    overrides: dict = {}
    errors: list[dict] = []

    def check(field, func):
        if field not in payload or payload[field] in (None, ""):
            return None
        try:
            return func(payload[field])
        except ValueError as exc:
            errors.append({"field": field, "message": str(exc)})
            return None

    value = check("applicationPrefix", validate_prefix)
    if value is not None:
        config_changes["application_prefix"] = value
    value = check("environment", validate_environment)
    if value is not None:
        config_changes["environment"] = value
    value = check("generateSecrets", lambda raw: parse_bool(raw, "generateSecrets"))
    if value is not None:
        config_changes["generate_secrets"] = value
    value = check("enableCrossPermissions", lambda raw: parse_bool(raw, "enableCrossPermissions"))
    if value is not None:
        config_changes["enable_cross_permissions"] = value

    for field, key in _NAME_FIELDS.items():
        value = check(field, lambda raw, field=field: validate_resource_name(str(raw), field))
        if value is not None:
            overrides[key] = value
    for field, key in _URL_FIELDS.items():
        value = check(field, lambda raw, field=field: validate_url(str(raw), field))
        if value is not None:
            overrides[key] = value

    return config_changes, overrides, errors


@bp.route("/api/provision", methods=["POST"])
def provision():
    """Provision the topology; returns the run report."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return jsonify({"success": False, "error": "Validation failed",
                        "details": [{"field": "", "message": "Body must be a JSON object"}]}), 400

    config_changes, overrides, errors = parse_overrides(payload)
    if errors:
        return jsonify({"success": False, "error": "Validation failed", "details": errors}), 400

    cfg = dataclasses.replace(current_app.config["PROVISIONER_CONFIG"], **config_changes)
    try:
        topology = resolve_topology(cfg, overrides)
    except TopologyError as exc:
        return jsonify({"success": False, "error": "Validation failed",
                        "details": [{"field": "topology", "message": str(exc)}]}), 400

    try:
        directory = current_app.config["DIRECTORY_FACTORY"](cfg)
    except ValueError as exc:
        logger.error(f"[provision] Directory client configuration failed: {exc}")
        return jsonify({"success": False, "error": "Authentication failed", "message": str(exc)}), 500

    orchestrator = ProvisioningOrchestrator(
        directory,
        cfg,
        audit=AuditLog.from_config(cfg, operator="api"),
        sleep=current_app.config["PROVISIONER_SLEEP"],
    )
    report = orchestrator.run(topology)
    status = 200 if report.success else 500
    return jsonify(report.to_dict()), status
