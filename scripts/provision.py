"""Command-line front end for provisioning identity resources.

This module serves as a CLI wrapper around provisioner.core services.
"""
from __future__ import annotations
import argparse
import dataclasses
import json
import logging
import sys
import time
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from provisioner.config import load_settings
from provisioner.config.topology import TopologyError, resolve_topology
from provisioner.core.audit import AuditLog, verify_audit_log
from provisioner.core.cleanup import cleanup
from provisioner.core.graph import DirectoryClient
from provisioner.core.graph.exceptions import GraphAuthenticationError
from provisioner.core.orchestrator import ProvisioningOrchestrator
from provisioner.core.validation import DeploymentValidator
from provisioner.core.validators import validate_environment, validate_prefix


def _print_json(data: dict, output: str | None = None) -> None:
    text = json.dumps(data, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"[provision] Report written to {output}", file=sys.stderr)
    else:
        print(text)


def _build_config(args):
    try:
        cfg = load_settings()
    except RuntimeError as exc:
        print(f"[config] {exc}", file=sys.stderr)
        sys.exit(1)

    changes = {}
    try:
        if getattr(args, "prefix", None):
            changes["application_prefix"] = validate_prefix(args.prefix)
        if getattr(args, "environment", None):
            changes["environment"] = validate_environment(args.environment)
    except ValueError as exc:
        print(f"[config] {exc}", file=sys.stderr)
        sys.exit(2)
    if getattr(args, "topology", None):
        changes["topology_file"] = args.topology
    if getattr(args, "no_secrets", False):
        changes["generate_secrets"] = False
    if getattr(args, "no_cross_permissions", False):
        changes["enable_cross_permissions"] = False
    return dataclasses.replace(cfg, **changes)


def _load_topology(cfg):
    try:
        return resolve_topology(cfg)
    except TopologyError as exc:
        print(f"[topology] {exc}", file=sys.stderr)
        sys.exit(2)


def _connect(cfg, directory_factory):
    """Build and authenticate a directory client; exits 1 on failure."""
    try:
        directory = directory_factory(cfg)
        directory.authenticate()
    except (ValueError, GraphAuthenticationError) as exc:
        print(f"[auth] Error: {exc}", file=sys.stderr)
        sys.exit(1)
    return directory


def main(argv=None, directory_factory=DirectoryClient.from_config) -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Identity resource provisioning helper")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--operator", default="cli",
                        help="Operator identifier for audit logs (default: cli)")

    sub = parser.add_subparsers(dest="cmd")

    def add_topology_args(sp):
        sp.add_argument("--topology", help="YAML topology file (default: built-in topology)")
        sp.add_argument("--prefix", help="Application prefix (1-20 alphanumeric characters)")
        sp.add_argument("--environment", help="dev, test or prod")

    sr = sub.add_parser("run", help="Provision the topology and print the run report")
    add_topology_args(sr)
    sr.add_argument("--no-secrets", action="store_true", help="Do not mint client secrets")
    sr.add_argument("--no-cross-permissions", action="store_true", help="Skip permission wiring")
    sr.add_argument("--output", help="Write the report to this file instead of stdout")

    sv = sub.add_parser("validate", help="Check that the topology exists as declared")
    add_topology_args(sv)

    sc = sub.add_parser("cleanup", help="Delete every application the topology declares")
    add_topology_args(sc)
    sc.add_argument("--yes", action="store_true", help="Confirm deletion")

    st = sub.add_parser("show-topology", help="Print the resolved topology")
    add_topology_args(st)

    sa = sub.add_parser("verify-audit", help="Verify audit log signatures")
    sa.add_argument("--log-file", help="Audit log file (default: AUDIT_LOG_DIR/provisioning-events.jsonl)")

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    cfg = _build_config(args)

    if args.cmd == "verify-audit":
        log_file = args.log_file or (Path(cfg.audit_log_dir) / "provisioning-events.jsonl" if cfg.audit_log_dir else None)
        if log_file is None:
            parser.error("verify-audit requires --log-file or AUDIT_LOG_DIR")
        total, valid = verify_audit_log(log_file, cfg.audit_log_signing_key)
        print(f"[audit] {valid}/{total} events with valid signatures")
        if valid != total:
            sys.exit(1)
        return

    topology = _load_topology(cfg)

    if args.cmd == "show-topology":
        _print_json(topology.to_dict())
        return

    if args.cmd == "cleanup" and not args.yes:
        parser.error("cleanup deletes directory objects; pass --yes to confirm")

    directory = _connect(cfg, directory_factory)

    if args.cmd == "run":
        orchestrator = ProvisioningOrchestrator(
            directory,
            cfg,
            audit=AuditLog.from_config(cfg, operator=args.operator),
            sleep=time.sleep,
        )
        report = orchestrator.run(topology)
        _print_json(report.to_dict(), args.output)
        if not report.success:
            sys.exit(1)
    elif args.cmd == "validate":
        report = DeploymentValidator(directory).validate(topology)
        _print_json(report.to_dict())
        if not report.passed:
            sys.exit(1)
    elif args.cmd == "cleanup":
        result = cleanup(directory, topology, audit=AuditLog.from_config(cfg, operator=args.operator))
        _print_json(result.to_dict())
        if result.errors:
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
