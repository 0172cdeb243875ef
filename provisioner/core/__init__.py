"""Core Provisioning Logic Module

This module provides the provisioning decision logic for identity resources,
independent of HTTP frameworks (Flask) and of the command-line front end.

Module Structure:
    - graph/            : Low-level Microsoft Graph client and directory facade
    - resolver.py       : Find existing applications by display name (cached per run)
    - applications.py   : Create or adopt web/single-page applications
    - enterprise.py     : Create or adopt SAML and application-proxy enterprise objects
    - permissions.py    : Cross-application permission wiring
    - authorization.py  : Admin authorization (app role assignments)
    - retry.py          : Bounded retry helper (tenacity)
    - report.py         : Run report builder and frozen report
    - orchestrator.py   : Sequences one provisioning run
    - validation.py     : Post-deployment checks
    - cleanup.py        : Delete a declared topology
    - audit.py          : Signed JSONL audit trail
    - validators.py     : Input validation

Usage Pattern:
    Import explicitly when needed:
        from provisioner.core.orchestrator import ProvisioningOrchestrator
        from provisioner.core.graph import DirectoryClient
"""
