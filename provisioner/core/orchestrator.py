"""Provisioning orchestrator: sequences resolver, provisioners, wiring and reporting."""
from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional

from .applications import ApplicationProvisioner
from .audit import AuditLog
from .authorization import AdminAuthorizer
from .enterprise import EnterpriseProvisioner
from .errors import ProvisioningError
from .graph.exceptions import GraphAuthenticationError, GraphError
from .models import KIND_PROXY, KIND_SAML, ApplicationSpec, ProvisionOutcome, Topology
from .permissions import PermissionWiring
from .report import RunReport, RunReportBuilder
from .resolver import ResourceResolver

logger = logging.getLogger(__name__)

PROXY_CONNECTOR_WARNING = "Application Proxy connectors must be installed manually"
SAML_CERTIFICATE_WARNING = "SAML certificates need to be configured manually in the Azure portal"
CROSS_PERMISSIONS_SKIPPED = "Cross-application permissions skipped - configure manually if needed"


class ProvisioningOrchestrator:
    """Runs one provisioning pass over a Topology.

    Resources are processed strictly in order: applications, then enterprise
    objects, then permission wiring. A failed resource is recorded as an
    error and the run moves on; only an authentication failure ends the run
    before it starts.
    """

    def __init__(
        self,
        directory,
        cfg,
        *,
        audit: Optional[AuditLog] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize orchestrator.

        Args:
            directory: DirectoryClient (or compatible)
            cfg: ProvisionerConfig
            audit: Optional audit trail for created/adopted/failed resources
            sleep: Sleep function used by every wait (injectable for tests)
        """
        self.directory = directory
        self.cfg = cfg
        self.audit = audit
        self.sleep = sleep

    def run(
        self,
        topology: Topology,
        *,
        request_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> RunReport:
        """Provision every resource in `topology` and return the final report.

        Args:
            topology: Resources and permission edges to provision
            request_id: Identifier for the run (generated when omitted)
            cancel_event: Checked before each resource and before wiring

        Returns:
            RunReport (success=False only when authentication failed)
        """
        builder = RunReportBuilder(request_id)
        logger.info(f"[run] Starting run {builder.request_id}: "
                    f"{len(topology.applications)} application(s), "
                    f"{len(topology.enterprise_applications)} enterprise application(s), "
                    f"{len(topology.edges)} permission edge(s)")

        try:
            self.directory.authenticate()
        except GraphAuthenticationError as exc:
            logger.error(f"[run] Authentication failed: {exc}")
            builder.add_error(f"Authentication failed: {exc}")
            return builder.finalize(success=False)

        resolver = ResourceResolver(self.directory)
        authorizer = AdminAuthorizer(self.directory, self.cfg, sleep=self.sleep)
        applications = ApplicationProvisioner(self.directory, resolver, authorizer, self.cfg, sleep=self.sleep)
        enterprise = EnterpriseProvisioner(self.directory, resolver, self.cfg, sleep=self.sleep)

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        for spec in topology.applications:
            if cancelled():
                builder.mark_cancelled(spec.display_name)
                break
            outcome = self._provision_one(applications.provision, spec, builder)
            if outcome is not None:
                builder.add_application(outcome)

        if not builder.cancelled:
            for spec in topology.enterprise_applications:
                if cancelled():
                    builder.mark_cancelled(spec.display_name)
                    break
                outcome = self._provision_one(enterprise.provision, spec, builder)
                if outcome is not None:
                    builder.add_enterprise(outcome)

        if not builder.cancelled and topology.edges:
            if cancelled():
                builder.mark_cancelled("permission wiring")
            elif self.cfg.enable_cross_permissions:
                wiring = PermissionWiring(self.directory)
                builder.add_warnings(wiring.wire(builder.applications + builder.enterprise_applications, topology.edges))
            else:
                builder.add_warning(CROSS_PERMISSIONS_SKIPPED)

        builder.add_warnings(resolver.warnings)
        kinds = {spec.kind for spec in topology.enterprise_applications}
        if KIND_PROXY in kinds:
            builder.add_warning(PROXY_CONNECTOR_WARNING)
        if KIND_SAML in kinds:
            builder.add_warning(SAML_CERTIFICATE_WARNING)

        report = builder.finalize(success=True)
        summary = report.summary
        logger.info(f"[run] Run {report.request_id} finished in {report.duration_ms}ms: "
                    f"{summary.applications_created} created, {summary.applications_adopted} adopted, "
                    f"{summary.enterprise_created} enterprise created, {summary.enterprise_adopted} enterprise adopted, "
                    f"{summary.errors} error(s), {summary.warnings} warning(s)")
        return report

    def _provision_one(
        self,
        provision: Callable[[ApplicationSpec], ProvisionOutcome],
        spec: ApplicationSpec,
        builder: RunReportBuilder,
    ) -> Optional[ProvisionOutcome]:
        try:
            outcome = provision(spec)
        except ProvisioningError as exc:
            message = str(exc)
        except GraphError as exc:
            message = f"{spec.display_name}: {exc}"
        else:
            self._audit_outcome(outcome, builder.request_id)
            return outcome

        logger.error(f"[run] {message}")
        builder.add_error(message)
        if self.audit is not None:
            self.audit.safe_log_event(
                "resource_failed",
                spec.display_name,
                request_id=builder.request_id,
                details={"kind": spec.kind, "error": message},
                success=False,
            )
        return None

    def _audit_outcome(self, outcome: ProvisionOutcome, request_id: str) -> None:
        if self.audit is None:
            return
        prefix = "enterprise" if outcome.kind in (KIND_SAML, KIND_PROXY) else "application"
        self.audit.safe_log_event(
            f"{prefix}_{outcome.status}",
            outcome.display_name,
            request_id=request_id,
            details={
                "kind": outcome.kind,
                "object_id": outcome.identity.object_id,
                "app_id": outcome.identity.app_id,
                "principal_id": outcome.identity.principal_id,
                "sso_mode": outcome.sso_mode,
                "authorization_granted": outcome.authorization_granted,
            },
        )
