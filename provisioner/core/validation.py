"""Post-deployment validation: check that a topology exists as declared."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field

from .enterprise import profile_for
from .graph.exceptions import GraphError
from .models import ApplicationSpec, Topology

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationCheck:
    name: str
    passed: bool
    detail: str = ""


@dataclass
class ValidationReport:
    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def issues(self) -> int:
        return sum(1 for check in self.checks if not check.passed)

    @property
    def passed(self) -> bool:
        return self.issues == 0

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "issues": self.issues,
            "checks": [
                {"name": check.name, "passed": check.passed, "detail": check.detail}
                for check in self.checks
            ],
        }


class DeploymentValidator:
    """Read-only checks against the directory; never creates or modifies anything."""

    def __init__(self, directory):
        self.directory = directory

    def validate(self, topology: Topology) -> ValidationReport:
        report = ValidationReport()
        for spec in topology.all_specs():
            try:
                self._validate_spec(spec, report)
            except GraphError as exc:
                report.checks.append(ValidationCheck(f"{spec.display_name}: lookup", False, str(exc)))
        logger.info(f"[validate] {len(report.checks)} check(s), {report.issues} issue(s)")
        return report

    def _validate_spec(self, spec: ApplicationSpec, report: ValidationReport) -> None:
        app = self.directory.find_application_by_name(spec.display_name)
        if app is None:
            report.checks.append(ValidationCheck(f"{spec.display_name}: application", False, "not found"))
            return
        report.checks.append(ValidationCheck(f"{spec.display_name}: application", True, f"appId {app.app_id}"))

        principal = self.directory.find_principal_by_app_id(app.app_id)
        if principal is None:
            report.checks.append(ValidationCheck(f"{spec.display_name}: principal", False, "not found"))
            return
        report.checks.append(ValidationCheck(f"{spec.display_name}: principal", True, principal.object_id))

        profile = profile_for(spec.kind)
        if profile is None:
            return
        mode = principal.preferred_sso_mode
        report.checks.append(ValidationCheck(
            f"{spec.display_name}: sso mode",
            mode == profile.sso_mode,
            f"expected {profile.sso_mode}, found {mode or 'none'}",
        ))
        profile_tag = "SAML" if profile.sso_mode == "saml" else "ApplicationProxy"
        report.checks.append(ValidationCheck(
            f"{spec.display_name}: {profile_tag} tag",
            profile_tag in principal.tags,
            ", ".join(principal.tags) or "no tags",
        ))
