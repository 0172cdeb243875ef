"""Run report: aggregated outcomes, errors and warnings of one provisioning run."""
from __future__ import annotations
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from .models import ProvisionOutcome


@dataclass(frozen=True)
class RunSummary:
    applications_created: int = 0
    applications_adopted: int = 0
    enterprise_created: int = 0
    enterprise_adopted: int = 0
    authorizations_granted: int = 0
    errors: int = 0
    warnings: int = 0

    def to_dict(self) -> dict:
        return {
            "applicationsCreated": self.applications_created,
            "applicationsAdopted": self.applications_adopted,
            "enterpriseCreated": self.enterprise_created,
            "enterpriseAdopted": self.enterprise_adopted,
            "authorizationsGranted": self.authorizations_granted,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass(frozen=True)
class RunReport:
    """Final, immutable result of a run.

    `success` is False only when the run never started (authentication
    failure); partial failures are reported through `errors`.
    """
    request_id: str
    success: bool
    cancelled: bool
    duration_ms: int
    applications: tuple[ProvisionOutcome, ...]
    enterprise_applications: tuple[ProvisionOutcome, ...]
    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    summary: RunSummary

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "success": self.success,
            "cancelled": self.cancelled,
            "durationMs": self.duration_ms,
            "applications": [outcome.to_dict() for outcome in self.applications],
            "enterpriseApplications": [outcome.to_dict() for outcome in self.enterprise_applications],
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "summary": self.summary.to_dict(),
        }


class RunReportBuilder:
    """Collects outcomes while the orchestrator runs; `finalize()` freezes them once."""

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or str(uuid.uuid4())
        self.applications: list[ProvisionOutcome] = []
        self.enterprise_applications: list[ProvisionOutcome] = []
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.cancelled = False
        self._started = time.monotonic()
        self._report: Optional[RunReport] = None

    def add_application(self, outcome: ProvisionOutcome) -> None:
        self.applications.append(outcome)
        self.warnings.extend(outcome.warnings)

    def add_enterprise(self, outcome: ProvisionOutcome) -> None:
        self.enterprise_applications.append(outcome)
        self.warnings.extend(outcome.warnings)

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def add_warnings(self, messages) -> None:
        self.warnings.extend(messages)

    def mark_cancelled(self, next_resource: str) -> None:
        self.cancelled = True
        self.warnings.append(f"Run cancelled before '{next_resource}'; remaining resources skipped")

    def finalize(self, success: bool = True) -> RunReport:
        """Freeze the collected data; later calls return the same report."""
        if self._report is not None:
            return self._report
        summary = RunSummary(
            applications_created=sum(1 for o in self.applications if o.created),
            applications_adopted=sum(1 for o in self.applications if not o.created),
            enterprise_created=sum(1 for o in self.enterprise_applications if o.created),
            enterprise_adopted=sum(1 for o in self.enterprise_applications if not o.created),
            authorizations_granted=sum(1 for o in self.applications if o.authorization_granted),
            errors=len(self.errors),
            warnings=len(self.warnings),
        )
        self._report = RunReport(
            request_id=self.request_id,
            success=success,
            cancelled=self.cancelled,
            duration_ms=int((time.monotonic() - self._started) * 1000),
            applications=tuple(self.applications),
            enterprise_applications=tuple(self.enterprise_applications),
            errors=tuple(self.errors),
            warnings=tuple(self.warnings),
            summary=summary,
        )
        return self._report
