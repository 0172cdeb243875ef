"""Delete every object a topology declares (principal first, then application)."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Optional

from .audit import AuditLog
from .graph.exceptions import GraphError
from .models import Topology

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    deleted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"deleted": self.deleted, "skipped": self.skipped, "errors": self.errors}


def cleanup(directory, topology: Topology, audit: Optional[AuditLog] = None) -> CleanupResult:
    """Remove the topology's applications and their principals.

    Args:
        directory: DirectoryClient (or compatible)
        topology: Declared resources; matched by display name
        audit: Optional audit trail receiving one event per deletion

    Returns:
        CleanupResult listing deleted, skipped (not found) and failed names
    """
    result = CleanupResult()
    for spec in topology.all_specs():
        name = spec.display_name
        try:
            matches = directory.find_applications_by_name(name)
            if not matches:
                logger.info(f"[cleanup] '{name}' not found; skipping")
                result.skipped.append(name)
                continue
            for app in matches:
                principal = directory.find_principal_by_app_id(app.app_id)
                if principal is not None:
                    directory.delete_principal(principal.object_id)
                directory.delete_application(app.object_id)
                if audit is not None:
                    audit.safe_log_event(
                        "cleanup_deleted",
                        name,
                        details={"object_id": app.object_id, "app_id": app.app_id},
                    )
            logger.info(f"[cleanup] '{name}' deleted")
            result.deleted.append(name)
        except GraphError as exc:
            logger.error(f"[cleanup] Failed to delete '{name}': {exc}")
            result.errors.append(f"{name}: {exc}")
    return result
