"""Permission grant wiring between provisioned applications."""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from .graph.exceptions import GraphError
from .graph.models import SCOPE, Application, RequiredResourceAccess, ResourceAccess
from .models import PermissionEdge, ProvisionOutcome

logger = logging.getLogger(__name__)


def merge_scope(
    entries: Iterable[RequiredResourceAccess],
    resource_app_id: str,
    scope_id: str,
) -> tuple[list[RequiredResourceAccess], bool]:
    """Add a delegated scope to a requiredResourceAccess list.

    Args:
        entries: Current requiredResourceAccess entries of the source application
        resource_app_id: Application id of the target application
        scope_id: Id of the target's exposed scope

    Returns:
        (updated entries, changed); changed is False when the scope is already declared
    """
    updated: list[RequiredResourceAccess] = []
    found = False
    changed = False
    for entry in entries:
        if entry.resource_app_id == resource_app_id and not found:
            found = True
            if not any(access.id == scope_id for access in entry.resource_access):
                entry = RequiredResourceAccess(
                    resource_app_id=entry.resource_app_id,
                    resource_access=entry.resource_access + (ResourceAccess(scope_id, SCOPE),),
                )
                changed = True
        updated.append(entry)
    if not found:
        updated.append(RequiredResourceAccess(resource_app_id, (ResourceAccess(scope_id, SCOPE),)))
        changed = True
    return updated, changed


class PermissionWiring:
    """Applies PermissionEdges idempotently; every failure is a warning."""

    def __init__(self, directory):
        self.directory = directory

    def wire(self, outcomes: Iterable[ProvisionOutcome], edges: Iterable[PermissionEdge]) -> list[str]:
        """Declare each edge's scope on its source application.

        Args:
            outcomes: Outcomes of resources provisioned in this run
            edges: Permission edges to apply

        Returns:
            Warnings for skipped or failed edges
        """
        by_name = {outcome.name: outcome for outcome in outcomes}
        targets: dict[str, Application] = {}
        warnings: list[str] = []
        for edge in edges:
            try:
                warning = self._apply(edge, by_name, targets)
            except GraphError as exc:
                warning = f"Permission {edge} failed: {exc}"
            if warning:
                logger.warning(f"[wiring] {warning}")
                warnings.append(warning)
        return warnings

    def _apply(self, edge: PermissionEdge, by_name: dict[str, ProvisionOutcome],
               targets: dict[str, Application]) -> Optional[str]:
        source = by_name.get(edge.source)
        target = by_name.get(edge.target)
        missing = [name for name, outcome in ((edge.source, source), (edge.target, target)) if outcome is None]
        if missing:
            return f"Permission {edge} skipped: {', '.join(missing)} not provisioned"

        target_app = targets.get(target.identity.object_id)
        if target_app is None:
            target_app = self.directory.get_application(target.identity.object_id)
            targets[target.identity.object_id] = target_app
        scope = target_app.find_scope(edge.scope)
        if scope is None:
            return f"Permission {edge} skipped: scope '{edge.scope}' not exposed by {target.display_name}"

        source_app = self.directory.get_application(source.identity.object_id)
        updated, changed = merge_scope(source_app.required_resource_access, target.identity.app_id, scope.id)
        if not changed:
            logger.info(f"[wiring] {edge} already declared")
            return None

        self.directory.update_application(
            source.identity.object_id,
            {"requiredResourceAccess": [entry.to_graph() for entry in updated]},
        )
        logger.info(f"[wiring] {edge} declared")
        return None
