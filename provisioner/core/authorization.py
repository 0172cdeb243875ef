"""Admin authorization: grant application (role-type) permissions to a principal."""
from __future__ import annotations
import logging
import time
from typing import Callable, Iterable, Optional

from .graph.exceptions import GraphError, is_conflict, is_transient
from .graph.models import RequiredResourceAccess
from .retry import retry_bounded

logger = logging.getLogger(__name__)


class AdminAuthorizer:
    """Creates app role assignments for declared role permissions.

    Newly created principals are not immediately ready to receive grants, so a
    single fixed wait precedes the first attempt. Each grant is retried on
    transient failures; an assignment that already exists counts as granted.
    A failed grant never stops the remaining ones.
    """

    def __init__(self, directory, cfg, sleep: Callable[[float], None] = time.sleep):
        """Initialize authorizer.

        Args:
            directory: DirectoryClient (or compatible)
            cfg: ProvisionerConfig (delays and attempt budget)
            sleep: Sleep function (injectable for tests)
        """
        self.directory = directory
        self.cfg = cfg
        self.sleep = sleep
        self.warnings: list[str] = []

    def authorize(self, principal_id: str, declared_permissions: Iterable[RequiredResourceAccess]) -> bool:
        """Grant every role-type permission in `declared_permissions`.

        Args:
            principal_id: Principal receiving the grants
            declared_permissions: requiredResourceAccess entries of the application

        Returns:
            True if at least one permission was granted or already present
        """
        self.warnings = []
        grants = [
            (entry.resource_app_id, role_id)
            for entry in declared_permissions
            for role_id in entry.role_ids
        ]
        if not grants:
            logger.debug(f"[authz] No role permissions declared for principal {principal_id}")
            return False

        self.sleep(self.cfg.authorization_initial_delay)

        resource_principals: dict[str, Optional[str]] = {}
        granted = False
        for index, (resource_app_id, role_id) in enumerate(grants):
            if index:
                self.sleep(self.cfg.grant_spacing_delay)

            if resource_app_id not in resource_principals:
                resource_principals[resource_app_id] = self._resource_principal_id(resource_app_id)
            resource_id = resource_principals[resource_app_id]
            if not resource_id:
                continue

            result = retry_bounded(
                lambda: self.directory.create_role_assignment(principal_id, resource_id, role_id),
                attempts=self.cfg.authorization_attempts,
                delay=self.cfg.authorization_retry_delay,
                retry_on=is_transient,
                sleep=self.sleep,
                label=f"grant role {role_id}",
            )
            if result.succeeded:
                logger.info(f"[authz] Granted role {role_id} on {resource_app_id} to {principal_id}")
                granted = True
            elif is_conflict(result.last_error):
                logger.info(f"[authz] Role {role_id} on {resource_app_id} already granted to {principal_id}")
                granted = True
            else:
                self._warn(f"Admin authorization for role {role_id} on {resource_app_id} failed: {result.last_error}")
        return granted

    def _resource_principal_id(self, resource_app_id: str) -> Optional[str]:
        try:
            principal = self.directory.find_principal_by_app_id(resource_app_id)
        except GraphError as exc:
            self._warn(f"Lookup of resource principal for appId {resource_app_id} failed: {exc}")
            return None
        if principal is None:
            self._warn(f"Resource principal for appId {resource_app_id} not found; skipping its roles")
            return None
        return principal.object_id

    def _warn(self, message: str) -> None:
        logger.warning(f"[authz] {message}")
        self.warnings.append(message)
