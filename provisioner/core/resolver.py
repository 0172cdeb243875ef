"""Resource resolver: find existing applications by display name."""
from __future__ import annotations
import logging
from typing import Optional

from .graph.models import ServicePrincipal
from .models import ResourceIdentity

logger = logging.getLogger(__name__)


class ResourceResolver:
    """Looks up existing application/principal pairs, never creates anything.

    Every lookup (including absence) is cached for the lifetime of the
    resolver, so one run never reports two identities for the same name.
    Objects created during the run are registered with `remember()`.
    """

    def __init__(self, directory):
        """Initialize resolver.

        Args:
            directory: DirectoryClient (or compatible) used for lookups
        """
        self.directory = directory
        self.warnings: list[str] = []
        self._identities: dict[str, Optional[ResourceIdentity]] = {}
        self._principals: dict[str, Optional[ServicePrincipal]] = {}

    def resolve(self, display_name: str) -> Optional[ResourceIdentity]:
        """Return the identity of the application named `display_name`, or None.

        Raises:
            GraphError: If the directory lookup itself fails
        """
        if display_name in self._identities:
            return self._identities[display_name]

        matches = self.directory.find_applications_by_name(display_name)
        if not matches:
            logger.debug(f"[resolver] '{display_name}' not found")
            self._identities[display_name] = None
            self._principals[display_name] = None
            return None

        if len(matches) > 1:
            message = (
                f"Multiple applications named '{display_name}' found ({len(matches)}); "
                f"using appId {matches[0].app_id}"
            )
            logger.warning(f"[resolver] {message}")
            self.warnings.append(message)

        app = matches[0]
        principal = self.directory.find_principal_by_app_id(app.app_id)
        identity = ResourceIdentity(
            object_id=app.object_id,
            app_id=app.app_id,
            principal_id=principal.object_id if principal else None,
        )
        logger.info(f"[resolver] '{display_name}' exists (appId={app.app_id}, principal={identity.principal_id})")
        self._identities[display_name] = identity
        self._principals[display_name] = principal
        return identity

    def principal_for(self, display_name: str) -> Optional[ServicePrincipal]:
        """Principal found alongside the last resolve() of `display_name`."""
        return self._principals.get(display_name)

    def remember(self, display_name: str, identity: ResourceIdentity,
                 principal: Optional[ServicePrincipal] = None) -> None:
        self._identities[display_name] = identity
        if principal is not None:
            self._principals[display_name] = principal
