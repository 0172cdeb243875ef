"""Application provisioner: create or adopt app registrations and their principals."""
from __future__ import annotations
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from .errors import ProvisioningError
from .graph.exceptions import GraphError, is_conflict, is_not_yet_visible
from .models import (
    KIND_SPA,
    KIND_WEB,
    STATUS_ADOPTED,
    STATUS_CREATED,
    ApplicationSpec,
    ProvisionOutcome,
    ResourceIdentity,
)
from .retry import retry_bounded

logger = logging.getLogger(__name__)

SECRET_SKIPPED = "Secret generation skipped - create manually if needed"
SECRET_FAILED = "Secret generation failed - create manually if needed"
SECRET_ROTATION_FAILED = "Unable to generate new secret - use existing or create manually"
SECRET_KEPT = "Secret generation skipped - use existing or create manually"
CREDENTIAL_DESCRIPTION = "Auto-generated secret"
SIGN_IN_AUDIENCE = "AzureADMyOrg"


def build_permission_scope(value: str) -> dict:
    """Exposed delegated scope with a freshly generated id."""
    return {
        "adminConsentDescription": f"Allow the application to {value}",
        "adminConsentDisplayName": value,
        "id": str(uuid.uuid4()),
        "isEnabled": True,
        "type": "User",
        "userConsentDescription": f"Allow the application to {value} on your behalf",
        "userConsentDisplayName": value,
        "value": value,
    }


def build_application_payload(spec: ApplicationSpec) -> dict:
    """Graph application body for a web or single-page application spec."""
    payload: dict = {
        "displayName": spec.display_name,
        "signInAudience": SIGN_IN_AUDIENCE,
        "requiredResourceAccess": [entry.to_graph() for entry in spec.required_permissions],
    }
    if spec.scopes:
        payload["api"] = {"oauth2PermissionScopes": [build_permission_scope(value) for value in spec.scopes]}
    if spec.kind == KIND_SPA:
        payload["spa"] = {"redirectUris": list(spec.redirect_uris)}
    else:
        payload["web"] = {
            "redirectUris": list(spec.redirect_uris),
            "implicitGrantSettings": {
                "enableIdTokenIssuance": True,
                "enableAccessTokenIssuance": False,
            },
        }
    return payload


def mint_credential(directory, object_id: str, display_name: str, validity_days: int) -> tuple[Optional[str], Optional[str]]:
    """Add a client secret to the application.

    Returns:
        (secret_text, None) on success, (None, reason) on failure
    """
    now = datetime.now(timezone.utc)
    try:
        credential = directory.create_credential(object_id, CREDENTIAL_DESCRIPTION, now + timedelta(days=validity_days))
    except GraphError as exc:
        logger.warning(f"[app] Credential minting for '{display_name}' failed: {exc}")
        return None, str(exc)
    if not credential.secret_text:
        return None, "directory returned no secret text"
    logger.info(f"[app] Credential minted for '{display_name}'")
    return credential.secret_text, None


def create_principal_when_visible(
    directory,
    cfg,
    display_name: str,
    app_id: str,
    *,
    tags: Optional[Iterable[str]] = None,
    sso_mode: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """Create the principal for a just-created application.

    Retries while the directory has not yet indexed the application. A
    conflict means the principal already exists and it is looked up instead.

    Raises:
        ProvisioningError: If the principal cannot be created
    """
    result = retry_bounded(
        lambda: directory.create_principal(app_id, tags=tags, sso_mode=sso_mode),
        attempts=cfg.principal_create_attempts,
        delay=cfg.principal_create_delay,
        retry_on=is_not_yet_visible,
        sleep=sleep,
        label=f"create principal for '{display_name}'",
    )
    if result.succeeded:
        return result.value
    if is_conflict(result.last_error):
        try:
            existing = directory.find_principal_by_app_id(app_id)
        except GraphError as exc:
            raise ProvisioningError(display_name, "create principal", str(exc)) from exc
        if existing is not None:
            logger.info(f"[app] Principal for '{display_name}' already existed (id={existing.object_id})")
            return existing
    raise ProvisioningError(
        display_name,
        "create principal",
        f"{result.last_error} (after {result.attempts} attempt(s))",
    )


class ApplicationProvisioner:
    """Create or adopt one web/single-page application plus its principal.

    Adoption never touches the existing application's configuration; only a
    new credential is minted and a missing principal is created.
    """

    def __init__(self, directory, resolver, authorizer, cfg,
                 sleep: Callable[[float], None] = time.sleep):
        self.directory = directory
        self.resolver = resolver
        self.authorizer = authorizer
        self.cfg = cfg
        self.sleep = sleep

    def provision(self, spec: ApplicationSpec) -> ProvisionOutcome:
        """Create or adopt the application described by `spec`.

        Raises:
            ProvisioningError: If the application or its principal cannot be created
        """
        if spec.kind not in (KIND_WEB, KIND_SPA):
            raise ProvisioningError(spec.display_name, "validate", f"unsupported application kind '{spec.kind}'")
        try:
            identity = self.resolver.resolve(spec.display_name)
        except GraphError as exc:
            raise ProvisioningError(spec.display_name, "lookup", str(exc)) from exc

        if identity is not None:
            return self._adopt(spec, identity)
        return self._create(spec)

    # ─────────────────────────────────────────────────────────────────────────
    # Adopt
    # ─────────────────────────────────────────────────────────────────────────
    def _adopt(self, spec: ApplicationSpec, identity: ResourceIdentity) -> ProvisionOutcome:
        logger.info(f"[app] Adopting existing application '{spec.display_name}'")
        warnings: list[str] = []

        if spec.generate_secret:
            secret, error = mint_credential(
                self.directory, identity.object_id, spec.display_name, self.cfg.credential_validity_days
            )
            if secret is None:
                credential = SECRET_ROTATION_FAILED
                warnings.append(f"{spec.display_name}: credential minting failed: {error}")
            else:
                credential = secret
        else:
            credential = SECRET_KEPT

        if identity.principal_id is None:
            principal = create_principal_when_visible(
                self.directory, self.cfg, spec.display_name, identity.app_id, sleep=self.sleep
            )
            identity = identity.with_principal(principal.object_id)
            self.resolver.remember(spec.display_name, identity, principal)
            warnings.append(f"{spec.display_name}: linked principal was missing and has been created")

        return ProvisionOutcome(
            name=spec.name,
            display_name=spec.display_name,
            kind=spec.kind,
            identity=identity,
            status=STATUS_ADOPTED,
            credential=credential,
            warnings=tuple(warnings),
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────────────
    def _create(self, spec: ApplicationSpec) -> ProvisionOutcome:
        logger.info(f"[app] Creating application '{spec.display_name}' ({spec.kind})")
        warnings: list[str] = []

        try:
            app = self.directory.create_application(build_application_payload(spec))
        except GraphError as exc:
            raise ProvisioningError(spec.display_name, "create application", str(exc)) from exc

        identity = ResourceIdentity(object_id=app.object_id, app_id=app.app_id)
        self.resolver.remember(spec.display_name, identity)

        if spec.api_provider:
            identifier_uri = f"api://{app.app_id}"
            try:
                self.directory.update_application(app.object_id, {"identifierUris": [identifier_uri]})
                logger.info(f"[app] Identifier URI {identifier_uri} set on '{spec.display_name}'")
            except GraphError as exc:
                warnings.append(f"{spec.display_name}: setting identifier URI failed: {exc}")

        if spec.generate_secret:
            secret, error = mint_credential(
                self.directory, app.object_id, spec.display_name, self.cfg.credential_validity_days
            )
            if secret is None:
                credential = SECRET_FAILED
                warnings.append(f"{spec.display_name}: credential minting failed: {error}")
            else:
                credential = secret
        else:
            credential = SECRET_SKIPPED

        principal = create_principal_when_visible(
            self.directory, self.cfg, spec.display_name, app.app_id, sleep=self.sleep
        )
        identity = identity.with_principal(principal.object_id)
        self.resolver.remember(spec.display_name, identity, principal)

        granted = False
        if spec.admin_authorization and spec.has_role_permissions:
            granted = self.authorizer.authorize(principal.object_id, spec.required_permissions)
            warnings.extend(f"{spec.display_name}: {message}" for message in self.authorizer.warnings)

        return ProvisionOutcome(
            name=spec.name,
            display_name=spec.display_name,
            kind=spec.kind,
            identity=identity,
            status=STATUS_CREATED,
            credential=credential,
            authorization_granted=granted,
            warnings=tuple(warnings),
        )
