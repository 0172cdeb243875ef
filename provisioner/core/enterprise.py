"""Enterprise object provisioner: SAML and application-proxy profiles."""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .applications import SECRET_SKIPPED, create_principal_when_visible
from .errors import ProvisioningError
from .graph.exceptions import GraphError
from .models import (
    KIND_PROXY,
    KIND_SAML,
    STATUS_ADOPTED,
    STATUS_CREATED,
    ApplicationSpec,
    ProvisionOutcome,
    ResourceIdentity,
)

logger = logging.getLogger(__name__)

SIGN_IN_AUDIENCE = "AzureADMyOrg"


@dataclass(frozen=True)
class EnterpriseProfile:
    """Principal flags and application surface for one enterprise kind."""
    kind: str
    sso_mode: str
    tags: tuple[str, ...]
    redirect_paths: tuple[str, ...]
    sets_identifier_uri: bool


SAML_PROFILE = EnterpriseProfile(
    kind=KIND_SAML,
    sso_mode="saml",
    tags=("WindowsAzureActiveDirectoryIntegratedApp", "Enterprise", "SAML", "SSO", "CustomApp"),
    redirect_paths=("/saml2/acs",),
    sets_identifier_uri=True,
)

PROXY_PROFILE = EnterpriseProfile(
    kind=KIND_PROXY,
    sso_mode="integrated",
    tags=("WindowsAzureActiveDirectoryIntegratedApp", "Enterprise", "ApplicationProxy", "OnPrem", "CustomApp"),
    redirect_paths=("/auth", "/signin-oidc"),
    sets_identifier_uri=False,
)

PROFILES = {profile.kind: profile for profile in (SAML_PROFILE, PROXY_PROFILE)}

SAML_OPTIONAL_CLAIMS = {
    "saml2Token": [
        {"name": "email", "essential": False},
        {"name": "upn", "essential": False},
    ]
}


def profile_for(kind: str) -> Optional[EnterpriseProfile]:
    return PROFILES.get(kind)


def build_enterprise_payload(spec: ApplicationSpec, profile: EnterpriseProfile) -> dict:
    external = (spec.external_url or "").rstrip("/")
    payload: dict = {
        "displayName": spec.display_name,
        "signInAudience": SIGN_IN_AUDIENCE,
        "web": {"redirectUris": [external + path for path in profile.redirect_paths]},
    }
    if profile.sets_identifier_uri:
        payload["identifierUris"] = [external]
    return payload


class EnterpriseProvisioner:
    """Create or adopt an application/principal pair with enterprise SSO flags.

    The principal is created right after the application: without it the
    object is not listed as an enterprise application.
    """

    def __init__(self, directory, resolver, cfg, sleep: Callable[[float], None] = time.sleep):
        self.directory = directory
        self.resolver = resolver
        self.cfg = cfg
        self.sleep = sleep

    def provision(self, spec: ApplicationSpec) -> ProvisionOutcome:
        """Create or adopt the enterprise object described by `spec`.

        Raises:
            ProvisioningError: If the application or its principal cannot be created
        """
        profile = profile_for(spec.kind)
        if profile is None:
            raise ProvisioningError(spec.display_name, "validate", f"unsupported enterprise kind '{spec.kind}'")
        if not spec.external_url:
            raise ProvisioningError(spec.display_name, "validate", "external_url is required")

        try:
            identity = self.resolver.resolve(spec.display_name)
        except GraphError as exc:
            raise ProvisioningError(spec.display_name, "lookup", str(exc)) from exc

        if identity is not None:
            return self._adopt(spec, profile, identity)
        return self._create(spec, profile)

    def _adopt(self, spec: ApplicationSpec, profile: EnterpriseProfile,
               identity: ResourceIdentity) -> ProvisionOutcome:
        logger.info(f"[enterprise] Adopting existing enterprise application '{spec.display_name}'")
        warnings: list[str] = []
        principal = self.resolver.principal_for(spec.display_name)

        if principal is None:
            principal = create_principal_when_visible(
                self.directory, self.cfg, spec.display_name, identity.app_id,
                tags=profile.tags, sso_mode=profile.sso_mode, sleep=self.sleep,
            )
            identity = identity.with_principal(principal.object_id)
            self.resolver.remember(spec.display_name, identity, principal)
            warnings.append(f"{spec.display_name}: linked principal was missing and has been created")
            sso_mode = profile.sso_mode
            tags = profile.tags
        else:
            sso_mode = principal.preferred_sso_mode
            tags = principal.tags
            if sso_mode != profile.sso_mode:
                warnings.append(
                    f"{spec.display_name}: existing principal uses SSO mode '{sso_mode or 'none'}', "
                    f"expected '{profile.sso_mode}'; settings left unchanged"
                )

        try:
            application = self.directory.get_application(identity.object_id)
            identifier_uris = application.identifier_uris
        except GraphError as exc:
            logger.warning(f"[enterprise] Could not read '{spec.display_name}': {exc}")
            identifier_uris = ()

        return ProvisionOutcome(
            name=spec.name,
            display_name=spec.display_name,
            kind=spec.kind,
            identity=identity,
            status=STATUS_ADOPTED,
            credential=SECRET_SKIPPED,
            warnings=tuple(warnings),
            sso_mode=sso_mode,
            tags=tuple(tags),
            identifier_uris=tuple(identifier_uris),
        )

    def _create(self, spec: ApplicationSpec, profile: EnterpriseProfile) -> ProvisionOutcome:
        logger.info(f"[enterprise] Creating enterprise application '{spec.display_name}' ({profile.sso_mode})")
        warnings: list[str] = []

        payload = build_enterprise_payload(spec, profile)
        try:
            app = self.directory.create_application(payload)
        except GraphError as exc:
            raise ProvisioningError(spec.display_name, "create application", str(exc)) from exc

        identity = ResourceIdentity(object_id=app.object_id, app_id=app.app_id)
        self.resolver.remember(spec.display_name, identity)

        principal = create_principal_when_visible(
            self.directory, self.cfg, spec.display_name, app.app_id,
            tags=profile.tags, sso_mode=profile.sso_mode, sleep=self.sleep,
        )
        identity = identity.with_principal(principal.object_id)
        self.resolver.remember(spec.display_name, identity, principal)

        if profile.kind == KIND_SAML:
            warnings.extend(self._configure_saml(spec, app.object_id, principal.object_id))

        return ProvisionOutcome(
            name=spec.name,
            display_name=spec.display_name,
            kind=spec.kind,
            identity=identity,
            status=STATUS_CREATED,
            credential=SECRET_SKIPPED,
            warnings=tuple(warnings),
            sso_mode=profile.sso_mode,
            tags=profile.tags,
            identifier_uris=app.identifier_uris or tuple(payload.get("identifierUris", ())),
        )

    def _configure_saml(self, spec: ApplicationSpec, object_id: str, principal_id: str) -> list[str]:
        """Sign-on/logout URLs on the principal and SAML claims on the application."""
        warnings = []
        sign_on_url = spec.external_url.rstrip("/") + "/login"
        try:
            self.directory.update_principal(principal_id, {
                "loginUrl": sign_on_url,
                "logoutUrl": sign_on_url + "/logout",
            })
        except GraphError as exc:
            warnings.append(f"{spec.display_name}: SAML sign-on configuration failed: {exc}")
        try:
            self.directory.update_application(object_id, {"optionalClaims": SAML_OPTIONAL_CLAIMS})
        except GraphError as exc:
            warnings.append(f"{spec.display_name}: SAML claim configuration failed: {exc}")
        for message in warnings:
            logger.warning(f"[enterprise] {message}")
        return warnings
