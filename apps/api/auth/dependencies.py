"""FastAPI dependencies for authentication and authorization."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Depends, Header

from apps.api.auth.permissions import Capability, has_capability
from apps.api.auth.service import IdentityProxy
from apps.api.config import Settings
from apps.api.dependencies import get_app_settings, get_identity
from packages.shared.exceptions import AuthenticationError, ForbiddenError

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


def extract_bearer_token(header: str | None) -> str | None:
    """
    Parse ``Authorization: Bearer <token>``.

    Anything other than exactly two space-separated parts with the
    ``Bearer`` scheme yields None.
    """
    if not header:
        return None
    parts = header.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        return None
    return parts[1]


def get_access_token(authorization: str | None = Header(default=None)) -> str:
    """Require a bearer token on the request."""
    token = extract_bearer_token(authorization)
    if token is None:
        raise AuthenticationError("No access token provided")
    return token


def get_optional_access_token(
    authorization: str | None = Header(default=None),
) -> str | None:
    return extract_bearer_token(authorization)


# =============================================================================
# Caller (who is performing a registry operation)
# =============================================================================


@dataclass
class Caller:
    """Identity recorded as createdBy / modifiedBy."""

    username: str
    role: str | None = None


def require_capability(capability: Capability) -> Callable[..., Awaitable[Caller]]:
    """
    Dependency factory enforcing a capability on a route.

    With ``enforce_permissions`` off, every caller acts as the system user.

    Usage:
        @router.delete("/{model_id}")
        def delete(caller: Caller = Depends(require_capability(Capability.DELETE))):
            ...
    """

    async def check_capability(
        token: str | None = Depends(get_optional_access_token),
        settings: Settings = Depends(get_app_settings),
        identity: IdentityProxy = Depends(get_identity),
    ) -> Caller:
        if not settings.enforce_permissions:
            return Caller(username=SYSTEM_ACTOR)

        if token is None:
            raise AuthenticationError("No access token provided")
        profile = await identity.get_profile(token)
        if not has_capability(profile.role, capability):
            logger.info(
                f"Denied {capability.value} to {profile.username} (role {profile.role})"
            )
            raise ForbiddenError(f"Insufficient permissions: {capability.value} required")
        return Caller(username=profile.username, role=profile.role)

    return check_capability
