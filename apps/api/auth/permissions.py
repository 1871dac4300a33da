"""
Role-based capability table.

Roles are coarse: each one grants a fixed set of capabilities. Routes ask
for a capability, never for a role.
"""

from enum import Enum


class Role(str, Enum):
    """User roles stored in the identity backend (``custom:role``)."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class Capability(str, Enum):
    """Actions a caller may be allowed to perform."""

    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    REGISTER = "register"
    DELETE = "delete"
    UPLOAD = "upload"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.EDITOR: frozenset(
        {
            Capability.VIEW,
            Capability.CREATE,
            Capability.EDIT,
            Capability.REGISTER,
            Capability.UPLOAD,
        }
    ),
    Role.VIEWER: frozenset({Capability.VIEW}),
}


def capabilities_for(role: str | Role | None) -> frozenset[Capability]:
    """Capabilities granted to a role. Unknown roles get none."""
    try:
        return ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return frozenset()


def has_capability(role: str | Role | None, capability: Capability) -> bool:
    """Check if a role grants a capability."""
    return capability in capabilities_for(role)
