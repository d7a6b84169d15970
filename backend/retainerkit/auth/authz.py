"""
Role gate separating contractor-class from client-class workspace members.
"""
from ..database.models import WorkspaceRole
from ..errors import AuthorizationError

CONTRACTOR_ONLY_MESSAGE = "Forbidden: client users cannot access contractor endpoints."


def is_contractor_role(role: WorkspaceRole) -> bool:
    """Owners and contractors are privileged; clients are read-only."""
    if role is WorkspaceRole.OWNER or role is WorkspaceRole.CONTRACTOR:
        return True
    if role is WorkspaceRole.CLIENT:
        return False
    raise ValueError(f"Unknown workspace role: {role!r}")


# PUBLIC_INTERFACE
def require_contractor_scope(workspace) -> None:
    """
    Admit contractor-class callers.

    Args:
        workspace: Active workspace of the caller (anything with a ``role``)

    Raises:
        AuthorizationError: For client-class roles
    """
    if not is_contractor_role(workspace.role):
        raise AuthorizationError(CONTRACTOR_ONLY_MESSAGE)
