"""
Active workspace resolution.

Every authenticated request is scoped to exactly one workspace. Users with
no membership get a default workspace provisioned on first use; concurrent
first requests converge on the same row through the unique owner constraint.
"""
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.connection import insert_for
from ..database.models import User, Workspace, WorkspaceMember, WorkspaceRole
from ..errors import NotFoundError

logger = logging.getLogger(__name__)

WORKSPACE_NAME_SUFFIX = "'s Workspace"


@dataclass(frozen=True)
class ActiveWorkspace:
    id: UUID
    name: str
    role: WorkspaceRole


def role_rank(role: WorkspaceRole) -> int:
    if role is WorkspaceRole.OWNER:
        return 3
    if role is WorkspaceRole.CONTRACTOR:
        return 2
    if role is WorkspaceRole.CLIENT:
        return 1
    raise ValueError(f"Unknown workspace role: {role!r}")


def default_workspace_name(name, email: str) -> str:
    """Display name, or the local part of the email when the name is blank."""
    base = (name or "").strip() or email.split("@", 1)[0]
    return f"{base}{WORKSPACE_NAME_SUFFIX}"


# PUBLIC_INTERFACE
def resolve_active_workspace(db: Session, user_id: UUID) -> ActiveWorkspace:
    """
    Return the caller's active workspace and role.

    The highest-privilege membership wins (owner > contractor > client);
    ties go to the lexically smallest workspace id. That tie-break is stable
    but says nothing about which membership is oldest.

    Args:
        db: Database session
        user_id: Authenticated user

    Returns:
        ActiveWorkspace: Selected or freshly provisioned workspace

    Raises:
        NotFoundError: If the user does not exist
    """
    rows = db.execute(
        select(Workspace.id, Workspace.name, WorkspaceMember.role)
        .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
        .where(WorkspaceMember.user_id == user_id)
    ).all()

    if rows:
        best = min(rows, key=lambda r: (-role_rank(r.role), str(r.id)))
        return ActiveWorkspace(id=best.id, name=best.name, role=best.role)

    return provision_default_workspace(db, user_id)


# PUBLIC_INTERFACE
def provision_default_workspace(db: Session, user_id: UUID) -> ActiveWorkspace:
    """
    Create (or adopt) the user's own workspace and owner membership atomically.

    Both inserts ignore unique conflicts, and the workspace is re-selected by
    owner afterwards, so a concurrent provisioning attempt resolves to the
    row that won instead of failing or creating a second workspace.
    """
    user = db.execute(select(User.name, User.email).where(User.id == user_id)).first()
    if user is None:
        raise NotFoundError("User not found")

    try:
        db.execute(
            insert_for(db, Workspace)
            .values(owner_user_id=user_id, name=default_workspace_name(user.name, user.email))
            .on_conflict_do_nothing(index_elements=["owner_user_id"])
        )
        workspace = db.execute(
            select(Workspace.id, Workspace.name).where(Workspace.owner_user_id == user_id)
        ).one()
        db.execute(
            insert_for(db, WorkspaceMember)
            .values(workspace_id=workspace.id, user_id=user_id, role=WorkspaceRole.OWNER)
            .on_conflict_do_nothing(index_elements=["workspace_id", "user_id"])
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Provisioned workspace {workspace.id} for user {user_id}")
    return ActiveWorkspace(id=workspace.id, name=workspace.name, role=WorkspaceRole.OWNER)
