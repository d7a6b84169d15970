"""
Active client resolution for client-class workspace members.
"""
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database.models import Client, ClientMember, ClientRole


@dataclass(frozen=True)
class ActiveClient:
    id: UUID
    name: str
    role: ClientRole


def _memberships_query(user_id: UUID, workspace_id: UUID):
    return (
        select(Client.id, Client.name, ClientMember.client_role)
        .join(ClientMember, ClientMember.client_id == Client.id)
        .where(ClientMember.user_id == user_id, Client.workspace_id == workspace_id)
        .order_by(ClientMember.created_at.asc(), Client.created_at.asc(), Client.id.asc())
    )


# PUBLIC_INTERFACE
def list_client_memberships(db: Session, user_id: UUID, workspace_id: UUID) -> List[ActiveClient]:
    """All clients the user belongs to inside the workspace, earliest membership first."""
    rows = db.execute(_memberships_query(user_id, workspace_id)).all()
    return [ActiveClient(id=r.id, name=r.name, role=r.client_role) for r in rows]


# PUBLIC_INTERFACE
def resolve_active_client(db: Session, user_id: UUID, workspace_id: UUID) -> Optional[ActiveClient]:
    """
    Return the user's active client inside a workspace.

    The earliest membership is the stable default. None means the user has
    not been assigned to a client yet; nothing is provisioned.
    """
    row = db.execute(_memberships_query(user_id, workspace_id).limit(1)).first()
    if row is None:
        return None
    return ActiveClient(id=row.id, name=row.name, role=row.client_role)
