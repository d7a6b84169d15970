"""
Client management API routes.

Provides contractor-only endpoints for client CRUD and for attaching
registered users to a client as client-class members.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth.adapter import normalize_email
from ...auth.dependencies import get_contractor_workspace
from ...database.connection import get_db, insert_for
from ...database.models import Client, ClientMember, User, WorkspaceMember, WorkspaceRole
from ...errors import NotFoundError
from ...schemas.auth import StandardResponse
from ...schemas.client import (
    ClientCreateRequest, ClientMemberCreateRequest, ClientMemberDeleteRequest,
    ClientMemberResponse, ClientMembersListResponse, ClientResponse,
    ClientsListResponse, ClientUpdateRequest
)
from ...services.workspace import ActiveWorkspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/clients", tags=["Clients"])
members_router = APIRouter(prefix="/client-members", tags=["Client Members"])

CLIENT_NOT_FOUND = "Client not found"


def get_workspace_client(db: Session, workspace_id: UUID, client_id: UUID) -> Client:
    client = db.scalars(
        select(Client).where(Client.id == client_id, Client.workspace_id == workspace_id)
    ).first()
    if client is None:
        raise NotFoundError(CLIENT_NOT_FOUND)
    return client


# PUBLIC_INTERFACE
@router.get("", response_model=ClientsListResponse,
            summary="List clients",
            description="List the clients of the active workspace, newest first.")
async def list_clients(
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """List clients."""
    clients = db.scalars(
        select(Client).where(Client.workspace_id == workspace.id).order_by(Client.created_at.desc())
    ).all()
    return ClientsListResponse(clients=[ClientResponse.model_validate(c) for c in clients])


# PUBLIC_INTERFACE
@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED,
             summary="Create new client",
             description="Create a new client within the active workspace.")
async def create_client(
    request: ClientCreateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Create a new client."""
    client = Client(workspace_id=workspace.id, name=request.name.strip())
    db.add(client)
    db.commit()
    db.refresh(client)
    return ClientResponse.model_validate(client)


# PUBLIC_INTERFACE
@router.get("/{client_id}", response_model=ClientResponse,
            summary="Get client details")
async def get_client(
    client_id: UUID,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Get client details."""
    return ClientResponse.model_validate(get_workspace_client(db, workspace.id, client_id))


# PUBLIC_INTERFACE
@router.patch("/{client_id}", response_model=ClientResponse,
              summary="Update client",
              description="Rename a client. Only provided fields are updated.")
async def update_client(
    client_id: UUID,
    request: ClientUpdateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Update client information."""
    client = get_workspace_client(db, workspace.id, client_id)

    update_data = request.model_dump(exclude_unset=True)
    if update_data.get("name") is not None:
        client.name = update_data["name"].strip()

    db.commit()
    db.refresh(client)
    return ClientResponse.model_validate(client)


# PUBLIC_INTERFACE
@router.delete("/{client_id}", response_model=StandardResponse,
               summary="Delete client",
               description="Delete a client together with its contracts, work logs and invoices.")
async def delete_client(
    client_id: UUID,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Delete a client."""
    result = db.execute(
        delete(Client).where(Client.id == client_id, Client.workspace_id == workspace.id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError(CLIENT_NOT_FOUND)
    db.commit()
    return StandardResponse(message=f"Deleted client {client_id}")


# PUBLIC_INTERFACE
@members_router.get("", response_model=ClientMembersListResponse,
                    summary="List client members")
async def list_client_members(
    client_id: UUID = Query(..., alias="clientId", description="Client ID"),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """List the users attached to a client, newest first."""
    get_workspace_client(db, workspace.id, client_id)

    rows = db.execute(
        select(ClientMember.user_id, User.email, User.name, ClientMember.client_role, ClientMember.created_at)
        .join(User, User.id == ClientMember.user_id)
        .where(ClientMember.client_id == client_id)
        .order_by(ClientMember.created_at.desc())
    ).all()
    return ClientMembersListResponse(
        members=[ClientMemberResponse.model_validate(row, from_attributes=True) for row in rows]
    )


# PUBLIC_INTERFACE
@members_router.post("", response_model=StandardResponse, status_code=status.HTTP_201_CREATED,
                     summary="Add client member",
                     description="Attach a registered user to a client, or change their client role.")
async def add_client_member(
    request: ClientMemberCreateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """
    Add a client member.

    The user also becomes a client-class member of the workspace so their
    workspace resolution lands here; an existing workspace role is kept.
    """
    get_workspace_client(db, workspace.id, request.client_id)

    user_id = db.scalar(select(User.id).where(User.email == normalize_email(request.email)))
    if user_id is None:
        raise NotFoundError("No user found with that email. Ask the client to register first, then add them here.")

    try:
        db.execute(
            insert_for(db, ClientMember)
            .values(client_id=request.client_id, user_id=user_id, client_role=request.client_role)
            .on_conflict_do_update(
                index_elements=["client_id", "user_id"],
                set_={"client_role": request.client_role},
            )
        )
        db.execute(
            insert_for(db, WorkspaceMember)
            .values(workspace_id=workspace.id, user_id=user_id, role=WorkspaceRole.CLIENT)
            .on_conflict_do_nothing(index_elements=["workspace_id", "user_id"])
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"User {user_id} attached to client {request.client_id} as {request.client_role.value}")
    return StandardResponse(message="Member added")


# PUBLIC_INTERFACE
@members_router.delete("", response_model=StandardResponse,
                       summary="Remove client member")
async def remove_client_member(
    request: ClientMemberDeleteRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """
    Remove a client member.

    When the user has no client left in the workspace, their client-class
    workspace membership goes too.
    """
    get_workspace_client(db, workspace.id, request.client_id)

    try:
        result = db.execute(
            delete(ClientMember).where(
                ClientMember.client_id == request.client_id,
                ClientMember.user_id == request.user_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError()

        remaining: Optional[int] = db.scalar(
            select(func.count(ClientMember.id))
            .join(Client, Client.id == ClientMember.client_id)
            .where(ClientMember.user_id == request.user_id, Client.workspace_id == workspace.id)
        )
        if not remaining:
            db.execute(
                delete(WorkspaceMember).where(
                    WorkspaceMember.workspace_id == workspace.id,
                    WorkspaceMember.user_id == request.user_id,
                    WorkspaceMember.role == WorkspaceRole.CLIENT,
                )
            )
        db.commit()
    except (NotFoundError, SQLAlchemyError):
        db.rollback()
        raise

    return StandardResponse(message="Member removed")
