"""
Workspace scope API route.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth.dependencies import CurrentUser, get_active_workspace, get_current_user
from ...database.connection import get_db
from ...database.models import WorkspaceRole
from ...schemas.workspace import ClientScopeInfo, WorkspaceInfo, WorkspaceResponse
from ...services.client_scope import resolve_active_client
from ...services.workspace import ActiveWorkspace

router = APIRouter(prefix="/workspace", tags=["Workspace"])


# PUBLIC_INTERFACE
@router.get("", response_model=WorkspaceResponse,
            summary="Active workspace",
            description="Return the caller's active workspace and role; client-class callers also get their active client.")
async def get_workspace(
    current_user: CurrentUser = Depends(get_current_user),
    workspace: ActiveWorkspace = Depends(get_active_workspace),
    db: Session = Depends(get_db),
):
    """Get the active workspace scope."""
    client = None
    if workspace.role is WorkspaceRole.CLIENT:
        active_client = resolve_active_client(db, current_user.user_id, workspace.id)
        if active_client is not None:
            client = ClientScopeInfo.model_validate(active_client, from_attributes=True)

    return WorkspaceResponse(
        workspace=WorkspaceInfo.model_validate(workspace, from_attributes=True),
        client=client,
    )
