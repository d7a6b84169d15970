"""
Workspace scope schemas.
"""
from typing import Optional
from pydantic import BaseModel, Field
from uuid import UUID

from ..database.models import ClientRole, WorkspaceRole


class WorkspaceInfo(BaseModel):
    """Active workspace schema."""
    id: UUID = Field(..., description="Workspace ID")
    name: str = Field(..., description="Workspace name")
    role: WorkspaceRole = Field(..., description="Caller's role in this workspace")

    class Config:
        from_attributes = True


class ClientScopeInfo(BaseModel):
    """Active client schema for client-class members."""
    id: UUID = Field(..., description="Client ID")
    name: str = Field(..., description="Client name")
    role: ClientRole = Field(..., description="Caller's role for this client")

    class Config:
        from_attributes = True


class WorkspaceResponse(BaseModel):
    """Workspace scope response schema."""
    workspace: WorkspaceInfo = Field(..., description="Active workspace")
    client: Optional[ClientScopeInfo] = Field(None, description="Active client, for client-class members")
