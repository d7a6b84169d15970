"""
Client and client membership Pydantic schemas.

Defines request/response models for client CRUD and for linking
client-class users to a billing client.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field
from uuid import UUID

from ..database.models import ClientRole


class ClientCreateRequest(BaseModel):
    """Client creation request schema."""
    name: str = Field(..., min_length=1, max_length=120, description="Client name")


class ClientUpdateRequest(BaseModel):
    """Client update request schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=120, description="Client name")


class ClientResponse(BaseModel):
    """Client response schema."""
    id: UUID = Field(..., description="Client ID")
    name: str = Field(..., description="Client name")
    workspace_id: UUID = Field(..., description="Workspace ID")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class ClientsListResponse(BaseModel):
    """Clients list response schema."""
    clients: List[ClientResponse] = Field(..., description="List of clients")


class ClientMemberCreateRequest(BaseModel):
    """Add (or re-role) a registered user on a client."""
    client_id: UUID = Field(..., alias="clientId", description="Client ID")
    email: EmailStr = Field(..., description="Email of an already registered user")
    client_role: ClientRole = Field(ClientRole.CLIENT_USER, alias="clientRole", description="Client role")

    class Config:
        populate_by_name = True


class ClientMemberDeleteRequest(BaseModel):
    """Remove a user from a client."""
    client_id: UUID = Field(..., alias="clientId", description="Client ID")
    user_id: UUID = Field(..., alias="userId", description="User ID")

    class Config:
        populate_by_name = True


class ClientMemberResponse(BaseModel):
    """Client member response schema."""
    user_id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    name: Optional[str] = Field(None, description="User display name")
    client_role: ClientRole = Field(..., description="Client role")
    created_at: datetime = Field(..., description="Membership creation timestamp")

    class Config:
        from_attributes = True


class ClientMembersListResponse(BaseModel):
    """Client members list response schema."""
    members: List[ClientMemberResponse] = Field(..., description="Members of the client")
