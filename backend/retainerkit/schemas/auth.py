"""
Authentication-related Pydantic schemas.

Defines request/response models for registration, password login,
session lookup and logout.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from uuid import UUID

from .workspace import WorkspaceInfo


class UserRegistrationRequest(BaseModel):
    """User registration request schema."""
    name: Optional[str] = Field(None, max_length=255, description="Display name")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="User password (minimum 8 characters)")


class UserLoginRequest(BaseModel):
    """User login request schema."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class UserInfo(BaseModel):
    """User information schema."""
    id: UUID = Field(..., description="User ID")
    name: Optional[str] = Field(None, description="Display name")
    email: str = Field(..., description="User email address")
    email_verified: Optional[datetime] = Field(None, description="Email verification timestamp")
    image: Optional[str] = Field(None, description="Avatar reference")

    class Config:
        from_attributes = True


class RegistrationResponse(BaseModel):
    """Registration response schema."""
    id: UUID = Field(..., description="New user ID")
    email: str = Field(..., description="Normalized email address")


class SessionResponse(BaseModel):
    """Current session schema."""
    user: UserInfo = Field(..., description="Authenticated user")
    expires: datetime = Field(..., description="Session expiry")
    workspace: WorkspaceInfo = Field(..., description="Active workspace")


class StandardResponse(BaseModel):
    """Standard response schema."""
    ok: bool = Field(True, description="Whether the operation succeeded")
    message: Optional[str] = Field(None, description="Response message")
