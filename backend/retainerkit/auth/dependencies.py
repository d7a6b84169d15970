"""
Authentication dependencies for FastAPI endpoints.

Resolves the database session behind the request's session cookie (or
bearer token) to a user, then to the caller's active workspace, and
enforces the contractor-only gate where a route asks for it.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database.connection import get_db
from ..errors import AuthenticationError
from ..services.client_scope import ActiveClient, resolve_active_client
from ..services.workspace import ActiveWorkspace, resolve_active_workspace
from .adapter import SqlAlchemyAdapter
from .authz import require_contractor_scope
from .session_cookie import get_session_token_from_cookies

security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Current user information from the database session."""

    def __init__(self, user_id: UUID, email: str, name: Optional[str], session_token: str, expires: datetime):
        self.user_id = user_id
        self.email = email
        self.name = name
        self.session_token = session_token
        self.expires = expires


# PUBLIC_INTERFACE
def get_adapter(db: Session = Depends(get_db)) -> SqlAlchemyAdapter:
    """Identity adapter bound to the request's database session."""
    return SqlAlchemyAdapter(db)


# PUBLIC_INTERFACE
def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    adapter: SqlAlchemyAdapter = Depends(get_adapter),
) -> CurrentUser:
    """
    Get current authenticated user from the session token.

    The session cookie wins; a bearer token is accepted for API clients.

    Args:
        request: Incoming request
        credentials: Optional HTTP bearer credentials
        adapter: Identity adapter

    Returns:
        CurrentUser: Current user information

    Raises:
        AuthenticationError: If no session matches or the session has expired
    """
    token = get_session_token_from_cookies(request.cookies)
    if token is None and credentials is not None:
        token = credentials.credentials
    if not token:
        raise AuthenticationError()

    found = adapter.get_session_and_user(token)
    if found is None:
        raise AuthenticationError()
    if found.session.expires <= datetime.now(timezone.utc):
        raise AuthenticationError("Session expired")

    return CurrentUser(
        user_id=found.user.id,
        email=found.user.email,
        name=found.user.name,
        session_token=found.session.session_token,
        expires=found.session.expires,
    )


# PUBLIC_INTERFACE
def get_active_workspace(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ActiveWorkspace:
    """Active workspace and role of the caller, provisioned on first use."""
    return resolve_active_workspace(db, current_user.user_id)


# PUBLIC_INTERFACE
def get_contractor_workspace(
    workspace: ActiveWorkspace = Depends(get_active_workspace),
) -> ActiveWorkspace:
    """
    Active workspace of a contractor-class caller.

    Raises:
        AuthorizationError: For client-class callers, before any resource lookup
    """
    require_contractor_scope(workspace)
    return workspace


# PUBLIC_INTERFACE
def get_active_client(
    current_user: CurrentUser = Depends(get_current_user),
    workspace: ActiveWorkspace = Depends(get_active_workspace),
    db: Session = Depends(get_db),
) -> Optional[ActiveClient]:
    """Active client of the caller inside the active workspace, or None."""
    return resolve_active_client(db, current_user.user_id, workspace.id)
