"""
Authentication API routes.

Provides endpoints for registration, password login backed by database
sessions, logout, and current-session lookup.
"""
import logging
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.exc import IntegrityError

from ...auth.adapter import AdapterSession, AdapterUser, SqlAlchemyAdapter
from ...auth.dependencies import CurrentUser, get_active_workspace, get_adapter, get_current_user, security
from ...auth.passwords import PasswordHasher, get_password_hasher
from ...auth.session_cookie import clear_session_cookies, get_session_token_from_cookies, set_session_cookie
from ...errors import AuthenticationError, ConflictError
from ...schemas.auth import (
    RegistrationResponse, SessionResponse, StandardResponse, UserInfo,
    UserLoginRequest, UserRegistrationRequest
)
from ...schemas.workspace import WorkspaceInfo
from ...services.workspace import ActiveWorkspace

logger = logging.getLogger(__name__)

# Configuration
SESSION_MAX_AGE_DAYS = int(os.getenv("SESSION_MAX_AGE_DAYS", "30"))
SECURE_COOKIES = os.getenv("SECURE_COOKIES", "false").lower() == "true"

INVALID_CREDENTIALS = "Invalid email or password."

router = APIRouter(prefix="/auth", tags=["Authentication"])


# PUBLIC_INTERFACE
@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED,
             summary="Register new user",
             description="Create a password account. The user's workspace is provisioned on first use.")
async def register_user(
    request: UserRegistrationRequest,
    adapter: SqlAlchemyAdapter = Depends(get_adapter),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """
    Register a new user.

    Emails are stored lower-cased and must be unique.
    """
    name = (request.name or "").strip() or None
    try:
        user = adapter.create_user(
            AdapterUser(name=name, email=request.email),
            password_hash=hasher.hash_password(request.password),
        )
    except IntegrityError:
        raise ConflictError("Email already in use.")

    logger.info(f"Registered user {user.id}")
    return RegistrationResponse(id=user.id, email=user.email)


# PUBLIC_INTERFACE
@router.post("/login", response_model=StandardResponse,
             summary="User login",
             description="Verify email and password, open a database session and set the session cookie.")
async def login_user(
    request: UserLoginRequest,
    response: Response,
    adapter: SqlAlchemyAdapter = Depends(get_adapter),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """
    Authenticate with email and password.

    Unknown emails, accounts without a password and wrong passwords all
    produce the same 401.
    """
    credentials = adapter.get_user_credentials(request.email)
    if credentials is None:
        raise AuthenticationError(INVALID_CREDENTIALS)

    user_id, password_hash = credentials
    if not password_hash or not hasher.verify_password(request.password, password_hash):
        raise AuthenticationError(INVALID_CREDENTIALS)

    expires = datetime.now(timezone.utc) + timedelta(days=SESSION_MAX_AGE_DAYS)
    session = adapter.create_session(
        AdapterSession(session_token=secrets.token_hex(32), user_id=user_id, expires=expires)
    )
    set_session_cookie(response, session.session_token, expires, secure=SECURE_COOKIES)

    logger.info(f"User {user_id} logged in")
    return StandardResponse(message="Logged in")


# PUBLIC_INTERFACE
@router.post("/logout", response_model=StandardResponse,
             summary="User logout",
             description="Delete the database session and clear both session cookies.")
async def logout_user(
    http_request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    adapter: SqlAlchemyAdapter = Depends(get_adapter),
):
    """Logout. Succeeds even without a session so clients can always clear cookies."""
    token = get_session_token_from_cookies(http_request.cookies)
    if token is None and credentials is not None:
        token = credentials.credentials
    if token:
        adapter.delete_session(token)
        logger.info("Session closed on logout")

    clear_session_cookies(response)
    return StandardResponse(message="Logged out successfully")


# PUBLIC_INTERFACE
@router.get("/session", response_model=SessionResponse,
            summary="Current session",
            description="Return the authenticated user, session expiry and active workspace.")
async def get_session(
    current_user: CurrentUser = Depends(get_current_user),
    workspace: ActiveWorkspace = Depends(get_active_workspace),
    adapter: SqlAlchemyAdapter = Depends(get_adapter),
):
    """Get the current session."""
    user = adapter.get_user(current_user.user_id)
    return SessionResponse(
        user=UserInfo.model_validate(user, from_attributes=True),
        expires=current_user.expires,
        workspace=WorkspaceInfo.model_validate(workspace, from_attributes=True),
    )
