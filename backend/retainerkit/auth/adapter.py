"""
Identity adapter backed by the relational store.

Implements the persistence contract the session layer relies on: users,
linked external accounts, database sessions and one-time verification
tokens. Each write is a direct mutation of the matching table and commits
immediately; store errors roll back and propagate unchanged.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database.connection import insert_for
from ..database.models import Account, User, UserSession, VerificationToken
from ..errors import NotFoundError, ValidationError


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AdapterUser(BaseModel):
    """User as seen by the session layer."""
    id: Optional[UUID] = Field(None, description="User ID")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    email_verified: Optional[datetime] = Field(None, description="Email verification timestamp")
    image: Optional[str] = Field(None, description="Avatar reference")


class AdapterAccount(BaseModel):
    """External identity link produced by an OAuth exchange."""
    user_id: UUID
    type: str = "oauth"
    provider: str
    provider_account_id: str
    refresh_token: Optional[str] = None
    access_token: Optional[str] = None
    expires_at: Optional[int] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None
    session_state: Optional[str] = None


class AdapterSession(BaseModel):
    """Database session. ``user_id`` and ``expires`` are optional for partial updates."""
    session_token: str
    user_id: Optional[UUID] = None
    expires: Optional[datetime] = None


class SessionAndUser(BaseModel):
    session: AdapterSession
    user: AdapterUser


class VerificationTokenData(BaseModel):
    identifier: str
    token: str
    expires: datetime


def _map_user(row: User) -> AdapterUser:
    return AdapterUser(
        id=row.id,
        name=row.name,
        email=row.email,
        email_verified=as_utc(row.email_verified),
        image=row.image,
    )


def _map_session(row: UserSession) -> AdapterSession:
    return AdapterSession(
        session_token=row.session_token,
        user_id=row.user_id,
        expires=as_utc(row.expires),
    )


class SqlAlchemyAdapter:
    """Identity persistence contract over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self):
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # Users

    def create_user(self, user: AdapterUser, password_hash: Optional[str] = None) -> AdapterUser:
        if not user.email:
            raise ValidationError("createUser requires an email")
        row = User(
            name=user.name,
            email=normalize_email(user.email),
            email_verified=user.email_verified,
            image=user.image,
            password_hash=password_hash,
        )
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        return _map_user(row)

    def get_user(self, user_id: UUID) -> Optional[AdapterUser]:
        row = self.db.get(User, user_id)
        return _map_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[AdapterUser]:
        row = self.db.scalars(select(User).where(User.email == normalize_email(email))).first()
        return _map_user(row) if row else None

    def get_user_credentials(self, email: str) -> Optional[tuple]:
        """Return ``(user_id, password_hash)`` for password login, or None."""
        row = self.db.execute(
            select(User.id, User.password_hash).where(User.email == normalize_email(email))
        ).first()
        return tuple(row) if row else None

    def get_user_by_account(self, provider: str, provider_account_id: str) -> Optional[AdapterUser]:
        row = self.db.scalars(
            select(User)
            .join(Account, Account.user_id == User.id)
            .where(Account.provider == provider, Account.provider_account_id == provider_account_id)
        ).first()
        return _map_user(row) if row else None

    def update_user(self, user: AdapterUser) -> AdapterUser:
        """Partial update: fields that are None keep their stored value."""
        if user.id is None:
            raise ValidationError("updateUser requires user.id")

        row = self.db.get(User, user.id)
        if row is None:
            raise NotFoundError("User not found")

        if user.name is not None:
            row.name = user.name
        if user.email is not None:
            row.email = normalize_email(user.email)
        if user.email_verified is not None:
            row.email_verified = user.email_verified
        if user.image is not None:
            row.image = user.image

        self._commit()
        self.db.refresh(row)
        return _map_user(row)

    def delete_user(self, user_id: UUID) -> None:
        self.db.execute(delete(User).where(User.id == user_id))
        self._commit()

    # Accounts

    def link_account(self, account: AdapterAccount) -> None:
        """Insert the link; an existing (provider, provider_account_id) pair is left as is."""
        stmt = insert_for(self.db, Account).values(
            user_id=account.user_id,
            type=account.type,
            provider=account.provider,
            provider_account_id=account.provider_account_id,
            refresh_token=account.refresh_token,
            access_token=account.access_token,
            expires_at=account.expires_at,
            token_type=account.token_type,
            scope=account.scope,
            id_token=account.id_token,
            session_state=account.session_state,
        ).on_conflict_do_nothing(index_elements=["provider", "provider_account_id"])
        self.db.execute(stmt)
        self._commit()

    def unlink_account(self, provider: str, provider_account_id: str) -> None:
        self.db.execute(
            delete(Account).where(
                Account.provider == provider,
                Account.provider_account_id == provider_account_id,
            )
        )
        self._commit()

    # Sessions

    def create_session(self, session: AdapterSession) -> AdapterSession:
        if session.user_id is None or session.expires is None:
            raise ValidationError("createSession requires user_id and expires")
        row = UserSession(
            session_token=session.session_token,
            user_id=session.user_id,
            expires=session.expires,
        )
        self.db.add(row)
        self._commit()
        self.db.refresh(row)
        return _map_session(row)

    def get_session_and_user(self, session_token: str) -> Optional[SessionAndUser]:
        result = self.db.execute(
            select(UserSession, User)
            .join(User, User.id == UserSession.user_id)
            .where(UserSession.session_token == session_token)
        ).first()
        if result is None:
            return None
        session_row, user_row = result
        return SessionAndUser(session=_map_session(session_row), user=_map_user(user_row))

    def update_session(self, session: AdapterSession) -> Optional[AdapterSession]:
        values = {}
        if session.expires is not None:
            values["expires"] = session.expires
        if session.user_id is not None:
            values["user_id"] = session.user_id

        if values:
            self.db.execute(
                update(UserSession)
                .where(UserSession.session_token == session.session_token)
                .values(**values)
            )
            self._commit()

        row = self.db.get(UserSession, session.session_token, populate_existing=True)
        return _map_session(row) if row else None

    def delete_session(self, session_token: str) -> None:
        self.db.execute(delete(UserSession).where(UserSession.session_token == session_token))
        self._commit()

    # Verification tokens

    def create_verification_token(self, token: VerificationTokenData) -> VerificationTokenData:
        row = VerificationToken(identifier=token.identifier, token=token.token, expires=token.expires)
        self.db.add(row)
        self._commit()
        return VerificationTokenData(identifier=row.identifier, token=row.token, expires=as_utc(row.expires))

    def use_verification_token(self, identifier: str, token: str) -> Optional[VerificationTokenData]:
        """Delete and return the token in one statement; None when already consumed."""
        result = self.db.execute(
            delete(VerificationToken)
            .where(VerificationToken.identifier == identifier, VerificationToken.token == token)
            .returning(VerificationToken.identifier, VerificationToken.token, VerificationToken.expires)
        ).first()
        self._commit()
        if result is None:
            return None
        return VerificationTokenData(identifier=result.identifier, token=result.token, expires=as_utc(result.expires))
