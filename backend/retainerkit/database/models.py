"""
SQLAlchemy database models for RetainerKit.

Defines the identity tables consumed by the session layer (users, linked
accounts, sessions, verification tokens) and the tenant-scoped billing
tables (workspaces, memberships, clients, contracts, work logs, invoices).
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DDL, CheckConstraint, Column, Date, DateTime, Enum, ForeignKey, Index, Integer,
    String, Text, UniqueConstraint, Uuid, event
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_type(enum_cls, name: str) -> Enum:
    """Store enum values ("owner"), not member names ("OWNER")."""
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class WorkspaceRole(str, enum.Enum):
    """Roles within a workspace."""
    OWNER = "owner"
    CONTRACTOR = "contractor"
    CLIENT = "client"


class ClientRole(str, enum.Enum):
    """Roles within a billing client."""
    CLIENT_ADMIN = "client_admin"
    CLIENT_USER = "client_user"


class ContractStatus(str, enum.Enum):
    """Contract lifecycle."""
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class InvoiceStatus(str, enum.Enum):
    """Invoice lifecycle."""
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    VOID = "void"


class User(Base):
    """Identity record shared by every workspace the user belongs to."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=False, unique=True)
    email_verified = Column(DateTime(timezone=True), nullable=True)
    image = Column(Text, nullable=True)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    # Relationships
    accounts = relationship("Account", back_populates="user", passive_deletes=True)
    sessions = relationship("UserSession", back_populates="user", passive_deletes=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Account(Base):
    """Federated identity link (provider + provider account id) to one user."""
    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    provider = Column(String(100), nullable=False)
    provider_account_id = Column(String(255), nullable=False)
    refresh_token = Column(Text, nullable=True)
    access_token = Column(Text, nullable=True)
    expires_at = Column(Integer, nullable=True)
    token_type = Column(String(50), nullable=True)
    scope = Column(Text, nullable=True)
    id_token = Column(Text, nullable=True)
    session_state = Column(Text, nullable=True)

    user = relationship("User", back_populates="accounts")

    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="uq_account_provider_account"),
        Index("idx_account_user", "user_id"),
    )

    def __repr__(self):
        return f"<Account(provider='{self.provider}', user_id={self.user_id})>"


class UserSession(Base):
    """One row per active browser session."""
    __tablename__ = "sessions"

    session_token = Column(String(255), primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="sessions")

    __table_args__ = (
        Index("idx_session_user", "user_id"),
    )

    def __repr__(self):
        return f"<UserSession(user_id={self.user_id}, expires={self.expires})>"


class VerificationToken(Base):
    """Single-use token (magic link, email verification)."""
    __tablename__ = "verification_tokens"

    identifier = Column(String(320), primary_key=True)
    token = Column(String(255), primary_key=True)
    expires = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<VerificationToken(identifier='{self.identifier}')>"


class Workspace(Base):
    """Tenant boundary. At most one workspace per owner."""
    __tablename__ = "workspaces"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    owner_user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    members = relationship("WorkspaceMember", back_populates="workspace", passive_deletes=True)
    clients = relationship("Client", back_populates="workspace", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("owner_user_id", name="uq_workspace_owner"),
    )

    def __repr__(self):
        return f"<Workspace(id={self.id}, name='{self.name}')>"


class WorkspaceMember(Base):
    """Membership of a user in a workspace with a workspace role."""
    __tablename__ = "workspace_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(_enum_type(WorkspaceRole, "workspace_role"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    workspace = relationship("Workspace", back_populates="members")

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
        Index("idx_workspace_member_user", "user_id"),
    )

    def __repr__(self):
        return f"<WorkspaceMember(workspace_id={self.workspace_id}, user_id={self.user_id}, role={self.role})>"


class Client(Base):
    """Billing client inside a workspace."""
    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(120), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    workspace = relationship("Workspace", back_populates="clients")
    contracts = relationship("Contract", back_populates="client", passive_deletes=True)

    __table_args__ = (
        Index("idx_client_workspace", "workspace_id"),
    )

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}', workspace_id={self.workspace_id})>"


class ClientMember(Base):
    """Links a client-class user to a billing client."""
    __tablename__ = "client_members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    client_role = Column(_enum_type(ClientRole, "client_role"), nullable=False, default=ClientRole.CLIENT_USER)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("client_id", "user_id", name="uq_client_member"),
        Index("idx_client_member_user", "user_id"),
    )

    def __repr__(self):
        return f"<ClientMember(client_id={self.client_id}, user_id={self.user_id})>"


class Contract(Base):
    """Engagement terms between the workspace and one client."""
    __tablename__ = "contracts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(160), nullable=False)
    status = Column(_enum_type(ContractStatus, "contract_status"), nullable=False, default=ContractStatus.ACTIVE)
    hourly_rate_cents = Column(Integer, nullable=True)
    monthly_retainer_cents = Column(Integer, nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    client = relationship("Client", back_populates="contracts")

    __table_args__ = (
        Index("idx_contract_workspace_client", "workspace_id", "client_id"),
    )

    def __repr__(self):
        return f"<Contract(id={self.id}, title='{self.title}', client_id={self.client_id})>"


class WorkLog(Base):
    """Time entry recorded against a contract."""
    __tablename__ = "work_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    contract_id = Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False)
    work_date = Column(Date, nullable=False)
    minutes = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("minutes >= 1 AND minutes <= 1440", name="ck_work_log_minutes"),
        Index("idx_work_log_workspace_contract_date", "workspace_id", "contract_id", "work_date"),
    )

    def __repr__(self):
        return f"<WorkLog(id={self.id}, contract_id={self.contract_id}, minutes={self.minutes})>"


class Invoice(Base):
    """Invoice for a closed date interval of one contract."""
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False)
    contract_id = Column(Uuid, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    amount_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(_enum_type(InvoiceStatus, "invoice_status"), nullable=False, default=InvoiceStatus.DRAFT)
    created_by_user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("period_start <= period_end", name="ck_invoice_period_order"),
        CheckConstraint("amount_cents >= 0", name="ck_invoice_amount_non_negative"),
        Index("idx_invoice_workspace_contract_period", "workspace_id", "contract_id", "period_start"),
    )

    def __repr__(self):
        return f"<Invoice(id={self.id}, contract_id={self.contract_id}, {self.period_start}..{self.period_end})>"


INVOICE_OVERLAP_ERROR = "invoice period overlaps another invoice on the contract"

_INVOICE_OVERLAP_SQL = """
    SELECT 1 FROM invoices
    WHERE contract_id = NEW.contract_id
      AND NOT (period_end < NEW.period_start OR period_start > NEW.period_end)
"""

# SQLite ignores FOR UPDATE, so the non-overlap rule is checked inside the
# writing statement itself, under SQLite's database write lock.
event.listen(
    Invoice.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS trg_invoice_no_overlap_insert "
        "BEFORE INSERT ON invoices "
        f"WHEN EXISTS ({_INVOICE_OVERLAP_SQL}) "
        f"BEGIN SELECT RAISE(ABORT, '{INVOICE_OVERLAP_ERROR}'); END"
    ).execute_if(dialect="sqlite"),
)
event.listen(
    Invoice.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS trg_invoice_no_overlap_update "
        "BEFORE UPDATE OF contract_id, period_start, period_end ON invoices "
        f"WHEN EXISTS ({_INVOICE_OVERLAP_SQL} AND id <> NEW.id) "
        f"BEGIN SELECT RAISE(ABORT, '{INVOICE_OVERLAP_ERROR}'); END"
    ).execute_if(dialect="sqlite"),
)
