"""
Contract, work log and invoice Pydantic schemas.

Request bodies use the camelCase field names of the public API; responses
mirror the stored rows.
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import AliasChoices, BaseModel, Field
from uuid import UUID

from ..database.models import ContractStatus, InvoiceStatus


class CamelRequest(BaseModel):
    """Base for camelCase request bodies that also accept field names."""

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class ContractCreateRequest(CamelRequest):
    """Contract creation request schema."""
    client_id: UUID = Field(..., alias="clientId", description="Client ID")
    title: str = Field(..., min_length=1, max_length=160, description="Contract title")
    status: ContractStatus = Field(ContractStatus.ACTIVE, description="Contract status")
    hourly_rate_cents: Optional[int] = Field(None, ge=0, le=100_000_000, alias="hourlyRateCents",
                                             description="Hourly rate in minor units")
    monthly_retainer_cents: Optional[int] = Field(None, ge=0, le=1_000_000_000, alias="monthlyRetainerCents",
                                                  description="Monthly retainer in minor units")
    currency: str = Field("USD", description="ISO currency code")


class ContractUpdateRequest(CamelRequest):
    """Contract update request schema. Omitted fields are left unchanged."""
    title: Optional[str] = Field(None, min_length=1, max_length=160, description="Contract title")
    status: Optional[ContractStatus] = Field(None, description="Contract status")
    hourly_rate_cents: Optional[int] = Field(None, ge=0, le=100_000_000, alias="hourlyRateCents",
                                             description="Hourly rate in minor units")
    monthly_retainer_cents: Optional[int] = Field(None, ge=0, le=1_000_000_000, alias="monthlyRetainerCents",
                                                  description="Monthly retainer in minor units")
    currency: Optional[str] = Field(None, description="ISO currency code")


class ContractResponse(BaseModel):
    """Contract response schema."""
    id: UUID = Field(..., description="Contract ID")
    workspace_id: UUID = Field(..., description="Workspace ID")
    client_id: UUID = Field(..., description="Client ID")
    title: str = Field(..., description="Contract title")
    status: ContractStatus = Field(..., description="Contract status")
    hourly_rate_cents: Optional[int] = Field(None, description="Hourly rate in minor units")
    monthly_retainer_cents: Optional[int] = Field(None, description="Monthly retainer in minor units")
    currency: str = Field(..., description="ISO currency code")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class ContractsListResponse(BaseModel):
    """Contracts list response schema."""
    contracts: List[ContractResponse] = Field(..., description="List of contracts")


class WorkLogCreateRequest(CamelRequest):
    """Work log creation request schema."""
    contract_id: UUID = Field(..., alias="contractId", description="Contract ID")
    work_date: date = Field(..., alias="workDate", description="Day the work was done (YYYY-MM-DD)")
    minutes: int = Field(..., ge=1, le=1440, description="Duration in minutes")
    description: str = Field(..., min_length=1, max_length=4000, description="What was done")


class WorkLogUpdateRequest(CamelRequest):
    """Work log update request schema."""
    work_date: Optional[date] = Field(None, alias="workDate", description="Day the work was done")
    minutes: Optional[int] = Field(None, ge=1, le=1440, description="Duration in minutes")
    description: Optional[str] = Field(None, min_length=1, max_length=4000, description="What was done")


class WorkLogResponse(BaseModel):
    """Work log response schema."""
    id: UUID = Field(..., description="Work log ID")
    workspace_id: UUID = Field(..., description="Workspace ID")
    contract_id: UUID = Field(..., description="Contract ID")
    work_date: date = Field(..., description="Day the work was done")
    minutes: int = Field(..., description="Duration in minutes")
    description: str = Field(..., description="What was done")
    created_by_user_id: Optional[UUID] = Field(None, description="Author")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class WorkLogsListResponse(BaseModel):
    """Work logs list response schema."""
    work_logs: List[WorkLogResponse] = Field(..., alias="workLogs", description="List of work logs")

    class Config:
        populate_by_name = True


class InvoiceCreateRequest(CamelRequest):
    """Manual invoice creation request schema."""
    contract_id: UUID = Field(..., alias="contractId", description="Contract ID")
    period_start: date = Field(..., alias="periodStart", description="First billed day")
    period_end: date = Field(..., alias="periodEnd", description="Last billed day")
    amount_cents: int = Field(0, alias="amountCents", description="Amount in minor units")
    currency: str = Field("USD", description="ISO currency code")
    status: InvoiceStatus = Field(InvoiceStatus.DRAFT, description="Invoice status")


class InvoiceUpdateRequest(CamelRequest):
    """Invoice update request schema. Omitted fields are left unchanged."""
    contract_id: Optional[UUID] = Field(None, alias="contractId", description="Contract ID")
    period_start: Optional[date] = Field(None, alias="periodStart", description="First billed day")
    period_end: Optional[date] = Field(None, alias="periodEnd", description="Last billed day")
    amount_cents: Optional[int] = Field(None, alias="amountCents", description="Amount in minor units")
    currency: Optional[str] = Field(None, description="ISO currency code")
    status: Optional[InvoiceStatus] = Field(None, description="Invoice status")


class InvoiceGenerateRequest(CamelRequest):
    """Invoice generation request schema."""
    contract_id: UUID = Field(..., alias="contractId", description="Contract ID")
    period_start: date = Field(..., alias="periodStart", description="First billed day (inclusive)")
    period_end: date = Field(..., alias="periodEnd", description="Last billed day (inclusive)")
    hourly_rate_cents: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("hourlyRateCents", "hourlyRateCentsOverride", "hourly_rate_cents"),
        description="Rate override in minor units",
    )
    currency: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("currency", "currencyOverride"),
        description="Currency override",
    )
    preview: bool = Field(False, description="Compute without storing")


class InvoiceResponse(BaseModel):
    """Invoice response schema."""
    id: UUID = Field(..., description="Invoice ID")
    workspace_id: UUID = Field(..., description="Workspace ID")
    contract_id: UUID = Field(..., description="Contract ID")
    period_start: date = Field(..., description="First billed day")
    period_end: date = Field(..., description="Last billed day")
    amount_cents: int = Field(..., description="Amount in minor units")
    currency: str = Field(..., description="ISO currency code")
    status: InvoiceStatus = Field(..., description="Invoice status")
    created_by_user_id: Optional[UUID] = Field(None, description="Author")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class InvoicesListResponse(BaseModel):
    """Invoices list response schema."""
    invoices: List[InvoiceResponse] = Field(..., description="List of invoices")
