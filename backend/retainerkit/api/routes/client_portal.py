"""
Client portal API routes.

Read-only views for client-class users, scoped to their active client.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ...auth.dependencies import get_active_client, get_active_workspace
from ...database.connection import get_db
from ...database.models import Contract, Invoice
from ...errors import NotFoundError
from ...schemas.billing import (
    ContractResponse, ContractsListResponse, InvoiceResponse, InvoicesListResponse
)
from ...services.client_scope import ActiveClient
from ...services.workspace import ActiveWorkspace

router = APIRouter(prefix="/client", tags=["Client Portal"])

NO_CLIENT_MESSAGE = "You are not yet assigned to a client in this workspace."


def _require_client(client: Optional[ActiveClient]) -> ActiveClient:
    if client is None:
        raise NotFoundError(NO_CLIENT_MESSAGE)
    return client


# PUBLIC_INTERFACE
@router.get("/contracts", response_model=ContractsListResponse,
            summary="Client contracts",
            description="Contracts of the caller's active client.")
async def list_client_contracts(
    workspace: ActiveWorkspace = Depends(get_active_workspace),
    active_client: Optional[ActiveClient] = Depends(get_active_client),
    db: Session = Depends(get_db),
):
    """List the active client's contracts."""
    client = _require_client(active_client)
    contracts = db.scalars(
        select(Contract)
        .where(Contract.workspace_id == workspace.id, Contract.client_id == client.id)
        .order_by(Contract.created_at.desc())
    ).all()
    return ContractsListResponse(contracts=[ContractResponse.model_validate(c) for c in contracts])


# PUBLIC_INTERFACE
@router.get("/invoices", response_model=InvoicesListResponse,
            summary="Client invoices",
            description="Invoices on the active client's contracts, latest period first.")
async def list_client_invoices(
    workspace: ActiveWorkspace = Depends(get_active_workspace),
    active_client: Optional[ActiveClient] = Depends(get_active_client),
    db: Session = Depends(get_db),
):
    """List the active client's invoices."""
    client = _require_client(active_client)
    invoices = db.scalars(
        select(Invoice)
        .join(Contract, Contract.id == Invoice.contract_id)
        .where(Invoice.workspace_id == workspace.id, Contract.client_id == client.id)
        .order_by(Invoice.period_end.desc(), Invoice.created_at.desc())
    ).all()
    return InvoicesListResponse(invoices=[InvoiceResponse.model_validate(i) for i in invoices])
