"""
Contract management API routes.

Contractor-only CRUD for contracts inside the active workspace.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ...auth.dependencies import get_contractor_workspace
from ...database.connection import get_db
from ...database.models import Contract
from ...errors import NotFoundError, ValidationError
from ...schemas.auth import StandardResponse
from ...schemas.billing import (
    ContractCreateRequest, ContractResponse, ContractsListResponse, ContractUpdateRequest
)
from ...services.billing import CONTRACT_NOT_FOUND, load_contract, normalize_currency
from ...services.workspace import ActiveWorkspace
from .clients import get_workspace_client

router = APIRouter(prefix="/contracts", tags=["Contracts"])


# PUBLIC_INTERFACE
@router.get("", response_model=ContractsListResponse,
            summary="List contracts",
            description="List contracts of the active workspace, optionally for one client.")
async def list_contracts(
    client_id: Optional[UUID] = Query(None, alias="clientId", description="Filter by client"),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """List contracts, newest first."""
    query = select(Contract).where(Contract.workspace_id == workspace.id)
    if client_id is not None:
        query = query.where(Contract.client_id == client_id)
    contracts = db.scalars(query.order_by(Contract.created_at.desc())).all()
    return ContractsListResponse(contracts=[ContractResponse.model_validate(c) for c in contracts])


# PUBLIC_INTERFACE
@router.post("", response_model=ContractResponse, status_code=status.HTTP_201_CREATED,
             summary="Create contract")
async def create_contract(
    request: ContractCreateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Create a contract for a client of the active workspace."""
    currency = normalize_currency(request.currency)
    get_workspace_client(db, workspace.id, request.client_id)

    contract = Contract(
        workspace_id=workspace.id,
        client_id=request.client_id,
        title=request.title,
        status=request.status,
        hourly_rate_cents=request.hourly_rate_cents,
        monthly_retainer_cents=request.monthly_retainer_cents,
        currency=currency,
    )
    db.add(contract)
    db.commit()
    db.refresh(contract)
    return ContractResponse.model_validate(contract)


# PUBLIC_INTERFACE
@router.get("/{contract_id}", response_model=ContractResponse,
            summary="Get contract")
async def get_contract(
    contract_id: UUID,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Get contract details."""
    return ContractResponse.model_validate(load_contract(db, workspace.id, contract_id))


# PUBLIC_INTERFACE
@router.patch("/{contract_id}", response_model=ContractResponse,
              summary="Update contract",
              description="Partial update. Rates may be set to null explicitly to clear them.")
async def update_contract(
    contract_id: UUID,
    request: ContractUpdateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Update a contract."""
    update_data = request.model_dump(exclude_unset=True)
    if not update_data:
        raise ValidationError("No updates provided.")
    if update_data.get("title", "") is None or update_data.get("status", "") is None:
        raise ValidationError("title and status cannot be null.")
    if "currency" in update_data:
        update_data["currency"] = normalize_currency(update_data["currency"])

    contract = load_contract(db, workspace.id, contract_id)
    for field, value in update_data.items():
        setattr(contract, field, value)

    db.commit()
    db.refresh(contract)
    return ContractResponse.model_validate(contract)


# PUBLIC_INTERFACE
@router.delete("/{contract_id}", response_model=StandardResponse,
               summary="Delete contract",
               description="Delete a contract together with its work logs and invoices.")
async def delete_contract(
    contract_id: UUID,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Delete a contract."""
    result = db.execute(
        delete(Contract).where(Contract.id == contract_id, Contract.workspace_id == workspace.id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError(CONTRACT_NOT_FOUND)
    db.commit()
    return StandardResponse(message=f"Deleted contract {contract_id}")
