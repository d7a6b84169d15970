"""
Invoice API routes.

Contractor-only invoice listing, manual creation, generation from work
logs, updates and deletion. Every write that places an invoice period on a
contract goes through the billing engine's overlap guard.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ...auth.dependencies import CurrentUser, get_contractor_workspace, get_current_user
from ...database.connection import get_db
from ...database.models import Invoice
from ...errors import NotFoundError
from ...schemas.auth import StandardResponse
from ...schemas.billing import (
    InvoiceCreateRequest, InvoiceGenerateRequest, InvoiceResponse,
    InvoicesListResponse, InvoiceUpdateRequest
)
from ...services.billing import create_invoice, generate_invoice, update_invoice
from ...services.workspace import ActiveWorkspace

router = APIRouter(prefix="/invoices", tags=["Invoices"])


# PUBLIC_INTERFACE
@router.get("", response_model=InvoicesListResponse,
            summary="List invoices",
            description="List invoices of the active workspace, latest period first.")
async def list_invoices(
    contract_id: Optional[UUID] = Query(None, alias="contractId", description="Filter by contract"),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """List invoices."""
    query = select(Invoice).where(Invoice.workspace_id == workspace.id)
    if contract_id is not None:
        query = query.where(Invoice.contract_id == contract_id)
    invoices = db.scalars(query.order_by(Invoice.period_end.desc(), Invoice.created_at.desc())).all()
    return InvoicesListResponse(invoices=[InvoiceResponse.model_validate(i) for i in invoices])


# PUBLIC_INTERFACE
@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED,
             summary="Create invoice",
             description="Store a manually priced invoice. Overlapping periods on the same contract are rejected.")
async def create_manual_invoice(
    request: InvoiceCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Create an invoice with an explicit amount."""
    invoice = create_invoice(
        db,
        workspace.id,
        request.contract_id,
        request.period_start,
        request.period_end,
        amount_cents=request.amount_cents,
        currency=request.currency,
        status=request.status,
        created_by_user_id=current_user.user_id,
    )
    return InvoiceResponse.model_validate(invoice)


# PUBLIC_INTERFACE
@router.post("/generate",
             summary="Generate invoice from work logs",
             description=(
                 "Sum the contract's work logs in the inclusive period and price them at the hourly rate. "
                 "With preview=true the breakdown is returned and nothing is stored."
             ),
             responses={201: {"description": "Draft invoice stored"}, 200: {"description": "Preview only"}})
async def generate_invoice_from_logs(
    request: InvoiceGenerateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """
    Generate an invoice.

    Returns:
        JSONResponse: ``{"preview": breakdown}`` with 200, or
        ``{"invoice": invoice, "breakdown": breakdown}`` with 201
    """
    result = generate_invoice(
        db,
        workspace.id,
        request.contract_id,
        request.period_start,
        request.period_end,
        hourly_rate_cents_override=request.hourly_rate_cents,
        currency_override=request.currency,
        preview=request.preview,
        created_by_user_id=current_user.user_id,
    )

    if result.is_preview:
        return JSONResponse(status_code=status.HTTP_200_OK, content={"preview": result.breakdown.to_dict()})

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "invoice": jsonable_encoder(InvoiceResponse.model_validate(result.invoice)),
            "breakdown": result.breakdown.to_dict(),
        },
    )


# PUBLIC_INTERFACE
@router.patch("/{invoice_id}", response_model=InvoiceResponse,
              summary="Update invoice")
async def patch_invoice(
    invoice_id: UUID,
    request: InvoiceUpdateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Update an invoice. Null and omitted fields are left unchanged."""
    changes = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    invoice = update_invoice(db, workspace.id, invoice_id, changes)
    return InvoiceResponse.model_validate(invoice)


# PUBLIC_INTERFACE
@router.delete("/{invoice_id}", response_model=StandardResponse,
               summary="Delete invoice")
async def delete_invoice(
    invoice_id: UUID,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Delete an invoice."""
    result = db.execute(
        delete(Invoice).where(Invoice.id == invoice_id, Invoice.workspace_id == workspace.id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError("Invoice not found")
    db.commit()
    return StandardResponse(message=f"Deleted invoice {invoice_id}")
