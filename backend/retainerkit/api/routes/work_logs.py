"""
Work log API routes.

Contractor-only time entries recorded against contracts of the active workspace.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ...auth.dependencies import CurrentUser, get_contractor_workspace, get_current_user
from ...database.connection import get_db
from ...database.models import WorkLog
from ...errors import NotFoundError, ValidationError
from ...schemas.auth import StandardResponse
from ...schemas.billing import (
    WorkLogCreateRequest, WorkLogResponse, WorkLogsListResponse, WorkLogUpdateRequest
)
from ...services.billing import load_contract
from ...services.workspace import ActiveWorkspace

router = APIRouter(prefix="/work-logs", tags=["Work Logs"])

WORK_LOG_NOT_FOUND = "Work log not found"


def _get_work_log(db: Session, workspace_id: UUID, work_log_id: UUID) -> WorkLog:
    work_log = db.scalars(
        select(WorkLog).where(WorkLog.id == work_log_id, WorkLog.workspace_id == workspace_id)
    ).first()
    if work_log is None:
        raise NotFoundError(WORK_LOG_NOT_FOUND)
    return work_log


# PUBLIC_INTERFACE
@router.get("", response_model=WorkLogsListResponse,
            summary="List work logs",
            description="List work logs of the active workspace, latest work date first.")
async def list_work_logs(
    contract_id: Optional[UUID] = Query(None, alias="contractId", description="Filter by contract"),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """List work logs."""
    query = select(WorkLog).where(WorkLog.workspace_id == workspace.id)
    if contract_id is not None:
        query = query.where(WorkLog.contract_id == contract_id)
    work_logs = db.scalars(query.order_by(WorkLog.work_date.desc(), WorkLog.created_at.desc())).all()
    return WorkLogsListResponse(work_logs=[WorkLogResponse.model_validate(w) for w in work_logs])


# PUBLIC_INTERFACE
@router.post("", response_model=WorkLogResponse, status_code=status.HTTP_201_CREATED,
             summary="Create work log")
async def create_work_log(
    request: WorkLogCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Record time against a contract of the active workspace."""
    load_contract(db, workspace.id, request.contract_id)

    work_log = WorkLog(
        workspace_id=workspace.id,
        contract_id=request.contract_id,
        work_date=request.work_date,
        minutes=request.minutes,
        description=request.description,
        created_by_user_id=current_user.user_id,
    )
    db.add(work_log)
    db.commit()
    db.refresh(work_log)
    return WorkLogResponse.model_validate(work_log)


# PUBLIC_INTERFACE
@router.patch("/{work_log_id}", response_model=WorkLogResponse,
              summary="Update work log")
async def update_work_log(
    work_log_id: UUID,
    request: WorkLogUpdateRequest,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Update a work log. Omitted fields are left unchanged."""
    update_data = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None}
    if not update_data:
        raise ValidationError("No updates provided.")

    work_log = _get_work_log(db, workspace.id, work_log_id)
    for field, value in update_data.items():
        setattr(work_log, field, value)

    db.commit()
    db.refresh(work_log)
    return WorkLogResponse.model_validate(work_log)


# PUBLIC_INTERFACE
@router.delete("/{work_log_id}", response_model=StandardResponse,
               summary="Delete work log")
async def delete_work_log(
    work_log_id: UUID,
    workspace: ActiveWorkspace = Depends(get_contractor_workspace),
    db: Session = Depends(get_db),
):
    """Delete a work log."""
    result = db.execute(
        delete(WorkLog).where(WorkLog.id == work_log_id, WorkLog.workspace_id == workspace.id)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError(WORK_LOG_NOT_FOUND)
    db.commit()
    return StandardResponse(message=f"Deleted work log {work_log_id}")
