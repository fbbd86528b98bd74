from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List
from app.core.database import get_db
from app.models.user import User
from app.schemas.timesheet import RejectRequest, TimesheetDetail
from app.services import approval_service
from app.services.export_service import export_service, EXPORTABLE_STATUSES
from app.api.deps import get_manager_user
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/approvals", tags=["Approvals"])


@router.get("/pending", response_model=List[TimesheetDetail])
async def list_pending(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Pending timesheets the current approver is responsible for, newest first."""
    return approval_service.pending_queue(db, current_user)


@router.get("/approved", response_model=List[TimesheetDetail])
async def list_approved(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    return approval_service.approved_list(db, current_user)


@router.post("/{timesheet_id}/approve", response_model=TimesheetDetail)
async def approve_timesheet(
    timesheet_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Approve a pending timesheet."""
    return approval_service.approve(db, current_user, timesheet_id)


@router.post("/{timesheet_id}/reject", response_model=TimesheetDetail)
async def reject_timesheet(
    timesheet_id: int,
    data: RejectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Reject a pending timesheet with a reason shown to its owner."""
    return approval_service.reject(db, current_user, timesheet_id, data.reason)


@router.get("/export")
async def export_timesheets(
    status_filter: str = Query("approved", alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_manager_user)
):
    """Download the approved list or the pending queue as CSV."""
    if status_filter not in EXPORTABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Status must be one of: {', '.join(EXPORTABLE_STATUSES)}"
        )

    if status_filter == "approved":
        timesheets = approval_service.approved_list(db, current_user)
    else:
        timesheets = approval_service.pending_queue(db, current_user)

    csv_buffer = export_service.export_timesheets_csv(timesheets)
    filename = export_service.export_filename(status_filter)
    logger.info(f"User {current_user.id} exported {len(timesheets)} {status_filter} timesheet(s)")

    return StreamingResponse(
        csv_buffer,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
