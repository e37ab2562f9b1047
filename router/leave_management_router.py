from fastapi import HTTPException, Depends, APIRouter, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging

from Schema.leave_management_schema import (
    LeaveRequestCreate, LeaveRequestListResponse, LeaveRequestSubmitResponse,
    ApprovalAction, ApprovalQueueResponse, CalendarResponse, LeaveReportResponse,
)
from db.database import get_db
from model.usermodels import User, APPROVER_ROLES, MANAGEMENT_ROLES
from service.leave_service import LeaveService, to_response
from utils.token import get_current_user, require_role

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/leave")


@router.get("/requests", response_model=LeaveRequestListResponse)
def get_leave_requests(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Leave requests visible to the caller plus the pending queue for approvers"""
    try:
        requests, pending = LeaveService(db).list_requests(user)
        return LeaveRequestListResponse(
            requests=[to_response(leave) for leave in requests],
            pending_approvals=[to_response(leave) for leave in pending],
        )
    except Exception as e:
        logger.error(f"Error in GET /api/leave/requests: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/requests", response_model=LeaveRequestSubmitResponse)
async def submit_leave_request(
    leave: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Submit a leave request and notify the employee and the approver"""
    try:
        new_request = await LeaveService(db).submit_request(user, leave)
        return LeaveRequestSubmitResponse(
            success=True,
            request=to_response(new_request),
            message="Leave request submitted successfully!",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error in POST /api/leave/requests")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/requests/{request_id}/cancel")
def cancel_leave_request(request_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Withdraw one of the caller's pending requests"""
    try:
        leave = LeaveService(db).cancel_request(user, request_id)
        return {"success": True, "request": to_response(leave), "message": "Leave request cancelled"}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error cancelling leave request {request_id}: {str(e)}")
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/approvals", response_model=ApprovalQueueResponse)
def get_pending_approvals(
    user: User = Depends(require_role(APPROVER_ROLES)),
    db: Session = Depends(get_db)
):
    """Pending requests awaiting a decision"""
    try:
        pending = LeaveService(db).pending_requests(user.business_id)
        return ApprovalQueueResponse(requests=[to_response(leave) for leave in pending])
    except Exception as e:
        logger.error(f"Error in approvals GET: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/approvals")
async def decide_leave_request(
    decision: ApprovalAction,
    user: User = Depends(require_role(APPROVER_ROLES)),
    db: Session = Depends(get_db)
):
    """Approve or reject a pending leave request"""
    try:
        logger.info(
            "Updating leave status",
            extra={"leave_id": decision.request_id, "new_status": decision.action, "approved_by": user.name},
        )
        await LeaveService(db).decide_request(user, decision.request_id, decision.action, decision.comments)
        return {"success": True, "message": f"Request {decision.action.lower()} successfully"}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Failed to update leave status", extra={"leave_id": decision.request_id})
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/calendar", response_model=CalendarResponse)
def get_leave_calendar(
    year: Optional[int] = Query(None, ge=1, le=9999, description="Year (default: current year)"),
    month: Optional[int] = Query(0, description="Month (0=whole year, 1-12=specific month)"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Approved leave for the calendar view"""
    if not year:
        year = datetime.now().year
    if month and not (1 <= month <= 12):
        raise HTTPException(status_code=400, detail="Month must be 1-12")

    try:
        leaves = LeaveService(db).calendar_leaves(user.business_id, year, month or None)
        return CalendarResponse(year=year, month=month or None, leaves=leaves)
    except Exception as e:
        logger.error(f"Error in calendar API: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/reports", response_model=LeaveReportResponse)
def get_leave_reports(
    period: str = Query("current-month"),
    department: str = Query("all"),
    user: User = Depends(require_role(MANAGEMENT_ROLES)),
    db: Session = Depends(get_db)
):
    """Leave statistics for HR and directors"""
    try:
        return LeaveService(db).build_report(user.business_id, period, department)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error in reports API: {str(e)}")
        raise HTTPException(status_code=500, detail="Internal server error")
