from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
from fastapi import HTTPException
from sqlalchemy import and_
from sqlalchemy.orm import Session
import calendar
import logging

from model.leave_model import LeaveRequest, LeaveStatus
from model.usermodels import User, UserRole, APPROVER_ROLES
from Schema.leave_management_schema import (
    LeaveRequestCreate, LeaveRequestResponse, CalendarLeave, LeaveReportResponse,
    ReportSummary, LeaveTypeCount, MonthlyTrend, DepartmentStat,
)
from service.notification_service import (
    create_leave_request_notification,
    create_approval_required_notification,
    create_leave_approved_notification,
    create_leave_rejected_notification,
)

logger = logging.getLogger(__name__)

REPORT_PERIODS = ("current-month", "last-month", "current-quarter", "current-year", "all")
DECISION_ACTIONS = (LeaveStatus.APPROVED.value, LeaveStatus.REJECTED.value)


def calculate_duration(start_date: date, end_date: date) -> int:
    """Inclusive number of calendar days between start and end"""
    return (end_date - start_date).days + 1


def report_window(period: str, today: date) -> Tuple[Optional[date], Optional[date]]:
    """Return the [start, end) submission window for a report period"""
    if period == "current-month":
        start = today.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1)
    elif period == "last-month":
        end = today.replace(day=1)
        start = (end - timedelta(days=1)).replace(day=1)
    elif period == "current-quarter":
        first_month = 3 * ((today.month - 1) // 3) + 1
        start = date(today.year, first_month, 1)
        end = date(today.year + 1, 1, 1) if first_month == 10 else date(today.year, first_month + 3, 1)
    elif period == "current-year":
        start = date(today.year, 1, 1)
        end = date(today.year + 1, 1, 1)
    else:
        return None, None
    return start, end


def to_response(leave: LeaveRequest) -> LeaveRequestResponse:
    response = LeaveRequestResponse.model_validate(leave)
    if leave.employee is not None:
        response.employee_name = leave.employee.name
        response.department = leave.employee.department
    return response


def notification_data(leave: LeaveRequest, approver_name: Optional[str] = None) -> dict:
    data = {
        "employee_name": leave.employee.name if leave.employee else "",
        "leave_type": leave.leave_type,
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
        "duration": leave.duration,
        "reason": leave.reason,
    }
    if approver_name is not None:
        data["approver_name"] = approver_name
    return data


class LeaveService:
    def __init__(self, db: Session):
        self.db = db

    def get_request(self, request_id: int, business_id: Optional[str] = None) -> Optional[LeaveRequest]:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.id == request_id)
        if business_id:
            query = query.filter(LeaveRequest.business_id == business_id)
        return query.first()

    def list_requests(self, user: User) -> Tuple[List[LeaveRequest], List[LeaveRequest]]:
        """Requests visible to the user and, for approvers, the pending queue"""
        query = self.db.query(LeaveRequest).filter(LeaveRequest.business_id == user.business_id)
        if user.role == UserRole.EMPLOYEE.value:
            query = query.filter(LeaveRequest.employee_id == user.id)
        requests = query.order_by(LeaveRequest.submitted_at.desc(), LeaveRequest.id.desc()).all()

        pending = []
        if user.role in APPROVER_ROLES:
            pending = self.pending_requests(user.business_id)
        return requests, pending

    def pending_requests(self, business_id: str) -> List[LeaveRequest]:
        return (
            self.db.query(LeaveRequest)
            .filter(
                LeaveRequest.business_id == business_id,
                LeaveRequest.status == LeaveStatus.PENDING.value
            )
            .order_by(LeaveRequest.submitted_at.asc(), LeaveRequest.id.asc())
            .all()
        )

    def resolve_approver(self, employee: User) -> Optional[User]:
        """Direct supervisor, else a supervisor of the department, else HR"""
        if employee.supervisor_id:
            supervisor = self.db.query(User).filter(
                User.id == employee.supervisor_id,
                User.is_active == True
            ).first()
            if supervisor:
                return supervisor

        supervisor = self.db.query(User).filter(
            User.business_id == employee.business_id,
            User.department == employee.department,
            User.role == UserRole.SUPERVISOR.value,
            User.is_active == True,
            User.id != employee.id
        ).order_by(User.id).first()
        if supervisor:
            return supervisor

        return self.db.query(User).filter(
            User.business_id == employee.business_id,
            User.role == UserRole.HR.value,
            User.is_active == True,
            User.id != employee.id
        ).order_by(User.id).first()

    async def submit_request(self, user: User, payload: LeaveRequestCreate) -> LeaveRequest:
        if not payload.leave_type or not payload.start_date or not payload.end_date or not payload.reason:
            raise HTTPException(status_code=400, detail="Missing required fields")

        if payload.end_date < payload.start_date:
            raise HTTPException(status_code=400, detail="End date must be on or after start date")

        leave = LeaveRequest(
            employee_id=user.id,
            business_id=user.business_id,
            leave_type=payload.leave_type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            duration=calculate_duration(payload.start_date, payload.end_date),
            reason=payload.reason,
            emergency_contact=payload.emergency_contact or "",
            work_handover=payload.work_handover or "",
            status=LeaveStatus.PENDING.value,
            submitted_at=datetime.utcnow(),
        )
        self.db.add(leave)
        self.db.commit()
        self.db.refresh(leave)

        logger.info(
            "Leave request created",
            extra={"leave_id": leave.id, "employee_id": user.id, "duration": leave.duration},
        )

        await create_leave_request_notification(self.db, user.id, leave.id, notification_data(leave))

        approver = self.resolve_approver(user)
        if approver:
            await create_approval_required_notification(
                self.db, approver.id, leave.id, notification_data(leave, approver_name=approver.name)
            )
        else:
            logger.warning(f"No approver found for employee {user.id}; approval notification skipped")

        return leave

    async def decide_request(self, approver: User, request_id: int, action: str, comments: Optional[str] = None) -> LeaveRequest:
        """Apply an APPROVED/REJECTED decision to a pending request and notify the employee"""
        if action not in DECISION_ACTIONS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid action '{action}'. Allowed: {', '.join(DECISION_ACTIONS)}",
            )

        leave = self.get_request(request_id, approver.business_id)
        if not leave:
            raise HTTPException(status_code=404, detail="Request not found")

        now = datetime.utcnow()
        values = {
            LeaveRequest.status: action,
            LeaveRequest.approved_by: approver.name,
            LeaveRequest.approver_id: approver.id,
            LeaveRequest.approved_at: now,
            LeaveRequest.comments: comments,
            LeaveRequest.updated_at: now,
        }
        if action == LeaveStatus.REJECTED.value:
            values[LeaveRequest.rejection_reason] = comments

        # conditional write: only one concurrent decision can move a request out of PENDING
        updated = self.db.query(LeaveRequest).filter(
            LeaveRequest.id == leave.id,
            LeaveRequest.status == LeaveStatus.PENDING.value
        ).update(values, synchronize_session=False)

        if updated == 0:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=f"Request is already {leave.status.lower()}")

        self.db.commit()
        self.db.refresh(leave)

        logger.info(
            "Leave status updated successfully",
            extra={"leave_id": leave.id, "persisted_status": leave.status, "approved_by": leave.approved_by},
        )

        data = notification_data(leave, approver_name=approver.name)
        data["rejection_reason"] = comments or ""
        if action == LeaveStatus.APPROVED.value:
            await create_leave_approved_notification(self.db, leave.employee_id, leave.id, data)
        else:
            await create_leave_rejected_notification(self.db, leave.employee_id, leave.id, data)

        return leave

    def cancel_request(self, user: User, request_id: int) -> LeaveRequest:
        leave = self.get_request(request_id, user.business_id)
        if not leave:
            raise HTTPException(status_code=404, detail="Request not found")
        if leave.employee_id != user.id:
            raise HTTPException(status_code=403, detail="Forbidden")

        updated = self.db.query(LeaveRequest).filter(
            LeaveRequest.id == leave.id,
            LeaveRequest.status == LeaveStatus.PENDING.value
        ).update(
            {LeaveRequest.status: LeaveStatus.CANCELLED.value, LeaveRequest.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
        if updated == 0:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="Only pending requests can be cancelled")

        self.db.commit()
        self.db.refresh(leave)
        logger.info(f"Leave request {leave.id} cancelled by employee {user.id}")
        return leave

    def calendar_leaves(self, business_id: str, year: int, month: Optional[int] = None) -> List[CalendarLeave]:
        """Approved leave overlapping the month (or the whole year when month is empty)"""
        if month:
            window_start = date(year, month, 1)
            window_end = date(year, month, calendar.monthrange(year, month)[1])
        else:
            window_start = date(year, 1, 1)
            window_end = date(year, 12, 31)

        leaves = (
            self.db.query(LeaveRequest)
            .filter(
                LeaveRequest.business_id == business_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date <= window_end,
                LeaveRequest.end_date >= window_start
            )
            .order_by(LeaveRequest.start_date)
            .all()
        )

        return [
            CalendarLeave(
                id=leave.id,
                employee_name=leave.employee.name if leave.employee else "",
                start_date=leave.start_date,
                end_date=leave.end_date,
                leave_type=leave.leave_type,
                status=leave.status,
            )
            for leave in leaves
        ]

    def build_report(self, business_id: str, period: str = "current-month", department: str = "all",
                     today: Optional[date] = None) -> LeaveReportResponse:
        if period not in REPORT_PERIODS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid period '{period}'. Allowed: {', '.join(REPORT_PERIODS)}",
            )

        today = today or datetime.utcnow().date()
        query = self.db.query(LeaveRequest).join(User, LeaveRequest.employee_id == User.id).filter(
            LeaveRequest.business_id == business_id
        )

        window_start, window_end = report_window(period, today)
        if window_start:
            query = query.filter(
                and_(
                    LeaveRequest.submitted_at >= datetime.combine(window_start, datetime.min.time()),
                    LeaveRequest.submitted_at < datetime.combine(window_end, datetime.min.time())
                )
            )
        if department and department != "all":
            query = query.filter(User.department == department)

        leaves = query.order_by(LeaveRequest.submitted_at).all()

        def count(status, rows):
            return sum(1 for leave in rows if leave.status == status)

        processing_days = [
            (leave.approved_at - leave.submitted_at).total_seconds() / 86400
            for leave in leaves
            if leave.approved_at and leave.submitted_at
            and leave.status in DECISION_ACTIONS
        ]
        average_processing = round(sum(processing_days) / len(processing_days), 1) if processing_days else 0.0

        type_counts = OrderedDict()
        monthly = OrderedDict()
        departments = OrderedDict()
        for leave in leaves:
            type_counts[leave.leave_type] = type_counts.get(leave.leave_type, 0) + 1
            month_label = leave.submitted_at.strftime("%Y-%m")
            monthly[month_label] = monthly.get(month_label, 0) + 1
            departments.setdefault(leave.employee.department or "Unassigned", []).append(leave)

        department_stats = []
        for name, rows in departments.items():
            department_stats.append(DepartmentStat(
                department=name,
                total_requests=len(rows),
                approved=count(LeaveStatus.APPROVED.value, rows),
                pending=count(LeaveStatus.PENDING.value, rows),
                rejected=count(LeaveStatus.REJECTED.value, rows),
                average_days=round(sum(leave.duration for leave in rows) / len(rows), 1),
            ))

        return LeaveReportResponse(
            period=period,
            department=department or "all",
            summary=ReportSummary(
                total_requests=len(leaves),
                approved_requests=count(LeaveStatus.APPROVED.value, leaves),
                pending_requests=count(LeaveStatus.PENDING.value, leaves),
                rejected_requests=count(LeaveStatus.REJECTED.value, leaves),
                average_processing_time=average_processing,
            ),
            leave_types=[
                LeaveTypeCount(type=leave_type, count=total)
                for leave_type, total in sorted(type_counts.items(), key=lambda item: -item[1])
            ],
            monthly_trends=[MonthlyTrend(month=label, requests=total) for label, total in monthly.items()],
            department_stats=department_stats,
        )
