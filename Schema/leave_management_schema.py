from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, validator

# Pydantic Models
class LeaveRequestCreate(BaseModel):
    # presence is checked by the service so a missing field answers "Missing required fields"
    leave_type: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    emergency_contact: Optional[str] = None
    work_handover: Optional[str] = None

    @validator('leave_type')
    def normalize_leave_type(cls, v):
        return v.strip().upper() if v else v

class LeaveRequestResponse(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    department: Optional[str] = None
    leave_type: str
    start_date: date
    end_date: date
    duration: int
    reason: str
    emergency_contact: Optional[str] = None
    work_handover: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    comments: Optional[str] = None

    class Config:
        from_attributes = True

class LeaveRequestListResponse(BaseModel):
    requests: List[LeaveRequestResponse]
    pending_approvals: List[LeaveRequestResponse] = []

class LeaveRequestSubmitResponse(BaseModel):
    success: bool
    request: LeaveRequestResponse
    message: str

class ApprovalAction(BaseModel):
    request_id: int
    action: str
    comments: Optional[str] = None

    @validator('action')
    def normalize_action(cls, v):
        return v.strip().upper() if v else v

class ApprovalQueueResponse(BaseModel):
    requests: List[LeaveRequestResponse]

class CalendarLeave(BaseModel):
    id: int
    employee_name: str
    start_date: date
    end_date: date
    leave_type: str
    status: str

class CalendarResponse(BaseModel):
    year: int
    month: Optional[int] = None
    leaves: List[CalendarLeave]

class ReportSummary(BaseModel):
    total_requests: int
    approved_requests: int
    pending_requests: int
    rejected_requests: int
    average_processing_time: float

class LeaveTypeCount(BaseModel):
    type: str
    count: int

class MonthlyTrend(BaseModel):
    month: str
    requests: int

class DepartmentStat(BaseModel):
    department: str
    total_requests: int
    approved: int
    pending: int
    rejected: int
    average_days: float

class LeaveReportResponse(BaseModel):
    period: str
    department: str
    summary: ReportSummary
    leave_types: List[LeaveTypeCount]
    monthly_trends: List[MonthlyTrend]
    department_stats: List[DepartmentStat]
