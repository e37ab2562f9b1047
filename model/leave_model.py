from datetime import datetime
from enum import Enum as pyEnum
from sqlalchemy import Column, DateTime, Integer, String, Date, ForeignKey, Text
from sqlalchemy.orm import relationship
from db.database import Base


class LeaveStatus(str, pyEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


# Database Models
class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id", onupdate="CASCADE", ondelete="CASCADE"), index=True, nullable=False)
    business_id = Column(String(50), index=True, default="adpa")
    leave_type = Column(String(20), nullable=False)  # ANNUAL, SICK, EMERGENCY, ...
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    duration = Column(Integer, nullable=False)
    reason = Column(String(500), nullable=False)
    emergency_contact = Column(String(200), default="")
    work_handover = Column(Text, default="")
    status = Column(String(20), default=LeaveStatus.PENDING.value, index=True)
    submitted_at = Column(DateTime, default=datetime.utcnow)
    approved_by = Column(String(100), nullable=True)
    approver_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(String(500), nullable=True)
    comments = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    employee = relationship("User", foreign_keys=[employee_id], back_populates="leave_requests")
    approver = relationship("User", foreign_keys=[approver_id])
