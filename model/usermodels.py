from datetime import datetime
from enum import Enum as pyEnum
from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, ForeignKey
from db.database import Base
from sqlalchemy.orm import relationship


class UserRole(str, pyEnum):
    EMPLOYEE = "EMPLOYEE"
    SUPERVISOR = "SUPERVISOR"
    HR = "HR"
    DIRECTOR = "DIRECTOR"


# roles allowed to review leave requests
APPROVER_ROLES = [UserRole.SUPERVISOR.value, UserRole.HR.value, UserRole.DIRECTOR.value]
# roles allowed to see reports and change business settings
MANAGEMENT_ROLES = [UserRole.HR.value, UserRole.DIRECTOR.value]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(100), nullable=False)
    password = Column(String(100))
    role = Column(String(20), nullable=False, default=UserRole.EMPLOYEE.value)
    department = Column(String(50), nullable=False, default="")
    employee_code = Column(String(30), nullable=True)
    hire_date = Column(Date, nullable=True)
    leave_balance = Column(Integer, default=21)
    sick_leave_balance = Column(Integer, default=10)
    is_active = Column(Boolean, default=True)
    business_id = Column(String(50), default="adpa", index=True)
    supervisor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # subscription mirror
    trial_start_date = Column(DateTime, nullable=True)
    trial_end_date = Column(DateTime, nullable=True)
    subscription_status = Column(String(20), default="trial")
    subscription_plan = Column(String(20), default="free")

    last_login = Column(DateTime, default=None)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    supervisor = relationship("User", remote_side=[id])
    leave_requests = relationship(
        "LeaveRequest",
        foreign_keys="[LeaveRequest.employee_id]",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="user", cascade="all, delete-orphan")
