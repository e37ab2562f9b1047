from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from db.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, index=True)
    priority = Column(String(10), default="normal")  # low, normal, high, urgent
    is_read = Column(Boolean, default=False, index=True)
    read_at = Column(DateTime, nullable=True)
    action_url = Column(String(255), nullable=True)
    action_label = Column(String(100), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    metadata_json = Column("metadata", JSON, default=dict)
    related_leave_request_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="notifications")


class NotificationTemplate(Base):
    __tablename__ = "notification_templates"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), unique=True, nullable=False, index=True)
    title_template = Column(String(255), nullable=False)
    message_template = Column(Text, nullable=False)
    email_subject_template = Column(String(255), nullable=True)
    email_body_template = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class NotificationPreference(Base):
    __tablename__ = "notification_preferences"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    email_enabled = Column(Boolean, default=True)
    push_enabled = Column(Boolean, default=True)
    leave_request_submitted = Column(Boolean, default=True)
    leave_request_approved = Column(Boolean, default=True)
    leave_request_rejected = Column(Boolean, default=True)
    approval_required = Column(Boolean, default=True)
    leave_reminder = Column(Boolean, default=True)
    system_updates = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
