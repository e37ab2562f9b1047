from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, validator
from enum import Enum


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationCreate(BaseModel):
    type: str = Field(..., min_length=1, max_length=50)
    data: Dict[str, Any] = {}
    priority: NotificationPriority = NotificationPriority.NORMAL
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    expires_at: Optional[datetime] = None


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    title: str
    message: str
    type: str
    priority: str
    is_read: bool
    read_at: Optional[datetime] = None
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    expires_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")
    related_leave_request_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int


class NotificationAction(BaseModel):
    action: str


class UnreadCountResponse(BaseModel):
    count: int


class NotificationPreferenceUpdate(BaseModel):
    email_enabled: Optional[bool] = None
    push_enabled: Optional[bool] = None
    leave_request_submitted: Optional[bool] = None
    leave_request_approved: Optional[bool] = None
    leave_request_rejected: Optional[bool] = None
    approval_required: Optional[bool] = None
    leave_reminder: Optional[bool] = None
    system_updates: Optional[bool] = None


class NotificationPreferenceResponse(BaseModel):
    user_id: int
    email_enabled: bool
    push_enabled: bool
    leave_request_submitted: bool
    leave_request_approved: bool
    leave_request_rejected: bool
    approval_required: bool
    leave_reminder: bool
    system_updates: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PreferencesEnvelope(BaseModel):
    preferences: Optional[NotificationPreferenceResponse] = None


class NotificationTemplateBase(BaseModel):
    type: str
    title_template: str
    message_template: str
    email_subject_template: Optional[str] = None
    email_body_template: Optional[str] = None
    is_active: bool = True

    @validator('type')
    def validate_type(cls, v):
        if not v or not v.strip():
            raise ValueError('Template type cannot be empty')
        return v.strip()
