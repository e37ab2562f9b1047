from typing import List, Optional
from pydantic import BaseModel, Field, validator


class LeaveTypeConfig(BaseModel):
    id: str
    name: str
    code: str
    max_days_per_year: Optional[int] = None
    requires_medical_certificate: bool = False
    advance_notice_days: int = 0
    color: str = "bg-gray-100 text-gray-800"
    icon: str = ""
    is_active: bool = True


class BusinessFeatures(BaseModel):
    approval_workflow: bool = True
    email_notifications: bool = True
    calendar_integration: bool = True
    report_generation: bool = True
    mobile_app: bool = False


class BusinessConfigResponse(BaseModel):
    id: str
    name: str
    logo_url: Optional[str] = None
    primary_color: str
    secondary_color: str
    departments: List[str]
    leave_types: List[LeaveTypeConfig]
    working_days: List[int]
    time_zone: str
    currency: str
    date_format: str
    language: str
    features: BusinessFeatures
    trial_enabled: bool = True
    trial_days: int = 14
    trial_features: List[str] = []


class BusinessConfigUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    departments: Optional[List[str]] = None
    leave_types: Optional[List[LeaveTypeConfig]] = None
    working_days: Optional[List[int]] = None
    time_zone: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    date_format: Optional[str] = None
    language: Optional[str] = None
    features: Optional[BusinessFeatures] = None
    trial_enabled: Optional[bool] = None
    trial_days: Optional[int] = Field(None, ge=0, le=365)
    trial_features: Optional[List[str]] = None

    @validator('working_days')
    def validate_working_days(cls, v):
        if v is not None and any(day < 0 or day > 6 for day in v):
            raise ValueError('Working days must be between 0 (Sunday) and 6 (Saturday)')
        return v

    @validator('language')
    def validate_language(cls, v):
        if v is not None and v not in ("en", "pt", "fr"):
            raise ValueError('Language must be one of: en, pt, fr')
        return v


class LeaveTypeListResponse(BaseModel):
    business_id: str
    leave_types: List[LeaveTypeConfig]
