from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, validator


class SignInRequest(BaseModel):
    email: EmailStr
    password: str

class SignUpRequest(BaseModel):
    email: EmailStr
    name: str
    password: str
    department: str = ""
    business_id: Optional[str] = None

    @validator('name')
    def validate_name(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError('Name cannot be empty')
        return v.strip()

    @validator('password')
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters long')
        return v

class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str
    department: str
    business_id: Optional[str] = None
    leave_balance: Optional[int] = None
    sick_leave_balance: Optional[int] = None
    subscription_status: Optional[str] = None
    subscription_plan: Optional[str] = None
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
