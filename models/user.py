from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from models.enums import UserRole, UserStatus


class UserBase(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    whatsapp_number: Optional[str] = None


class UserCreate(UserBase):
    organization_id: str
    password: str = Field(..., min_length=8)


class UserLogin(BaseModel):
    organization_id: str
    email: EmailStr
    password: str


class UserResponse(UserBase):
    id: str
    organization_id: str
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.PENDING
    max_distance: Optional[int] = None
    email_notifications: bool = True
    whatsapp_notifications: bool = False
    ban_reason: Optional[str] = None
    banned_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AdminUserCreate(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    phone_number: str
    is_login_required: bool = False
    password: Optional[str] = None
    street: str
    city: str
    province: str
    postal_code: str


class UserBan(BaseModel):
    reason: str = Field(..., min_length=1)
    ban_expires: Optional[datetime] = None


class UserRoleUpdate(BaseModel):
    role: UserRole
