from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from models.enums import AppealStatus


class AppealCreate(BaseModel):
    appeal_token: str
    reason: str = Field(..., min_length=1)
    additional_info: Optional[str] = None


class AppealReview(BaseModel):
    review_notes: Optional[str] = None


class AppealTokenInfo(BaseModel):
    email: str
    user_name: str
    expires_at: datetime


class AppealResponse(BaseModel):
    id: str
    organization_id: str
    user_id: str
    user_name: Optional[str] = None
    email: str
    reason: str
    additional_info: Optional[str] = None
    status: AppealStatus = AppealStatus.PENDING
    review_notes: Optional[str] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AppealPage(BaseModel):
    appeals: List[AppealResponse]
    page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
