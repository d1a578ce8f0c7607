from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from models.enums import RequestStatus


class PickupRequestBase(BaseModel):
    service_day_id: str
    address_id: str
    request_date: date
    is_pick_up: bool = True
    is_drop_off: bool = False
    is_group_ride: bool = False
    number_of_group: Optional[int] = None
    notes: Optional[str] = None


class PickupRequestCreate(PickupRequestBase):
    # Required when an admin books on behalf of a member
    user_id: Optional[str] = None
    is_recurring: bool = False
    end_date: Optional[date] = None


class PickupRequestUpdate(PickupRequestBase):
    update_series: bool = False


class PickupRequestResponse(PickupRequestBase):
    id: str
    organization_id: str
    user_id: str
    day_of_week: int
    status: RequestStatus = RequestStatus.PENDING
    driver_id: Optional[str] = None
    distance: Optional[float] = None
    series_id: Optional[str] = None
    is_recurring: bool = False
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PickupCancel(BaseModel):
    reason: str = Field(..., min_length=1)


class PickupAssign(BaseModel):
    driver_id: str


class PickupStatusUpdateResponse(BaseModel):
    id: str
    status: RequestStatus
    driver_id: Optional[str] = None
    distance: Optional[float] = None


class PickupRequestPage(BaseModel):
    requests: List[PickupRequestResponse]
    page: int
    page_size: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    stats: dict


class DriverStats(BaseModel):
    my_active_requests: int
    available_requests: int
    completed_today: int
    total_completed: int
