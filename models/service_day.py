import re
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.enums import Frequency, Ordinal, ServiceType

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class ServiceDayBase(BaseModel):
    name: str = Field(..., min_length=1)
    time: str
    weekdays: List[int] = Field(..., min_length=1)
    frequency: Frequency = Frequency.NONE
    ordinal: Ordinal = Ordinal.NEXT
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    cycle: Optional[int] = Field(default=None, ge=1)
    service_type: ServiceType = ServiceType.REGULAR
    is_active: bool = True

    @field_validator("time")
    @classmethod
    def check_time(cls, v: str) -> str:
        match = TIME_PATTERN.match(v.strip())
        if not match:
            raise ValueError("Service time must be in HH:MM format")
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    @field_validator("weekdays")
    @classmethod
    def check_weekdays(cls, v: List[int]) -> List[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("Weekdays must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    @model_validator(mode="after")
    def check_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be on or after the start date")
        return self


class ServiceDayCreate(ServiceDayBase):
    pass


class ServiceDayResponse(ServiceDayBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deactivated_at: Optional[datetime] = None


class ServiceDayOption(BaseModel):
    value: str
    label: str
    day_of_week: int


class OccurrencesResponse(BaseModel):
    service_day_id: str
    dates: List[date]
