from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class AddressBase(BaseModel):
    name: str = "Home"
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    province: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = "Canada"


class AddressCreate(AddressBase):
    is_default: bool = False


class AddressResponse(AddressBase):
    id: str
    user_id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_default: bool = False
    created_at: Optional[datetime] = None
