from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=2, pattern=r"^[a-z0-9-]+$")


class OrganizationResponse(OrganizationCreate):
    id: str
    created_at: Optional[datetime] = None
