# backend/booking_core/schemas/resources.py

from typing import Optional
from pydantic import BaseModel, Field


class ResourceCreate(BaseModel):
    id: str = Field(min_length=1)
    organization_id: str
    name: str
    type: str
    description: Optional[str] = None
    timezone: str = "UTC"
    quantity: int = Field(default=1, ge=1)
    is_fungible: bool = False
    is_standalone: bool = True
    is_active: bool = True

    model_config = {"from_attributes": True}


class ResourceUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None
    timezone: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    is_fungible: Optional[bool] = None
    is_standalone: Optional[bool] = None
    is_active: Optional[bool] = None

    model_config = {"from_attributes": True}


class ResourceRead(BaseModel):
    id: str
    organization_id: str
    name: str
    type: str
    description: Optional[str] = None
    timezone: str
    quantity: int
    is_fungible: bool
    is_standalone: bool
    is_active: bool
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    model_config = {"from_attributes": True}


class ResourceToggleRead(BaseModel):
    resource: ResourceRead
    # Set when sessions still hold slots on a resource being deactivated
    warning: Optional[str] = None
