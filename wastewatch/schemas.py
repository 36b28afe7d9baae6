"""
Typed records for WasteWatch

Rows coming out of the data-access layer are plain dicts; each pydantic
model below is the validated shape of one table (users, complaints,
recyclable_items). Request bodies for the JSON API live here too.
"""

from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal['user', 'officer', 'admin']
Priority = Literal['low', 'medium', 'high', 'critical']
ComplaintStatus = Literal['pending', 'in-progress', 'resolved']
RecyclableStatus = Literal['pending', 'scheduled', 'collected', 'cancelled']

ROLES = ('user', 'officer', 'admin')
PRIORITIES = ('low', 'medium', 'high', 'critical')
COMPLAINT_STATUSES = ('pending', 'in-progress', 'resolved')
RECYCLABLE_STATUSES = ('pending', 'scheduled', 'collected', 'cancelled')


class Coordinates(BaseModel):
    lat: float
    lng: float


class UserRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: str
    clerk_id: str = Field(..., description="External identity id")
    email: Optional[str] = None
    first_name: Optional[str] = ''
    last_name: Optional[str] = ''
    avatar_url: Optional[str] = None
    role: Role = 'user'
    area: Optional[str] = None
    is_active: Optional[bool] = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ComplaintRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: str
    title: str
    description: str
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    area: Optional[str] = None
    priority: Priority = 'medium'
    status: ComplaintStatus = 'pending'
    user_id: str = Field(..., description="Submitter identity")
    assigned_to: Optional[str] = Field(None, description="Officer identity")
    assigned_at: Optional[datetime] = None
    image_url: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RecyclableItemRecord(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: str
    name: str
    description: Optional[str] = ''
    quantity: float = 1
    location: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    area: Optional[str] = None
    status: RecyclableStatus = 'pending'
    user_id: str
    image_url: Optional[str] = None
    collection_notes: Optional[str] = None
    schedule_date: Optional[datetime] = None
    collected_at: Optional[datetime] = None
    collected_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


RECORD_TYPES = {
    'users': UserRecord,
    'complaints': ComplaintRecord,
    'recyclable_items': RecyclableItemRecord,
}


# ---------- Request bodies ----------

class ComplaintStatusUpdate(BaseModel):
    status: ComplaintStatus
    resolution_notes: Optional[str] = None


class RecyclableStatusUpdate(BaseModel):
    status: RecyclableStatus
    notes: Optional[str] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    area: Optional[str] = None


class UserAdminUpdate(BaseModel):
    role: Optional[Role] = None
    area: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator('role', 'is_active')
    @classmethod
    def not_null(cls, v):
        # May be omitted, but never cleared
        if v is None:
            raise ValueError('cannot be null')
        return v
