# app/schemas.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictInt

from .models import RecordState

HOST_PATTERN = r"^\S+$"

# --- Service Schemas ---
class ServiceBase(BaseModel):
    host: str = Field(..., min_length=1, pattern=HOST_PATTERN, description="Host of the backend endpoint (e.g., 10.0.0.1)")
    port: StrictInt = Field(..., ge=1, le=65535, description="Port of the backend endpoint")

class ServiceCreate(ServiceBase):
    pass

class ServiceUpdate(BaseModel):
    # Omitted (or None) fields are left untouched
    host: Optional[str] = Field(None, min_length=1, pattern=HOST_PATTERN)
    port: Optional[StrictInt] = Field(None, ge=1, le=65535)

class Service(ServiceBase):
    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    state: RecordState

    class Config:
        from_attributes = True

# --- Gate Schemas ---
class GateBase(BaseModel):
    service_id: StrictInt = Field(..., description="Id of the service this gate forwards to")
    host: str = Field(..., min_length=1, pattern=HOST_PATTERN, description="Listening host of the gate (e.g., 0.0.0.0)")
    port: StrictInt = Field(..., ge=1, le=65535, description="Listening port of the gate")

class GateCreate(GateBase):
    pass

class GateUpdate(BaseModel):
    service_id: Optional[StrictInt] = None
    host: Optional[str] = Field(None, min_length=1, pattern=HOST_PATTERN)
    port: Optional[StrictInt] = Field(None, ge=1, le=65535)

class Gate(GateBase):
    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    state: RecordState

    class Config:
        from_attributes = True
