from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Building(BaseModel):
    id: str = ""
    name: str
    address: str = ""
    created_at: datetime | None = None


class Room(BaseModel):
    id: str = ""
    number: str
    building_id: str | None = None
    created_at: datetime | None = None


class Tenant(BaseModel):
    id: str = ""
    tenant_code: str = ""  # human-facing tenant id, e.g. 'T-0042'
    full_name: str = ""
    email: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
