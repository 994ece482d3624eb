"""Species, zone, bed and user schemas."""
from datetime import datetime
from typing import Annotated, Dict, List, Optional
from uuid import UUID

from pydantic import BeforeValidator, Field

from nursery.models.user import Role
from nursery.schemas.common import CamelModel


def _strip(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip()


Name = Annotated[str, BeforeValidator(_strip)]


# === Species Schemas ===
class SpeciesCreate(CamelModel):
    name: Name = Field(min_length=2, max_length=100)
    scientific_name: Optional[Name] = Field(default=None, min_length=2, max_length=150)
    target_girth: float = Field(ge=0)
    target_height: float = Field(ge=0)


class SpeciesUpdate(CamelModel):
    name: Optional[Name] = Field(default=None, min_length=2, max_length=100)
    scientific_name: Optional[Name] = Field(default=None, min_length=2, max_length=150)
    target_girth: Optional[float] = Field(default=None, ge=0)
    target_height: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class SpeciesBrief(CamelModel):
    id: UUID
    name: str
    scientific_name: Optional[str] = None


class SpeciesOut(SpeciesBrief):
    target_girth: float
    target_height: float
    is_active: bool
    created_at: Optional[datetime] = None
    batch_count: int = 0


# === Zone / Bed Schemas ===
class BedCreate(CamelModel):
    name: Name = Field(min_length=1, max_length=100)
    capacity: int = Field(ge=1)


class BedUpdate(CamelModel):
    name: Optional[Name] = Field(default=None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class BedBrief(CamelModel):
    id: UUID
    name: str
    zone_id: UUID


class BedOut(BedBrief):
    capacity: int
    occupied: int
    available: int
    is_active: bool


class ZoneCreate(CamelModel):
    name: Name = Field(min_length=2, max_length=100)
    capacity: int = Field(ge=1)
    beds: List[BedCreate] = []


class ZoneUpdate(CamelModel):
    name: Optional[Name] = Field(default=None, min_length=2, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class ZoneBrief(CamelModel):
    id: UUID
    name: str


class ZoneOut(ZoneBrief):
    capacity: int
    is_active: bool
    beds: List[BedOut] = []
    current_occupancy: int = 0
    utilization_percentage: int = 0


class BedReconcileOut(CamelModel):
    bed_id: UUID
    previous_occupied: int
    occupied: int


# === User / Auth Schemas ===
class LoginRequest(CamelModel):
    email: str
    password: str


class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"
    role: str


class UserCreate(CamelModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=8)
    first_name: str = ""
    last_name: str = ""
    role: str = "FIELD_OFFICER"


class UserUpdate(CamelModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(CamelModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool
    created_at: Optional[datetime] = None


class UserStats(CamelModel):
    total_users: int
    active_users: int
    users_by_role: Dict[str, int]


class ProfileUpdate(CamelModel):
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None


class PasswordChange(CamelModel):
    current_password: str
    new_password: str = Field(min_length=8)
