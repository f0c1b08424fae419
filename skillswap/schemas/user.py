from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime
from enum import Enum

class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class Availability(str, Enum):
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"
    EVENINGS = "evenings"
    MORNINGS = "mornings"
    AFTERNOONS = "afternoons"
    FLEXIBLE = "flexible"

class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"

class Skill(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    level: SkillLevel = SkillLevel.INTERMEDIATE
    category: Optional[str] = Field(None, max_length=50)

class RatingSummary(BaseModel):
    average: float = Field(0, ge=0, le=5)
    count: int = Field(0, ge=0)

class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    location: Optional[str] = Field(None, max_length=100)

class UserUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    location: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    is_public: Optional[bool] = None
    skills_offered: Optional[List[Skill]] = None
    skills_wanted: Optional[List[Skill]] = None
    availability: Optional[List[Availability]] = None

    @field_validator("availability")
    @classmethod
    def unique_availability(cls, v):
        # availability is a set of tags; keep first occurrence order
        return list(dict.fromkeys(v)) if v is not None else v

class UserResponse(BaseModel):
    """Public view of a user. The password hash is never part of it."""

    id: str
    name: str
    email: EmailStr
    location: Optional[str] = None
    bio: Optional[str] = None
    profile_photo: Optional[str] = None
    role: Role = Role.USER
    is_active: bool = True
    is_public: bool = True
    skills_offered: List[Skill] = []
    skills_wanted: List[Skill] = []
    availability: List[Availability] = []
    rating: RatingSummary = RatingSummary()
    swap_count: int = 0
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class UserSummary(BaseModel):
    """Participant details embedded in swap and rating responses."""

    id: str
    name: str
    profile_photo: Optional[str] = None
    rating: Optional[RatingSummary] = None

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
