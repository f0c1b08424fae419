from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from .user import SkillLevel, UserSummary

class SwapStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class MeetingType(str, Enum):
    IN_PERSON = "in-person"
    ONLINE = "online"
    HYBRID = "hybrid"

class SwapRole(str, Enum):
    SENT = "sent"
    RECEIVED = "received"
    ALL = "all"

class SkillDescriptor(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    level: SkillLevel = SkillLevel.INTERMEDIATE

class SwapCreate(BaseModel):
    recipient_id: str
    skill_offered: SkillDescriptor
    skill_requested: SkillDescriptor
    message: Optional[str] = Field(None, max_length=500)
    scheduled_date: Optional[datetime] = None
    duration: Optional[float] = Field(None, ge=0.5, le=8, description="Duration in hours")
    meeting_type: MeetingType = MeetingType.ONLINE
    meeting_details: Optional[str] = Field(None, max_length=500)

class SwapAccept(BaseModel):
    response_message: Optional[str] = Field(None, max_length=500)
    scheduled_date: Optional[datetime] = None
    meeting_details: Optional[str] = Field(None, max_length=500)

class SwapReject(BaseModel):
    response_message: Optional[str] = Field(None, max_length=500)

class SwapCancel(BaseModel):
    cancel_reason: Optional[str] = Field(None, max_length=500)

class SwapResponse(BaseModel):
    id: str
    requester_id: str
    recipient_id: str
    skill_offered: SkillDescriptor
    skill_requested: SkillDescriptor
    status: SwapStatus
    message: Optional[str] = None
    response_message: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    duration: Optional[float] = None
    meeting_type: MeetingType = MeetingType.ONLINE
    meeting_details: Optional[str] = None
    cancel_reason: Optional[str] = None
    is_rated_by_requester: bool = False
    is_rated_by_recipient: bool = False
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    requester: Optional[UserSummary] = None
    recipient: Optional[UserSummary] = None
