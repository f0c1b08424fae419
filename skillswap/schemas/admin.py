from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum

class ReportType(str, Enum):
    ALL = "all"
    USERS = "users"
    SWAPS = "swaps"
    RATINGS = "ratings"

class MessageType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    MAINTENANCE = "maintenance"

class UserStatusUpdate(BaseModel):
    is_active: bool
    reason: Optional[str] = Field(None, max_length=500)

class PlatformMessage(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=2000)
    type: MessageType = MessageType.INFO
